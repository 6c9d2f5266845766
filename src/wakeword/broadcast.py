# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Receiver = Callable[[str, dict[str, Any]], None]


class Broadcaster:
    """Fire-and-forget delivery of action strings to registered receivers."""

    def __init__(self) -> None:
        self._receivers: dict[str, list[Receiver]] = defaultdict(list)

    def register(self, action: str, receiver: Receiver) -> None:
        self._receivers[action].append(receiver)

    def unregister(self, action: str, receiver: Receiver) -> None:
        receivers = self._receivers.get(action)
        if receivers and receiver in receivers:
            receivers.remove(receiver)

    def send(self, action: str, extras: Optional[dict[str, Any]] = None) -> int:
        """Deliver ``action`` to every receiver; returns how many were reached."""
        receivers = list(self._receivers.get(action, ()))
        if not receivers:
            logger.debug("No receivers registered for %s", action)
        delivered = 0
        for receiver in receivers:
            try:
                receiver(action, dict(extras or {}))
            except Exception:  # noqa: BLE001 - one receiver must not block the others
                logger.exception("Broadcast receiver failed for %s", action)
            else:
                delivered += 1
        return delivered
