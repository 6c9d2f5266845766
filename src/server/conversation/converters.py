# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""Column converters for conversation storage.

Timestamps are stored as integer epoch milliseconds and message content items
as a JSON array of objects (``type``, ``data`` and optional ``mimeType`` /
``filename``). Metadata dictionaries are stored as JSON text.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from .models import ContentItem, ContentType

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)


def to_epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // _MILLISECOND


def from_epoch_millis(value: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=value)


def dump_content_items(items: Optional[Iterable[ContentItem]]) -> Optional[str]:
    if not items:
        return None
    payload: list[dict[str, str]] = []
    for item in items:
        entry = {"type": item.type.value, "data": item.data}
        if item.mime_type is not None:
            entry["mimeType"] = item.mime_type
        if item.filename is not None:
            entry["filename"] = item.filename
        payload.append(entry)
    if not payload:
        return None
    return json.dumps(payload, ensure_ascii=False)


def load_content_items(raw: Optional[str]) -> list[ContentItem]:
    """Decode stored content items; corrupt input yields an empty list."""
    if not raw:
        return []
    try:
        payload = json.loads(raw)
        return [
            ContentItem(
                type=ContentType(str(entry["type"]).lower()),
                data=str(entry["data"]),
                mime_type=entry.get("mimeType"),
                filename=entry.get("filename"),
            )
            for entry in payload
        ]
    except (ValueError, TypeError, KeyError, AttributeError) as exc:
        logger.warning("Discarding unreadable content items: %s", exc)
        return []


def dump_metadata(metadata: Optional[dict[str, Any]]) -> Optional[str]:
    return json.dumps(metadata, ensure_ascii=False) if metadata else None


def load_metadata(raw: Optional[str]) -> Optional[dict[str, Any]]:
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError as exc:
        logger.warning("Discarding unreadable message metadata: %s", exc)
        return None
    return value if isinstance(value, dict) else None
