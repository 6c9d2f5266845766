# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""Wake-word detection and the handoff to the conversational agent."""

from .broadcast import Broadcaster
from .detector import WakeWordDetector
from .service import WakeWordService, WakeWordState

__all__ = ["Broadcaster", "WakeWordDetector", "WakeWordService", "WakeWordState"]
