# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

from dataclasses import dataclass

from .loader import get_bool_env, get_int_env, get_str_env

DEFAULT_WAKE_WORD = "Panda"
DEFAULT_MAX_CONTEXT_MESSAGES = 50


@dataclass(slots=True, frozen=True)
class WakeWordConfiguration:
    """Settings for the wake-word service."""

    wake_word: str = DEFAULT_WAKE_WORD
    microphone_permission: bool = True
    autostart: bool = False

    @classmethod
    def from_env(cls) -> "WakeWordConfiguration":
        return cls(
            wake_word=get_str_env("WAKE_WORD", DEFAULT_WAKE_WORD) or DEFAULT_WAKE_WORD,
            microphone_permission=get_bool_env("WAKE_WORD_MIC_PERMISSION", True),
            autostart=get_bool_env("WAKE_WORD_AUTOSTART", False),
        )


@dataclass(slots=True, frozen=True)
class AgentConfiguration:
    max_context_messages: int = DEFAULT_MAX_CONTEXT_MESSAGES

    @classmethod
    def from_env(cls) -> "AgentConfiguration":
        limit = get_int_env("AGENT_MAX_CONTEXT_MESSAGES", DEFAULT_MAX_CONTEXT_MESSAGES)
        return cls(max_context_messages=max(1, limit))
