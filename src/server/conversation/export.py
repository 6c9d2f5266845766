# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from .converters import from_epoch_millis
from .models import ConversationRecord, MessageRecord

_SEPARATOR = "=" * 50


def render_transcript(conversation: Optional[ConversationRecord], messages: Iterable[MessageRecord]) -> str:
    """Render a conversation as a plain-text transcript."""
    messages = list(messages)
    created = conversation.created_at if conversation else from_epoch_millis(0)
    lines = [
        f"Conversation: {conversation.title if conversation else 'Untitled'}",
        f"Created: {_format_time(created)}",
        f"Messages: {len(messages)}",
        "",
        _SEPARATOR,
        "",
    ]
    for message in messages:
        lines.append(f"[{message.role.value.upper()}] {_format_time(message.timestamp)}")
        lines.append(message.content)
        if message.has_images():
            lines.append(f"  ({len(message.image_uris())} image(s))")
        lines.append("")
    return "\n".join(lines) + "\n"


def _format_time(value: datetime) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S")
