# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

DEFAULT_CONVERSATION_TITLE = "New Conversation"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    FILE = "file"
    AUDIO = "audio"
    VIDEO = "video"


@dataclass(slots=True, frozen=True)
class ContentItem:
    type: ContentType
    data: str
    mime_type: Optional[str] = None
    filename: Optional[str] = None


@dataclass(slots=True)
class ConversationRecord:
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0
    is_archived: bool = False
    is_pinned: bool = False
    tags: Optional[str] = None

    @classmethod
    def create(cls, title: str = DEFAULT_CONVERSATION_TITLE, *, tags: Optional[str] = None) -> ConversationRecord:
        now = utc_now()
        return cls(id=f"conv_{uuid4().hex}", title=title, created_at=now, updated_at=now, tags=tags)

    def tag_list(self) -> list[str]:
        if not self.tags:
            return []
        return [tag.strip() for tag in self.tags.split(",") if tag.strip()]

    def has_tag(self, tag: str) -> bool:
        return tag in self.tag_list()

    def add_tag(self, tag: str) -> ConversationRecord:
        tags = self.tag_list()
        if tag not in tags:
            tags.append(tag)
        return dataclasses.replace(self, tags=",".join(tags))

    def remove_tag(self, tag: str) -> ConversationRecord:
        tags = [existing for existing in self.tag_list() if existing != tag]
        return dataclasses.replace(self, tags=",".join(tags))


@dataclass(slots=True)
class MessageRecord:
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    timestamp: datetime
    content_items: list[ContentItem] = field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
    is_error: bool = False
    token_count: int = 0

    @classmethod
    def user(cls, conversation_id: str, content: str, images: Optional[list[str]] = None) -> MessageRecord:
        items = [ContentItem(type=ContentType.IMAGE, data=uri) for uri in images or []]
        return cls._new(conversation_id, MessageRole.USER, content, content_items=items)

    @classmethod
    def assistant(cls, conversation_id: str, content: str, token_count: int = 0) -> MessageRecord:
        return cls._new(conversation_id, MessageRole.ASSISTANT, content, token_count=token_count)

    @classmethod
    def tool(cls, conversation_id: str, tool_name: str, result: str, success: bool = True) -> MessageRecord:
        return cls._new(
            conversation_id,
            MessageRole.TOOL,
            result,
            metadata={"tool_name": tool_name, "success": success},
            is_error=not success,
        )

    @classmethod
    def system(cls, conversation_id: str, content: str) -> MessageRecord:
        return cls._new(conversation_id, MessageRole.SYSTEM, content)

    @classmethod
    def _new(cls, conversation_id: str, role: MessageRole, content: str, **kwargs: Any) -> MessageRecord:
        return cls(
            id=f"msg_{uuid4().hex}",
            conversation_id=conversation_id,
            role=role,
            content=content,
            timestamp=utc_now(),
            **kwargs,
        )

    def image_uris(self) -> list[str]:
        return [item.data for item in self.content_items if item.type is ContentType.IMAGE]

    def file_uris(self) -> list[str]:
        return [item.data for item in self.content_items if item.type is ContentType.FILE]

    def has_images(self) -> bool:
        return bool(self.image_uris())

    def has_files(self) -> bool:
        return bool(self.file_uris())


@dataclass(slots=True)
class ConversationWithMessages:
    conversation: ConversationRecord
    messages: list[MessageRecord]

    def user_messages(self) -> list[MessageRecord]:
        return [message for message in self.messages if message.role is MessageRole.USER]

    def assistant_messages(self) -> list[MessageRecord]:
        return [message for message in self.messages if message.role is MessageRole.ASSISTANT]

    def tool_results(self) -> list[MessageRecord]:
        return [message for message in self.messages if message.role is MessageRole.TOOL]

    def last_message(self) -> Optional[MessageRecord]:
        return self.messages[-1] if self.messages else None

    def is_empty(self) -> bool:
        return not self.messages


def utc_now() -> datetime:
    # Millisecond precision so records survive a round trip through storage unchanged.
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)
