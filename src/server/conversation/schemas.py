# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from .models import DEFAULT_CONVERSATION_TITLE, ContentType, MessageRole

_MAX_TITLE_LENGTH = 200


def _clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        return None
    if len(value) > _MAX_TITLE_LENGTH:
        raise ValueError(f"Title must be {_MAX_TITLE_LENGTH} characters or fewer")
    return value


class ContentItemPayload(BaseModel):
    type: ContentType
    data: str
    mime_type: Optional[str] = None
    filename: Optional[str] = None


class ConversationMessage(BaseModel):
    id: str
    conversation_id: str
    role: MessageRole
    content: str
    content_items: list[ContentItemPayload] = Field(default_factory=list)
    timestamp: datetime
    metadata: Optional[dict[str, Any]] = None
    is_error: bool = False
    token_count: int = 0


class ConversationSummary(BaseModel):
    id: str
    title: str
    created_at: datetime
    updated_at: datetime
    message_count: int = 0
    is_pinned: bool = False
    is_archived: bool = False
    tags: list[str] = Field(default_factory=list)


class ConversationDetail(ConversationSummary):
    total_tokens: int = 0
    messages: list[ConversationMessage] = Field(default_factory=list)


class ConversationListResponse(BaseModel):
    conversations: list[ConversationSummary]


class MessageListResponse(BaseModel):
    messages: list[ConversationMessage]


class MessageCreateRequest(BaseModel):
    role: MessageRole = MessageRole.USER
    content: str = Field(min_length=1)
    content_items: list[ContentItemPayload] = Field(default_factory=list)
    metadata: Optional[dict[str, Any]] = None
    is_error: bool = False
    token_count: int = Field(default=0, ge=0)


class MessageCreateResponse(BaseModel):
    message: ConversationMessage
    message_count: int


class ConversationCreateRequest(BaseModel):
    title: Optional[str] = Field(default=None, description="Conversation title; derived from the first message when omitted.")
    tags: list[str] = Field(default_factory=list)
    initial_message: Optional[MessageCreateRequest] = Field(
        default=None,
        description="Optional first message stored in the same transaction.",
    )

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, value: Optional[str]) -> Optional[str]:
        return _clean_title(value)

    def resolved_title(self) -> str:
        return self.title or DEFAULT_CONVERSATION_TITLE


class ConversationUpdateRequest(BaseModel):
    title: Optional[str] = Field(default=None, description="Manual conversation title override.")
    pinned: Optional[bool] = Field(default=None, description="Pin/unpin conversation.")
    archived: Optional[bool] = Field(default=None, description="Archive/unarchive conversation.")
    tags: Optional[list[str]] = Field(default=None, description="Replace the conversation tags.")

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, value: Optional[str]) -> Optional[str]:
        return _clean_title(value)


ConversationView = Literal["all", "recent", "pinned", "archived"]


class DeleteResponse(BaseModel):
    success: bool
