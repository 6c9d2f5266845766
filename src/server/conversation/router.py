# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

from typing import Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from .dependencies import get_conversation_store
from .export import render_transcript
from .models import ContentItem, ConversationRecord, MessageRecord, utc_now
from .schemas import (
    ContentItemPayload,
    ConversationCreateRequest,
    ConversationDetail,
    ConversationListResponse,
    ConversationMessage,
    ConversationSummary,
    ConversationUpdateRequest,
    ConversationView,
    DeleteResponse,
    MessageCreateRequest,
    MessageCreateResponse,
    MessageListResponse,
)
from .store import SQLiteConversationStore
from .title import ensure_conversation_title

router = APIRouter(prefix="/api/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
async def list_conversations(
    view: ConversationView = Query(default="all", description="Which conversations to list."),
    q: Optional[str] = Query(default=None, description="Title substring to search for."),
    tag: Optional[str] = Query(default=None, description="Tag substring to filter by."),
    limit: int = Query(default=20, ge=1, le=200, description="Limit for the recent view."),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationListResponse:
    if q:
        records = await store.search_conversations(q)
    elif tag:
        records = await store.get_conversations_by_tag(tag)
    elif view == "recent":
        records = await store.get_recent_conversations(limit)
    elif view == "pinned":
        records = await store.get_pinned_conversations()
    elif view == "archived":
        records = await store.get_archived_conversations()
    else:
        records = await store.list_conversations()
    return ConversationListResponse(conversations=[_to_summary(record) for record in records])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ConversationDetail)
async def create_conversation(
    payload: ConversationCreateRequest,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationDetail:
    conversation = ConversationRecord.create(payload.resolved_title(), tags=",".join(payload.tags) or None)
    if payload.initial_message is not None:
        message = _to_record(conversation.id, payload.initial_message)
        await store.create_conversation_with_message(conversation, message)
        if payload.title is None:
            await ensure_conversation_title(store, conversation.id)
    else:
        await store.insert_conversation(conversation)
    return await _load_detail(store, conversation.id)


@router.get("/{conversation_id}", response_model=ConversationDetail)
async def get_conversation(
    conversation_id: str,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationDetail:
    return await _load_detail(store, conversation_id)


@router.patch("/{conversation_id}", response_model=ConversationDetail)
async def update_conversation(
    conversation_id: str,
    payload: ConversationUpdateRequest,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> ConversationDetail:
    await _require_conversation(store, conversation_id)

    if payload.title is not None:
        await store.update_title(conversation_id, payload.title)
    if payload.pinned is not None:
        await store.set_pinned(conversation_id, payload.pinned)
    if payload.archived is not None:
        await store.set_archived(conversation_id, payload.archived)
    if payload.tags is not None:
        await store.set_tags(conversation_id, payload.tags)

    return await _load_detail(store, conversation_id)


@router.delete("/{conversation_id}", response_model=DeleteResponse)
async def delete_conversation(
    conversation_id: str,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> DeleteResponse:
    await _require_conversation(store, conversation_id)
    await store.delete_conversation(conversation_id)
    return DeleteResponse(success=True)


@router.get("/{conversation_id}/messages", response_model=MessageListResponse)
async def list_messages(
    conversation_id: str,
    limit: Optional[int] = Query(default=None, ge=1, description="Only return the newest N messages, newest first."),
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> MessageListResponse:
    await _require_conversation(store, conversation_id)
    if limit is not None:
        records = await store.get_recent_messages(conversation_id, limit)
    else:
        records = await store.get_messages(conversation_id)
    return MessageListResponse(messages=[_to_message(record) for record in records])


@router.post(
    "/{conversation_id}/messages",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageCreateResponse,
)
async def create_message(
    conversation_id: str,
    payload: MessageCreateRequest,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> MessageCreateResponse:
    await _require_conversation(store, conversation_id)
    message = _to_record(conversation_id, payload)
    count = await store.add_message_and_update(message)
    await ensure_conversation_title(store, conversation_id)
    return MessageCreateResponse(message=_to_message(message), message_count=count)


@router.delete("/{conversation_id}/messages", response_model=DeleteResponse)
async def clear_messages(
    conversation_id: str,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> DeleteResponse:
    await _require_conversation(store, conversation_id)
    await store.delete_all_messages(conversation_id)
    return DeleteResponse(success=True)


@router.get("/{conversation_id}/export", response_class=PlainTextResponse)
async def export_conversation(
    conversation_id: str,
    store: SQLiteConversationStore = Depends(get_conversation_store),
) -> str:
    loaded = await store.get_conversation_with_messages(conversation_id)
    if loaded is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return render_transcript(loaded.conversation, loaded.messages)


async def _require_conversation(store: SQLiteConversationStore, conversation_id: str) -> ConversationRecord:
    conversation = await store.get_conversation(conversation_id)
    if conversation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


async def _load_detail(store: SQLiteConversationStore, conversation_id: str) -> ConversationDetail:
    loaded = await store.get_conversation_with_messages(conversation_id)
    if loaded is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    total_tokens = await store.get_total_token_count(conversation_id)
    return ConversationDetail(
        **_to_summary(loaded.conversation).model_dump(),
        total_tokens=total_tokens,
        messages=[_to_message(message) for message in loaded.messages],
    )


def _to_record(conversation_id: str, payload: MessageCreateRequest) -> MessageRecord:
    return MessageRecord(
        id=f"msg_{uuid4().hex}",
        conversation_id=conversation_id,
        role=payload.role,
        content=payload.content,
        timestamp=utc_now(),
        content_items=[
            ContentItem(type=item.type, data=item.data, mime_type=item.mime_type, filename=item.filename)
            for item in payload.content_items
        ],
        metadata=payload.metadata,
        is_error=payload.is_error,
        token_count=payload.token_count,
    )


def _to_summary(record: ConversationRecord) -> ConversationSummary:
    return ConversationSummary(
        id=record.id,
        title=record.title,
        created_at=record.created_at,
        updated_at=record.updated_at,
        message_count=record.message_count,
        is_pinned=record.is_pinned,
        is_archived=record.is_archived,
        tags=record.tag_list(),
    )


def _to_message(record: MessageRecord) -> ConversationMessage:
    return ConversationMessage(
        id=record.id,
        conversation_id=record.conversation_id,
        role=record.role,
        content=record.content,
        content_items=[
            ContentItemPayload(
                type=item.type,
                data=item.data,
                mime_type=item.mime_type,
                filename=item.filename,
            )
            for item in record.content_items
        ],
        timestamp=record.timestamp,
        metadata=record.metadata,
        is_error=record.is_error,
        token_count=record.token_count,
    )
