# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from typing import Optional

from src.config.configuration import DEFAULT_MAX_CONTEXT_MESSAGES
from src.server.conversation.export import render_transcript
from src.server.conversation.models import (
    DEFAULT_CONVERSATION_TITLE,
    ConversationRecord,
    MessageRecord,
    MessageRole,
)
from src.server.conversation.store import SQLiteConversationStore
from src.server.conversation.title import truncate_title

logger = logging.getLogger(__name__)

# Tool results are replayed to the model as assistant turns.
_CONTEXT_ROLES = {
    MessageRole.USER: "user",
    MessageRole.ASSISTANT: "assistant",
    MessageRole.TOOL: "assistant",
    MessageRole.SYSTEM: "system",
}


class ConversationManager:
    """Tracks the active conversation and prepares its history for the model."""

    def __init__(
        self,
        store: SQLiteConversationStore,
        max_context_messages: int = DEFAULT_MAX_CONTEXT_MESSAGES,
    ) -> None:
        self._store = store
        self._max_context_messages = max_context_messages
        self._current_conversation_id: Optional[str] = None
        self._message_cache: list[MessageRecord] = []

    @property
    def store(self) -> SQLiteConversationStore:
        return self._store

    @property
    def current_conversation_id(self) -> Optional[str]:
        return self._current_conversation_id

    async def create_conversation(self, title: str = DEFAULT_CONVERSATION_TITLE) -> str:
        conversation = ConversationRecord.create(title)
        await self._store.insert_conversation(conversation)
        self._current_conversation_id = conversation.id
        self._message_cache.clear()
        logger.debug("Created conversation %s", conversation.id)
        return conversation.id

    async def load_conversation(self, conversation_id: str) -> bool:
        conversation = await self._store.get_conversation(conversation_id)
        if conversation is None:
            logger.warning("Conversation not found: %s", conversation_id)
            return False
        self._current_conversation_id = conversation_id
        self._message_cache = await self._store.get_messages(conversation_id)
        logger.debug("Loaded conversation %s with %d messages", conversation_id, len(self._message_cache))
        return True

    async def _ensure_conversation(self) -> str:
        if self._current_conversation_id is None:
            return await self.create_conversation()
        return self._current_conversation_id

    async def add_user_message(self, content: str, images: Optional[list[str]] = None) -> MessageRecord:
        conversation_id = await self._ensure_conversation()
        message = MessageRecord.user(conversation_id, content, images=images)
        await self._append(message)
        if len(self._message_cache) == 1:
            await self._store.update_title(conversation_id, truncate_title(content))
        return message

    async def add_assistant_message(self, content: str, token_count: int = 0) -> MessageRecord:
        conversation_id = await self._ensure_conversation()
        message = MessageRecord.assistant(conversation_id, content, token_count=token_count)
        await self._append(message)
        return message

    async def add_tool_result(self, tool_name: str, result: str, success: bool = True) -> MessageRecord:
        conversation_id = await self._ensure_conversation()
        message = MessageRecord.tool(conversation_id, tool_name, result, success=success)
        await self._append(message)
        return message

    async def add_system_message(self, content: str) -> MessageRecord:
        conversation_id = await self._ensure_conversation()
        message = MessageRecord.system(conversation_id, content)
        await self._append(message)
        return message

    async def _append(self, message: MessageRecord) -> None:
        await self._store.add_message_and_update(message)
        self._message_cache.append(message)
        logger.debug("Added %s message to %s", message.role.value, message.conversation_id)

    def get_text_context(self) -> list[tuple[str, str]]:
        """Return the most recent history as ``(role, text)`` pairs."""
        context: list[tuple[str, str]] = []
        for message in self._message_cache[-self._max_context_messages:]:
            content = message.content
            if message.has_images():
                content += f"\n[{len(message.image_uris())} image(s) attached]"
            context.append((_CONTEXT_ROLES[message.role], content))
        return context

    def get_all_messages(self) -> list[MessageRecord]:
        return list(self._message_cache)

    def get_message_count(self) -> int:
        return len(self._message_cache)

    def clear_cache(self) -> None:
        """Forget the active conversation; stored data is kept."""
        self._message_cache.clear()
        self._current_conversation_id = None

    async def delete_conversation(self, conversation_id: str) -> None:
        if await self._store.get_conversation(conversation_id) is None:
            return
        await self._store.delete_conversation(conversation_id)
        if self._current_conversation_id == conversation_id:
            self.clear_cache()
        logger.info("Deleted conversation %s", conversation_id)

    async def export_conversation(self, conversation_id: str) -> str:
        conversation = await self._store.get_conversation(conversation_id)
        messages = await self._store.get_messages(conversation_id)
        return render_transcript(conversation, messages)
