# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .conversation_manager import ConversationManager

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "user": HumanMessage,
    "assistant": AIMessage,
    "system": SystemMessage,
}


class AgentError(RuntimeError):
    """Raised when the model cannot produce a reply."""


@dataclass(slots=True)
class AgentResponse:
    text: str
    conversation_id: str
    message_id: str
    token_count: int = 0


class ConversationalAgent:
    """Runs one user turn: persist the prompt, ask the model, persist the reply."""

    def __init__(self, llm: BaseChatModel, conversation_manager: ConversationManager) -> None:
        self._llm = llm
        self._conversation_manager = conversation_manager

    @property
    def conversation_manager(self) -> ConversationManager:
        return self._conversation_manager

    async def process_message(self, prompt: str, images: Optional[list[str]] = None) -> AgentResponse:
        manager = self._conversation_manager
        await manager.add_user_message(prompt, images=images)
        messages = build_llm_messages(manager.get_text_context())

        try:
            reply = await self._llm.ainvoke(messages)
        except Exception as exc:
            logger.exception("Agent model call failed")
            raise AgentError(str(exc)) from exc

        text = _message_text(reply)
        token_count = _token_count(reply)
        stored = await manager.add_assistant_message(text, token_count=token_count)
        return AgentResponse(
            text=text,
            conversation_id=stored.conversation_id,
            message_id=stored.id,
            token_count=token_count,
        )


def build_llm_messages(context: list[tuple[str, str]]) -> list[BaseMessage]:
    return [_MESSAGE_TYPES[role](content=content) for role, content in context]


def _message_text(message: Any) -> str:
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content.strip()
    # Content blocks: keep the text parts only.
    parts = [block.get("text", "") for block in content if isinstance(block, dict)]
    return "".join(parts).strip()


def _token_count(message: Any) -> int:
    usage = getattr(message, "usage_metadata", None)
    if not usage:
        return 0
    return int(usage.get("output_tokens") or 0)
