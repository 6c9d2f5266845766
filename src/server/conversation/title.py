# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from typing import Iterable, Optional

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage

from src.llms.llm import get_llm_by_type

from .models import DEFAULT_CONVERSATION_TITLE, MessageRecord, MessageRole
from .store import SQLiteConversationStore

logger = logging.getLogger(__name__)

_MAX_TITLE_LENGTH = 50
_ELLIPSIS = "..."


async def ensure_conversation_title(
    store: SQLiteConversationStore,
    conversation_id: str,
    llm: Optional[BaseChatModel] = None,
) -> Optional[str]:
    """Generate and persist a title for a conversation still using the default one."""
    conversation = await store.get_conversation(conversation_id)
    if conversation is None or (conversation.title and conversation.title != DEFAULT_CONVERSATION_TITLE):
        return None

    messages = await store.get_messages(conversation_id)
    if not any(message.role is MessageRole.USER for message in messages):
        logger.debug("Conversation %s has no user message yet; skipping title generation", conversation_id)
        return None

    fallback = derive_fallback_title(messages)

    if llm is None:
        try:
            llm = get_llm_by_type("basic")
        except Exception as exc:  # noqa: BLE001 - LLM misconfiguration should not fail the request
            logger.warning("LLM unavailable for conversation title generation: %s", exc)
            await store.update_title(conversation_id, fallback)
            return fallback

    try:
        ai_message = await llm.ainvoke([HumanMessage(content=_build_prompt(messages[:4]))])
    except Exception as exc:  # noqa: BLE001 - title generation must not fail the turn
        logger.warning("Failed to generate conversation title via LLM: %s", exc)
        await store.update_title(conversation_id, fallback)
        return fallback

    content = ai_message.content if isinstance(ai_message.content, str) else ""
    title = truncate_title(content.strip().strip('"')) if content.strip() else fallback
    await store.update_title(conversation_id, title)
    return title


def _build_prompt(messages: Iterable[MessageRecord]) -> str:
    lines: list[str] = []
    for message in messages:
        if message.role is MessageRole.USER:
            lines.append(f"User: {message.content}")
        elif message.role is MessageRole.ASSISTANT:
            lines.append(f"Assistant: {message.content}")
    joined = "\n".join(lines)
    return (
        "Read the conversation below and write a short title that captures its topic.\n"
        "Rules:\n"
        f"1. At most {_MAX_TITLE_LENGTH} characters;\n"
        "2. No quotes and no trailing period;\n"
        f"3. If no topic is apparent, answer \"{DEFAULT_CONVERSATION_TITLE}\".\n\n"
        f"Conversation:\n{joined}\n\n"
        "Title:"
    )


def derive_fallback_title(messages: Iterable[MessageRecord]) -> str:
    for message in messages:
        if message.role is MessageRole.USER and message.content.strip():
            return truncate_title(message.content)
    return DEFAULT_CONVERSATION_TITLE


def truncate_title(text: str) -> str:
    cleaned = text.strip().replace("\n", " ")
    if not cleaned:
        return DEFAULT_CONVERSATION_TITLE
    if len(cleaned) <= _MAX_TITLE_LENGTH:
        return cleaned
    return cleaned[: _MAX_TITLE_LENGTH - len(_ELLIPSIS)] + _ELLIPSIS
