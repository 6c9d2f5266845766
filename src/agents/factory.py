# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import logging
from typing import Optional

from langchain_core.language_models import BaseChatModel

from src.config.configuration import AgentConfiguration
from src.llms.llm import get_llm_by_type
from src.server.conversation.dependencies import initialise_conversation_store
from src.server.conversation.store import SQLiteConversationStore

from .agent import ConversationalAgent
from .conversation_manager import ConversationManager

logger = logging.getLogger(__name__)

_AGENT: Optional[ConversationalAgent] = None


def create_agent(
    store: Optional[SQLiteConversationStore] = None,
    llm: Optional[BaseChatModel] = None,
    configuration: Optional[AgentConfiguration] = None,
) -> ConversationalAgent:
    """Build a new agent wired to the conversation store and the basic LLM."""
    configuration = configuration or AgentConfiguration.from_env()
    store = store or initialise_conversation_store()
    llm = llm or get_llm_by_type("basic")
    manager = ConversationManager(store, max_context_messages=configuration.max_context_messages)
    logger.info("Created conversational agent backed by %s", store.db_path)
    return ConversationalAgent(llm, manager)


def get_agent() -> ConversationalAgent:
    """Return the cached agent, creating it on first use."""
    global _AGENT
    if _AGENT is None:
        _AGENT = create_agent()
    return _AGENT


def set_agent(agent: Optional[ConversationalAgent]) -> None:
    global _AGENT
    _AGENT = agent


def clear_cache() -> None:
    set_agent(None)
