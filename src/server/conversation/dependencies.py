# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""Process-wide conversation store shared by the HTTP routes and the agent."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import HTTPException, status

from src.config.loader import get_str_env

from .store import SQLiteConversationStore

logger = logging.getLogger(__name__)

DEFAULT_CONVERSATION_DB_PATH = "assistant.db"

_CONVERSATION_STORE: Optional[SQLiteConversationStore] = None


def initialise_conversation_store(db_path: Optional[str] = None) -> SQLiteConversationStore:
    """Return the shared store, creating it from ``CONVERSATION_DB_PATH`` on first use."""
    global _CONVERSATION_STORE
    if _CONVERSATION_STORE is None:
        path = db_path or get_str_env("CONVERSATION_DB_PATH", DEFAULT_CONVERSATION_DB_PATH)
        _CONVERSATION_STORE = SQLiteConversationStore(path)
        logger.info("Initialised conversation store with DB path %s", _CONVERSATION_STORE.db_path)
    return _CONVERSATION_STORE


async def open_conversation_store() -> SQLiteConversationStore:
    store = initialise_conversation_store()
    await store.init()
    return store


async def close_conversation_store() -> None:
    if _CONVERSATION_STORE is not None:
        await _CONVERSATION_STORE.close()


def set_conversation_store(store: Optional[SQLiteConversationStore]) -> None:
    global _CONVERSATION_STORE
    _CONVERSATION_STORE = store


def get_conversation_store() -> SQLiteConversationStore:
    if _CONVERSATION_STORE is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Conversation store is not ready",
        )
    return _CONVERSATION_STORE
