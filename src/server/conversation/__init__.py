# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

"""Conversation management package providing SQLite-backed persistence and APIs."""

from .dependencies import get_conversation_store
from .store import SQLiteConversationStore

__all__ = ["SQLiteConversationStore", "get_conversation_store"]
