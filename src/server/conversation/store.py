# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

from __future__ import annotations

import asyncio
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Optional

from .converters import (
    dump_content_items,
    dump_metadata,
    from_epoch_millis,
    load_content_items,
    load_metadata,
    to_epoch_millis,
)
from .models import ConversationRecord, ConversationWithMessages, MessageRecord, MessageRole

logger = logging.getLogger(__name__)


_CONVERSATIONS_DDL = """
CREATE TABLE IF NOT EXISTS conversations (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    message_count INTEGER NOT NULL DEFAULT 0,
    is_archived INTEGER NOT NULL DEFAULT 0,
    is_pinned INTEGER NOT NULL DEFAULT 0,
    tags TEXT
);
"""

_MESSAGES_DDL = """
CREATE TABLE IF NOT EXISTS messages (
    id TEXT PRIMARY KEY,
    conversation_id TEXT NOT NULL,
    role TEXT NOT NULL,
    content TEXT NOT NULL,
    content_items TEXT,
    timestamp INTEGER NOT NULL,
    metadata TEXT,
    is_error INTEGER NOT NULL DEFAULT 0,
    token_count INTEGER NOT NULL DEFAULT 0,
    FOREIGN KEY(conversation_id) REFERENCES conversations(id) ON DELETE CASCADE
);
"""

_CREATE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_conversations_updated ON conversations(updated_at DESC);",
    "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(conversation_id);",
    "CREATE INDEX IF NOT EXISTS idx_messages_timestamp ON messages(timestamp);",
]

_CONVERSATION_COLUMNS = "id, title, created_at, updated_at, message_count, is_archived, is_pinned, tags"
_MESSAGE_COLUMNS = (
    "id, conversation_id, role, content, content_items, timestamp, metadata, is_error, token_count"
)

_COUNT_MESSAGES = "(SELECT COUNT(*) FROM messages WHERE conversation_id = ?)"

# message_count is recomputed from the message rows, never taken from the record.
_UPSERT_CONVERSATION = (
    f"INSERT INTO conversations ({_CONVERSATION_COLUMNS}) VALUES (?, ?, ?, ?, {_COUNT_MESSAGES}, ?, ?, ?)"
    " ON CONFLICT(id) DO UPDATE SET title = excluded.title, created_at = excluded.created_at,"
    " updated_at = excluded.updated_at, message_count = excluded.message_count,"
    " is_archived = excluded.is_archived, is_pinned = excluded.is_pinned, tags = excluded.tags"
)

_INSERT_MESSAGE = f"INSERT INTO messages ({_MESSAGE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)"

_RECONCILE_COUNT = (
    "UPDATE conversations SET message_count = (SELECT COUNT(*) FROM messages WHERE conversation_id = ?),"
    " updated_at = ? WHERE id = ?"
)


def _ensure_pragmas(connection: sqlite3.Connection) -> None:
    connection.execute("PRAGMA foreign_keys = ON;")
    connection.execute("PRAGMA journal_mode = WAL;")


class SQLiteConversationStore:
    """SQLite-backed repository for conversations and their messages."""

    def __init__(self, db_path: str) -> None:
        path = Path(db_path)
        if not path.is_absolute():
            path = Path.cwd() / path
        if path.suffix != ".db":
            path = path.with_suffix(".db")
        self._db_path = str(path)
        self._write_lock = asyncio.Lock()

    @property
    def db_path(self) -> str:
        return self._db_path

    async def init(self) -> None:
        """Initialise database schema."""
        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        def _init() -> None:
            with sqlite3.connect(self._db_path) as connection:
                _ensure_pragmas(connection)
                connection.execute(_CONVERSATIONS_DDL)
                connection.execute(_MESSAGES_DDL)
                for statement in _CREATE_INDEXES:
                    connection.execute(statement)
                connection.commit()

        await asyncio.to_thread(_init)
        logger.info("Conversation database initialised at %s", self._db_path)

    async def close(self) -> None:  # pragma: no cover - compatibility placeholder
        return None

    # Conversations

    async def list_conversations(self) -> list[ConversationRecord]:
        return await self._query_conversations("ORDER BY is_pinned DESC, updated_at DESC")

    async def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
            (conversation_id,),
        )
        return self._row_to_conversation(row) if row else None

    async def get_conversation_with_messages(self, conversation_id: str) -> Optional[ConversationWithMessages]:
        def _load() -> Optional[tuple[sqlite3.Row, list[sqlite3.Row]]]:
            with sqlite3.connect(self._db_path) as connection:
                connection.row_factory = sqlite3.Row
                _ensure_pragmas(connection)
                conversation = connection.execute(
                    f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
                    (conversation_id,),
                ).fetchone()
                if conversation is None:
                    return None
                messages = connection.execute(
                    f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE conversation_id = ?"
                    " ORDER BY timestamp ASC, rowid ASC",
                    (conversation_id,),
                ).fetchall()
                return conversation, messages

        loaded = await asyncio.to_thread(_load)
        if loaded is None:
            return None
        conversation_row, message_rows = loaded
        return ConversationWithMessages(
            conversation=self._row_to_conversation(conversation_row),
            messages=[self._row_to_message(row) for row in message_rows],
        )

    async def get_recent_conversations(self, limit: int = 20) -> list[ConversationRecord]:
        return await self._query_conversations("WHERE is_archived = 0 ORDER BY updated_at DESC LIMIT ?", (limit,))

    async def get_pinned_conversations(self) -> list[ConversationRecord]:
        return await self._query_conversations("WHERE is_pinned = 1 ORDER BY updated_at DESC")

    async def get_archived_conversations(self) -> list[ConversationRecord]:
        return await self._query_conversations("WHERE is_archived = 1 ORDER BY updated_at DESC")

    async def search_conversations(self, query: str) -> list[ConversationRecord]:
        return await self._query_conversations(
            "WHERE title LIKE '%' || ? || '%' ORDER BY updated_at DESC", (query,)
        )

    async def get_conversations_by_tag(self, tag: str) -> list[ConversationRecord]:
        return await self._query_conversations(
            "WHERE tags LIKE '%' || ? || '%' ORDER BY updated_at DESC", (tag,)
        )

    async def insert_conversation(self, conversation: ConversationRecord) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._execute, _UPSERT_CONVERSATION, self._conversation_params(conversation))

    async def update_conversation(self, conversation: ConversationRecord) -> None:
        async with self._write_lock:
            await asyncio.to_thread(
                self._execute,
                "UPDATE conversations SET title = ?, created_at = ?, updated_at = ?,"
                f" message_count = {_COUNT_MESSAGES}, is_archived = ?, is_pinned = ?, tags = ? WHERE id = ?",
                self._conversation_params(conversation)[1:] + (conversation.id,),
            )

    async def delete_conversation(self, conversation_id: str) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._execute, "DELETE FROM conversations WHERE id = ?", (conversation_id,))

    async def delete_all_conversations(self) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._execute, "DELETE FROM conversations")

    async def update_title(self, conversation_id: str, title: str) -> None:
        await self._touch("title = ?", title, conversation_id)

    async def update_message_count(self, conversation_id: str, count: int) -> None:
        await self._touch("message_count = ?", count, conversation_id)

    async def set_pinned(self, conversation_id: str, pinned: bool) -> None:
        await self._touch("is_pinned = ?", int(pinned), conversation_id)

    async def set_archived(self, conversation_id: str, archived: bool) -> None:
        await self._touch("is_archived = ?", int(archived), conversation_id)

    async def set_tags(self, conversation_id: str, tags: list[str]) -> None:
        cleaned = [tag.strip() for tag in tags if tag.strip()]
        await self._touch("tags = ?", ",".join(cleaned) or None, conversation_id)

    # Messages

    async def get_messages(self, conversation_id: str) -> list[MessageRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE conversation_id = ? ORDER BY timestamp ASC, rowid ASC",
            (conversation_id,),
        )
        return [self._row_to_message(row) for row in rows]

    async def get_recent_messages(self, conversation_id: str, limit: int) -> list[MessageRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE conversation_id = ?"
            " ORDER BY timestamp DESC, rowid DESC LIMIT ?",
            (conversation_id, limit),
        )
        return [self._row_to_message(row) for row in rows]

    async def get_message(self, message_id: str) -> Optional[MessageRecord]:
        row = await asyncio.to_thread(
            self._fetchone,
            f"SELECT {_MESSAGE_COLUMNS} FROM messages WHERE id = ?",
            (message_id,),
        )
        return self._row_to_message(row) if row else None

    async def get_last_message(self, conversation_id: str) -> Optional[MessageRecord]:
        messages = await self.get_recent_messages(conversation_id, 1)
        return messages[0] if messages else None

    async def insert_message(self, message: MessageRecord) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self._execute, _INSERT_MESSAGE, self._message_params(message))

    async def insert_messages(self, messages: Iterable[MessageRecord]) -> None:
        params = [self._message_params(message) for message in messages]
        if not params:
            return

        def _insert() -> None:
            with sqlite3.connect(self._db_path) as connection:
                _ensure_pragmas(connection)
                connection.executemany(_INSERT_MESSAGE, params)

        async with self._write_lock:
            await asyncio.to_thread(_insert)

    async def delete_all_messages(self, conversation_id: str) -> None:
        now = to_epoch_millis(_utc_now())

        def _delete() -> None:
            with sqlite3.connect(self._db_path) as connection:
                _ensure_pragmas(connection)
                connection.execute("DELETE FROM messages WHERE conversation_id = ?", (conversation_id,))
                connection.execute(_RECONCILE_COUNT, (conversation_id, now, conversation_id))

        async with self._write_lock:
            await asyncio.to_thread(_delete)

    async def get_message_count(self, conversation_id: str) -> int:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT COUNT(*) AS total FROM messages WHERE conversation_id = ?",
            (conversation_id,),
        )
        return int(row["total"]) if row else 0

    async def get_total_token_count(self, conversation_id: str) -> int:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT COALESCE(SUM(token_count), 0) AS total FROM messages WHERE conversation_id = ?",
            (conversation_id,),
        )
        return int(row["total"]) if row else 0

    # Combined operations

    async def create_conversation_with_message(
        self, conversation: ConversationRecord, message: MessageRecord
    ) -> ConversationRecord:
        """Insert a conversation and its first message in one transaction."""
        conversation_params = self._conversation_params(conversation)
        message_params = self._message_params(message)
        now = to_epoch_millis(_utc_now())

        def _create() -> sqlite3.Row:
            with sqlite3.connect(self._db_path) as connection:
                connection.row_factory = sqlite3.Row
                _ensure_pragmas(connection)
                connection.execute(_UPSERT_CONVERSATION, conversation_params)
                connection.execute(_INSERT_MESSAGE, message_params)
                connection.execute(_RECONCILE_COUNT, (conversation.id, now, conversation.id))
                return connection.execute(
                    f"SELECT {_CONVERSATION_COLUMNS} FROM conversations WHERE id = ?",
                    (conversation.id,),
                ).fetchone()

        async with self._write_lock:
            row = await asyncio.to_thread(_create)
        return self._row_to_conversation(row)

    async def add_message_and_update(self, message: MessageRecord) -> int:
        """Insert a message and reconcile its conversation's count; returns the new count."""
        params = self._message_params(message)
        now = to_epoch_millis(_utc_now())

        def _add() -> int:
            with sqlite3.connect(self._db_path) as connection:
                connection.row_factory = sqlite3.Row
                _ensure_pragmas(connection)
                connection.execute(_INSERT_MESSAGE, params)
                connection.execute(_RECONCILE_COUNT, (message.conversation_id, now, message.conversation_id))
                row = connection.execute(
                    "SELECT message_count FROM conversations WHERE id = ?",
                    (message.conversation_id,),
                ).fetchone()
                return int(row["message_count"])

        async with self._write_lock:
            return await asyncio.to_thread(_add)

    async def _query_conversations(self, clause: str, params: tuple = ()) -> list[ConversationRecord]:
        rows = await asyncio.to_thread(
            self._fetchall,
            f"SELECT {_CONVERSATION_COLUMNS} FROM conversations {clause}",
            params,
        )
        return [self._row_to_conversation(row) for row in rows]

    async def _touch(self, assignment: str, value: object, conversation_id: str) -> None:
        now = to_epoch_millis(_utc_now())
        async with self._write_lock:
            await asyncio.to_thread(
                self._execute,
                f"UPDATE conversations SET {assignment}, updated_at = ? WHERE id = ?",
                (value, now, conversation_id),
            )

    def _execute(self, query: str, params: tuple = ()) -> None:
        with sqlite3.connect(self._db_path) as connection:
            _ensure_pragmas(connection)
            connection.execute(query, params)
            connection.commit()

    def _fetchall(self, query: str, params: tuple = ()) -> list[sqlite3.Row]:
        with sqlite3.connect(self._db_path) as connection:
            connection.row_factory = sqlite3.Row
            _ensure_pragmas(connection)
            cursor = connection.execute(query, params)
            return cursor.fetchall()

    def _fetchone(self, query: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with sqlite3.connect(self._db_path) as connection:
            connection.row_factory = sqlite3.Row
            _ensure_pragmas(connection)
            cursor = connection.execute(query, params)
            return cursor.fetchone()

    @staticmethod
    def _conversation_params(conversation: ConversationRecord) -> tuple:
        return (
            conversation.id,
            conversation.title,
            to_epoch_millis(conversation.created_at),
            to_epoch_millis(conversation.updated_at),
            conversation.id,  # binds _COUNT_MESSAGES
            int(conversation.is_archived),
            int(conversation.is_pinned),
            conversation.tags,
        )

    @staticmethod
    def _message_params(message: MessageRecord) -> tuple:
        return (
            message.id,
            message.conversation_id,
            message.role.value,
            message.content,
            dump_content_items(message.content_items),
            to_epoch_millis(message.timestamp),
            dump_metadata(message.metadata),
            int(message.is_error),
            message.token_count,
        )

    @staticmethod
    def _row_to_conversation(row: sqlite3.Row) -> ConversationRecord:
        return ConversationRecord(
            id=row["id"],
            title=row["title"],
            created_at=from_epoch_millis(row["created_at"]),
            updated_at=from_epoch_millis(row["updated_at"]),
            message_count=row["message_count"],
            is_archived=bool(row["is_archived"]),
            is_pinned=bool(row["is_pinned"]),
            tags=row["tags"],
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            id=row["id"],
            conversation_id=row["conversation_id"],
            role=MessageRole(row["role"]),
            content=row["content"],
            content_items=load_content_items(row["content_items"]),
            timestamp=from_epoch_millis(row["timestamp"]),
            metadata=load_metadata(row["metadata"]),
            is_error=bool(row["is_error"]),
            token_count=row["token_count"],
        )


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)
