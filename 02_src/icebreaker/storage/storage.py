"""SQLite storage implementation."""

import json
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import (
    IntroductionData,
    Message,
    Origin,
    RegistryEntry,
    SessionRecord,
    SessionState,
    TraceEvent,
)


class IStorage(Protocol):
    """Persistent storage for sessions, registry and traces (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Sessions
    async def save_session(self, record: SessionRecord) -> None:
        """Insert or replace a session record."""
        ...

    async def get_session(self, user_id: str) -> SessionRecord | None:
        """Get a session record by user ID."""
        ...

    async def get_session_ids(
        self, states: list[SessionState] | None = None
    ) -> list[str]:
        """User IDs of stored sessions, optionally only those in `states`."""
        ...

    async def delete_session(self, user_id: str) -> None:
        """Delete a session record and its messages."""
        ...

    # Messages
    async def save_message(self, user_id: str, message: Message) -> None:
        """Append a message to a session's log."""
        ...

    async def get_messages(self, user_id: str) -> list[Message]:
        """Get a session's log, oldest first."""
        ...

    # Unpaired registry
    async def save_unpaired(self, user_id: str, joined_at: datetime) -> None:
        """Upsert a registry entry."""
        ...

    async def delete_unpaired(self, user_id: str) -> None:
        """Delete a registry entry (no-op if absent)."""
        ...

    async def get_unpaired(self) -> list[RegistryEntry]:
        """Get all registry entries."""
        ...

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)

        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    def _connection(self) -> aiosqlite.Connection:
        if not self._conn:
            raise RuntimeError("Storage not initialized")
        return self._conn

    # Sessions
    async def save_session(self, record: SessionRecord) -> None:
        """Insert or replace a session record."""
        conn = self._connection()

        introduction = (
            json.dumps(record.introduction.to_dict()) if record.introduction else None
        )
        await conn.execute(
            """
            INSERT OR REPLACE INTO sessions
            (user_id, state, partner_id, introduction, updated_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
            """,
            (record.user_id, record.state.value, record.partner_id, introduction),
        )
        await conn.commit()

    async def get_session(self, user_id: str) -> SessionRecord | None:
        """Get a session record by user ID."""
        conn = self._connection()

        cursor = await conn.execute(
            """
            SELECT user_id, state, partner_id, introduction
            FROM sessions
            WHERE user_id = ?
            """,
            (user_id,),
        )
        row = await cursor.fetchone()

        if not row:
            return None

        return SessionRecord(
            user_id=row[0],
            state=SessionState(row[1]),
            partner_id=row[2],
            introduction=(
                IntroductionData.model_validate(json.loads(row[3])) if row[3] else None
            ),
        )

    async def get_session_ids(
        self, states: list[SessionState] | None = None
    ) -> list[str]:
        """User IDs of stored sessions, optionally only those in `states`."""
        conn = self._connection()

        query = "SELECT user_id FROM sessions"
        params: list = []
        if states:
            query += f" WHERE state IN ({','.join('?' * len(states))})"
            params.extend(state.value for state in states)

        cursor = await conn.execute(query + " ORDER BY user_id", params)
        rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def delete_session(self, user_id: str) -> None:
        """Delete a session record and its messages."""
        conn = self._connection()

        await conn.execute("DELETE FROM messages WHERE user_id = ?", (user_id,))
        await conn.execute("DELETE FROM sessions WHERE user_id = ?", (user_id,))
        await conn.commit()

    # Messages
    async def save_message(self, user_id: str, message: Message) -> None:
        """Append a message to a session's log."""
        conn = self._connection()

        await conn.execute(
            """
            INSERT INTO messages (id, user_id, origin, content, sender_id, timestamp)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                message.id or str(uuid.uuid4()),
                user_id,
                message.origin.value,
                message.content,
                message.sender_id,
                message.timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def get_messages(self, user_id: str) -> list[Message]:
        """Get a session's log, oldest first."""
        conn = self._connection()

        cursor = await conn.execute(
            """
            SELECT id, origin, content, sender_id, timestamp
            FROM messages
            WHERE user_id = ?
            ORDER BY timestamp ASC, rowid ASC
            """,
            (user_id,),
        )
        rows = await cursor.fetchall()

        return [
            Message(
                id=row[0],
                origin=Origin(row[1]),
                content=row[2],
                sender_id=row[3],
                timestamp=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # Unpaired registry
    async def save_unpaired(self, user_id: str, joined_at: datetime) -> None:
        """Upsert a registry entry."""
        conn = self._connection()

        await conn.execute(
            """
            INSERT OR REPLACE INTO unpaired_users (user_id, joined_at)
            VALUES (?, ?)
            """,
            (user_id, joined_at.isoformat()),
        )
        await conn.commit()

    async def delete_unpaired(self, user_id: str) -> None:
        """Delete a registry entry (no-op if absent)."""
        conn = self._connection()

        await conn.execute("DELETE FROM unpaired_users WHERE user_id = ?", (user_id,))
        await conn.commit()

    async def get_unpaired(self) -> list[RegistryEntry]:
        """Get all registry entries, earliest first."""
        conn = self._connection()

        cursor = await conn.execute(
            """
            SELECT user_id, joined_at
            FROM unpaired_users
            ORDER BY joined_at ASC
            """
        )
        rows = await cursor.fetchall()

        return [
            RegistryEntry(user_id=row[0], joined_at=datetime.fromisoformat(row[1]))
            for row in rows
        ]

    # TraceEvents
    async def save_trace_event(self, event: TraceEvent) -> None:
        """Save a trace event."""
        conn = self._connection()

        await conn.execute(
            """
            INSERT INTO trace_events (id, event_type, actor, data, timestamp)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                json.dumps(event.data),
                event.timestamp.isoformat(),
            ),
        )
        await conn.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Get trace events with optional filters (newest first)."""
        conn = self._connection()

        conditions = []
        params: list = []

        if after:
            conditions.append("timestamp > ?")
            params.append(after.isoformat())
        if event_types:
            placeholders = ",".join("?" * len(event_types))
            conditions.append(f"event_type IN ({placeholders})")
            params.extend(event_types)
        if actor:
            conditions.append("actor = ?")
            params.append(actor)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        query = f"""
            SELECT id, event_type, actor, data, timestamp
            FROM trace_events
            {where_clause}
            ORDER BY timestamp DESC, rowid DESC
            LIMIT ?
        """
        params.append(limit)

        cursor = await conn.execute(query, params)
        rows = await cursor.fetchall()

        return [
            TraceEvent(
                id=row[0],
                event_type=row[1],
                actor=row[2],
                data=json.loads(row[3]),
                timestamp=datetime.fromisoformat(row[4]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        conn = self._connection()

        for table in ["messages", "sessions", "unpaired_users", "trace_events"]:
            await conn.execute(f"DELETE FROM {table}")

        await conn.commit()
