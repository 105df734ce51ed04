"""SQLite-backed session service using aiosqlite.

Persists sessions, their event transcripts, and the app/user scoped state
overlays. Each append writes the scoped delta and the event in one
transaction.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any

import aiosqlite

from agentflow.sessions.base import BaseSessionService, new_session_id, without_ephemeral_keys
from agentflow.sessions.session import Session
from agentflow.sessions.state import StateDeltaSplit, extract_state_delta, merge_state
from agentflow.types.events import Event

logger = logging.getLogger(__name__)

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS sessions (
    app_name TEXT NOT NULL,
    user_id TEXT NOT NULL,
    id TEXT NOT NULL,
    state TEXT NOT NULL DEFAULT '{}',
    create_time REAL NOT NULL,
    update_time REAL NOT NULL,
    PRIMARY KEY (app_name, user_id, id)
);

CREATE TABLE IF NOT EXISTS events (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL,
    app_name TEXT NOT NULL,
    user_id TEXT NOT NULL,
    session_id TEXT NOT NULL,
    invocation_id TEXT NOT NULL DEFAULT '',
    author TEXT NOT NULL DEFAULT '',
    timestamp REAL NOT NULL,
    data TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS app_states (
    app_name TEXT PRIMARY KEY,
    state TEXT NOT NULL DEFAULT '{}',
    update_time REAL NOT NULL
);

CREATE TABLE IF NOT EXISTS user_states (
    app_name TEXT NOT NULL,
    user_id TEXT NOT NULL,
    state TEXT NOT NULL DEFAULT '{}',
    update_time REAL NOT NULL,
    PRIMARY KEY (app_name, user_id)
);

CREATE INDEX IF NOT EXISTS idx_events_session ON events(app_name, user_id, session_id);
"""


class SqliteSessionService(BaseSessionService):
    """Async SQLite session service.

    Call :meth:`initialize` before use and :meth:`close` when done.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """Open the database and create tables."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(str(self._db_path))
        self._db.row_factory = aiosqlite.Row
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.executescript(CREATE_TABLES_SQL)
        await self._db.commit()

    async def close(self) -> None:
        """Close the database connection."""
        if self._db:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> SqliteSessionService:
        await self.initialize()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    def _ensure_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise RuntimeError("SqliteSessionService not initialized. Call initialize() first.")
        return self._db

    # --- Session operations ---

    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        db = self._ensure_db()
        sid = session_id.strip() if session_id and session_id.strip() else new_session_id()
        split = extract_state_delta(state)
        now = time.time()
        async with self._write_lock:
            try:
                await db.execute(
                    "INSERT INTO sessions (app_name, user_id, id, state, create_time, update_time) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (app_name, user_id, sid, json.dumps(split.session), now, now),
                )
            except aiosqlite.IntegrityError as e:
                raise ValueError(f"Session already exists: {sid}") from e
            await self._write_overlays(db, app_name, user_id, split, now)
            await db.commit()

        app_state, user_state = await self._read_overlays(app_name, user_id)
        return Session(
            id=sid,
            app_name=app_name,
            user_id=user_id,
            state=merge_state(split.session, app_state, user_state),
            last_update_time=now,
        )

    async def get_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> Session | None:
        db = self._ensure_db()
        async with db.execute(
            "SELECT * FROM sessions WHERE app_name = ? AND user_id = ? AND id = ?",
            (app_name, user_id, session_id),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None

        async with db.execute(
            "SELECT data FROM events WHERE app_name = ? AND user_id = ? AND session_id = ? "
            "ORDER BY seq",
            (app_name, user_id, session_id),
        ) as cursor:
            event_rows = await cursor.fetchall()

        app_state, user_state = await self._read_overlays(app_name, user_id)
        return Session(
            id=row["id"],
            app_name=row["app_name"],
            user_id=row["user_id"],
            state=merge_state(json.loads(row["state"]), app_state, user_state),
            events=[Event.from_dict(json.loads(r["data"])) for r in event_rows],
            last_update_time=row["update_time"],
        )

    async def list_sessions(self, *, app_name: str, user_id: str) -> list[Session]:
        db = self._ensure_db()
        async with db.execute(
            "SELECT * FROM sessions WHERE app_name = ? AND user_id = ? ORDER BY update_time DESC",
            (app_name, user_id),
        ) as cursor:
            rows = await cursor.fetchall()
        app_state, user_state = await self._read_overlays(app_name, user_id)
        return [
            Session(
                id=r["id"],
                app_name=r["app_name"],
                user_id=r["user_id"],
                state=merge_state(json.loads(r["state"]), app_state, user_state),
                last_update_time=r["update_time"],
            )
            for r in rows
        ]

    async def delete_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None:
        db = self._ensure_db()
        async with self._write_lock:
            await db.execute(
                "DELETE FROM events WHERE app_name = ? AND user_id = ? AND session_id = ?",
                (app_name, user_id, session_id),
            )
            await db.execute(
                "DELETE FROM sessions WHERE app_name = ? AND user_id = ? AND id = ?",
                (app_name, user_id, session_id),
            )
            await db.commit()

    async def update_session(self, session: Session) -> None:
        db = self._ensure_db()
        split = extract_state_delta(session.state)
        now = time.time()
        async with self._write_lock:
            await db.execute(
                "UPDATE sessions SET state = ?, update_time = ? "
                "WHERE app_name = ? AND user_id = ? AND id = ?",
                (json.dumps(split.session), now, session.app_name, session.user_id, session.id),
            )
            await db.execute(
                "DELETE FROM events WHERE app_name = ? AND user_id = ? AND session_id = ?",
                (session.app_name, session.user_id, session.id),
            )
            for event in session.events:
                await self._insert_event(db, session, without_ephemeral_keys(event))
            await db.commit()

    async def _persist_event(
        self, session: Session, event: Event, split: StateDeltaSplit
    ) -> None:
        db = self._ensure_db()
        async with self._write_lock:
            async with db.execute(
                "SELECT state FROM sessions WHERE app_name = ? AND user_id = ? AND id = ?",
                (session.app_name, session.user_id, session.id),
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                logger.warning("append_event on unknown session %s; not persisted", session.id)
                return
            private = json.loads(row["state"])
            private.update(split.session)
            await db.execute(
                "UPDATE sessions SET state = ?, update_time = ? "
                "WHERE app_name = ? AND user_id = ? AND id = ?",
                (json.dumps(private), event.timestamp, session.app_name, session.user_id, session.id),
            )
            await self._write_overlays(db, session.app_name, session.user_id, split, event.timestamp)
            await self._insert_event(db, session, event)
            await db.commit()

    # --- Internals ---

    async def _insert_event(self, db: aiosqlite.Connection, session: Session, event: Event) -> None:
        await db.execute(
            "INSERT INTO events (id, app_name, user_id, session_id, invocation_id, author, "
            "timestamp, data) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (
                event.id,
                session.app_name,
                session.user_id,
                session.id,
                event.invocation_id,
                event.author,
                event.timestamp,
                json.dumps(event.to_dict()),
            ),
        )

    async def _read_overlays(
        self, app_name: str, user_id: str
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        db = self._ensure_db()
        async with db.execute(
            "SELECT state FROM app_states WHERE app_name = ?", (app_name,)
        ) as cursor:
            app_row = await cursor.fetchone()
        async with db.execute(
            "SELECT state FROM user_states WHERE app_name = ? AND user_id = ?",
            (app_name, user_id),
        ) as cursor:
            user_row = await cursor.fetchone()
        app_state = json.loads(app_row["state"]) if app_row else {}
        user_state = json.loads(user_row["state"]) if user_row else {}
        return app_state, user_state

    async def _write_overlays(
        self,
        db: aiosqlite.Connection,
        app_name: str,
        user_id: str,
        split: StateDeltaSplit,
        now: float,
    ) -> None:
        """Merge scoped deltas into the overlay rows. Caller holds the write lock."""
        app_state, user_state = await self._read_overlays(app_name, user_id)
        if split.app:
            app_state.update(split.app)
            await db.execute(
                "INSERT INTO app_states (app_name, state, update_time) VALUES (?, ?, ?) "
                "ON CONFLICT(app_name) DO UPDATE SET state = excluded.state, "
                "update_time = excluded.update_time",
                (app_name, json.dumps(app_state), now),
            )
        if split.user:
            user_state.update(split.user)
            await db.execute(
                "INSERT INTO user_states (app_name, user_id, state, update_time) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(app_name, user_id) DO UPDATE SET state = excluded.state, "
                "update_time = excluded.update_time",
                (app_name, user_id, json.dumps(user_state), now),
            )
