"""In-memory session service."""

from __future__ import annotations

import asyncio
import copy
import logging
import time
from collections import defaultdict
from typing import Any

from agentflow.sessions.base import BaseSessionService, new_session_id, without_ephemeral_keys
from agentflow.sessions.session import Session
from agentflow.sessions.state import StateDeltaSplit, extract_state_delta, merge_state
from agentflow.types.events import Event

logger = logging.getLogger(__name__)


class InMemorySessionService(BaseSessionService):
    """Keeps sessions and the app/user overlays in process memory.

    Stored sessions hold only private state. Overlays are merged in on every
    read, so a write made through one session is visible on the next read of
    any other session in the same scope. Overlay writes are serialized with
    one lock per app and one per (app, user).
    """

    def __init__(self) -> None:
        self._sessions: dict[str, dict[str, dict[str, Session]]] = defaultdict(
            lambda: defaultdict(dict)
        )
        self._app_state: dict[str, dict[str, Any]] = defaultdict(dict)
        self._user_state: dict[str, dict[str, dict[str, Any]]] = defaultdict(
            lambda: defaultdict(dict)
        )
        self._app_locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._user_locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session:
        sid = session_id.strip() if session_id and session_id.strip() else new_session_id()
        if sid in self._sessions[app_name][user_id]:
            raise ValueError(f"Session already exists: {sid}")

        split = extract_state_delta(state)
        await self._write_overlays(app_name, user_id, split)

        stored = Session(
            id=sid,
            app_name=app_name,
            user_id=user_id,
            state=dict(split.session),
            last_update_time=time.time(),
        )
        self._sessions[app_name][user_id][sid] = stored
        logger.debug("Created session %s for %s/%s", sid, app_name, user_id)
        return self._merged_copy(stored)

    async def get_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> Session | None:
        stored = self._sessions.get(app_name, {}).get(user_id, {}).get(session_id)
        if stored is None:
            return None
        return self._merged_copy(stored)

    async def list_sessions(self, *, app_name: str, user_id: str) -> list[Session]:
        sessions: list[Session] = []
        for stored in self._sessions.get(app_name, {}).get(user_id, {}).values():
            listed = self._merged_copy(stored)
            listed.events = []
            sessions.append(listed)
        sessions.sort(key=lambda s: s.last_update_time, reverse=True)
        return sessions

    async def delete_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None:
        self._sessions.get(app_name, {}).get(user_id, {}).pop(session_id, None)

    async def update_session(self, session: Session) -> None:
        stored = self._sessions.get(session.app_name, {}).get(session.user_id, {}).get(session.id)
        if stored is None:
            raise KeyError(f"Session not found: {session.id}")
        split = extract_state_delta(session.state)
        stored.state = dict(split.session)
        stored.events = [copy.deepcopy(without_ephemeral_keys(e)) for e in session.events]
        stored.last_update_time = time.time()

    async def _persist_event(
        self, session: Session, event: Event, split: StateDeltaSplit
    ) -> None:
        stored = self._sessions.get(session.app_name, {}).get(session.user_id, {}).get(session.id)
        if stored is None:
            logger.warning("append_event on unknown session %s; not persisted", session.id)
            return
        await self._write_overlays(session.app_name, session.user_id, split)
        stored.state.update(split.session)
        stored.events.append(copy.deepcopy(event))
        stored.last_update_time = event.timestamp

    async def _write_overlays(self, app_name: str, user_id: str, split: StateDeltaSplit) -> None:
        if split.app:
            async with self._app_locks[app_name]:
                self._app_state[app_name].update(split.app)
        if split.user:
            async with self._user_locks[(app_name, user_id)]:
                self._user_state[app_name][user_id].update(split.user)

    def _merged_copy(self, stored: Session) -> Session:
        session = copy.deepcopy(stored)
        session.state = merge_state(
            stored.state,
            self._app_state.get(stored.app_name),
            self._user_state.get(stored.app_name, {}).get(stored.user_id),
        )
        return session
