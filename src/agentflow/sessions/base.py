"""Session service contract and the shared event-application rule."""

from __future__ import annotations

import copy
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any

from agentflow.sessions.session import Session
from agentflow.sessions.state import StateDeltaSplit, extract_state_delta, is_ephemeral
from agentflow.types.events import Event

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"session-{uuid.uuid4().hex}"


def without_ephemeral_keys(event: Event) -> Event:
    """The form of ``event`` that may be stored: no ephemeral keys in its delta."""
    delta = event.actions.state_delta
    if not any(is_ephemeral(key) for key in delta):
        return event
    stored = copy.deepcopy(event)
    stored.actions.state_delta = {k: v for k, v in delta.items() if not is_ephemeral(k)}
    return stored


class BaseSessionService(ABC):
    """Storage contract for sessions.

    Subclasses persist; :meth:`append_event` implements the merge rule once
    for every backend via :meth:`_apply_event_to_session`.
    """

    @abstractmethod
    async def create_session(
        self,
        *,
        app_name: str,
        user_id: str,
        state: dict[str, Any] | None = None,
        session_id: str | None = None,
    ) -> Session: ...

    @abstractmethod
    async def get_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> Session | None: ...

    @abstractmethod
    async def list_sessions(self, *, app_name: str, user_id: str) -> list[Session]:
        """List a user's sessions. Returned sessions carry no events."""

    @abstractmethod
    async def delete_session(
        self,
        *,
        app_name: str,
        user_id: str,
        session_id: str,
    ) -> None: ...

    @abstractmethod
    async def update_session(self, session: Session) -> None:
        """Persist a session's private state and transcript as they stand.

        App and user scoped keys are left alone; they change only through
        :meth:`append_event`.
        """

    async def append_event(self, session: Session, event: Event) -> Event:
        """Apply ``event`` to ``session`` and persist the result.

        Partial events are returned untouched. Ephemeral keys reach the
        session's ``temp_state`` but are stripped from the stored copy.
        """
        if event.partial:
            return event
        split = self._apply_event_to_session(session, event)
        await self._persist_event(session, without_ephemeral_keys(event), split)
        return event

    @abstractmethod
    async def _persist_event(
        self, session: Session, event: Event, split: StateDeltaSplit
    ) -> None:
        """Write the scoped delta and the appended event to storage."""

    def _apply_event_to_session(self, session: Session, event: Event) -> StateDeltaSplit:
        split = extract_state_delta(event.actions.state_delta)
        session.state.update(split.session)
        session.state.update(split.app)
        session.state.update(split.user)
        session.temp_state.update(split.temp)
        session.events.append(event)
        session.last_update_time = event.timestamp
        if split.temp:
            logger.debug(
                "Skipped %d ephemeral key(s) for session %s", len(split.temp), session.id,
            )
        return split
