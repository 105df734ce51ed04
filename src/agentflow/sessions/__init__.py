"""Session storage: scoped state, session records, and service backends."""

from agentflow.sessions.base import BaseSessionService
from agentflow.sessions.in_memory import InMemorySessionService
from agentflow.sessions.session import Session
from agentflow.sessions.sqlite import SqliteSessionService
from agentflow.sessions.state import (
    APP_PREFIX,
    TEMP_PREFIX,
    USER_PREFIX,
    State,
    StateDeltaSplit,
    extract_state_delta,
    is_ephemeral,
    merge_state,
)

__all__ = [
    "APP_PREFIX",
    "TEMP_PREFIX",
    "USER_PREFIX",
    "BaseSessionService",
    "InMemorySessionService",
    "Session",
    "SqliteSessionService",
    "State",
    "StateDeltaSplit",
    "extract_state_delta",
    "is_ephemeral",
    "merge_state",
]
