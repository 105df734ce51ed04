"""Scoped session state.

Keys are routed by prefix:

- ``app_``  shared by every session of the same app
- ``user_`` shared by every session of the same (app, user) pair
- ``temp_`` (or legacy ``_temp_``) visible for the current turn only, never persisted
- anything else is private to the session
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any


APP_PREFIX = "app_"
USER_PREFIX = "user_"
TEMP_PREFIX = "temp_"
LEGACY_TEMP_PREFIX = "_temp_"


def is_ephemeral(key: str) -> bool:
    return key.startswith((TEMP_PREFIX, LEGACY_TEMP_PREFIX))


@dataclass(slots=True)
class StateDeltaSplit:
    """A state delta partitioned by scope. Ephemeral keys are dropped."""

    app: dict[str, Any] = field(default_factory=dict)
    user: dict[str, Any] = field(default_factory=dict)
    session: dict[str, Any] = field(default_factory=dict)
    temp: dict[str, Any] = field(default_factory=dict)


def extract_state_delta(delta: dict[str, Any] | None) -> StateDeltaSplit:
    """Partition ``delta`` into app, user, session and temp scopes."""
    split = StateDeltaSplit()
    for key, value in (delta or {}).items():
        if is_ephemeral(key):
            split.temp[key] = value
        elif key.startswith(APP_PREFIX):
            split.app[key] = value
        elif key.startswith(USER_PREFIX):
            split.user[key] = value
        else:
            split.session[key] = value
    return split


def merge_state(
    session_state: dict[str, Any],
    app_state: dict[str, Any] | None = None,
    user_state: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Overlay app and user scoped maps onto a session's private state."""
    merged = dict(session_state)
    merged.update(app_state or {})
    merged.update(user_state or {})
    return merged


class State:
    """Delta-aware view over a state dict.

    Reads see pending writes first. Writes land only in the delta, which the
    owner turns into an ``EventActions.state_delta``.
    """

    APP_PREFIX = APP_PREFIX
    USER_PREFIX = USER_PREFIX
    TEMP_PREFIX = TEMP_PREFIX

    def __init__(self, value: dict[str, Any], delta: dict[str, Any]) -> None:
        self._value = value
        self._delta = delta

    def __getitem__(self, key: str) -> Any:
        if key in self._delta:
            return self._delta[key]
        return self._value[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self._delta[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._value or key in self._delta

    def __iter__(self) -> Iterator[str]:
        return iter(self.to_dict())

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self:
            return default
        return self[key]

    def update(self, delta: dict[str, Any]) -> None:
        self._delta.update(delta)

    def has_delta(self) -> bool:
        return bool(self._delta)

    def to_dict(self) -> dict[str, Any]:
        result = dict(self._value)
        result.update(self._delta)
        return result
