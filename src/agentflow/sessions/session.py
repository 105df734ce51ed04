"""Session record."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from agentflow.types.events import Event


@dataclass
class Session:
    """A conversation between a user and an app.

    ``state`` is the working copy: private keys overlaid with the app and
    user scoped keys as of the last read, plus any writes applied since.
    ``temp_state`` holds ephemeral keys for the current turn and is never
    persisted.
    """

    id: str
    app_name: str
    user_id: str
    state: dict[str, Any] = field(default_factory=dict)
    events: list[Event] = field(default_factory=list)
    last_update_time: float = field(default_factory=time.time)
    temp_state: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def working_state(self) -> dict[str, Any]:
        """Persistent state plus this turn's ephemeral keys."""
        merged = dict(self.state)
        merged.update(self.temp_state)
        return merged
