"""Runner and transcript helpers for end-to-end turn tests."""

from __future__ import annotations

from typing import Any

from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.run_config import RunConfig
from agentflow.runners import InMemoryRunner
from agentflow.types.content import Content
from agentflow.types.events import Event

APP_NAME = "test_app"
USER_ID = "user_1"
SESSION_ID = "session_1"


async def new_runner(
    agent: BaseAgent,
    *,
    state: dict[str, Any] | None = None,
) -> InMemoryRunner:
    """An in-memory runner with one session already created."""
    runner = InMemoryRunner(agent, app_name=APP_NAME)
    await runner.session_service.create_session(
        app_name=APP_NAME, user_id=USER_ID, session_id=SESSION_ID, state=state,
    )
    return runner


async def collect_turn(
    runner: InMemoryRunner,
    message: Content | str,
    *,
    run_config: RunConfig | None = None,
) -> list[Event]:
    """Run one user turn and return every yielded event."""
    return [
        event
        async for event in runner.run_async(
            user_id=USER_ID,
            session_id=SESSION_ID,
            new_message=message,
            run_config=run_config,
        )
    ]


def texts_by_author(events: list[Event]) -> list[tuple[str, str]]:
    """(author, text) for each event that carries text."""
    return [(e.author, e.text) for e in events if e.text]
