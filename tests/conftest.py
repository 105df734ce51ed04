"""Global test fixtures for agentflow."""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from pathlib import Path

import pytest

from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.invocation_context import InvocationContext, new_invocation_id
from agentflow.agents.run_config import RunConfig
from agentflow.models.registry import LlmRegistry
from agentflow.sessions.in_memory import InMemorySessionService
from agentflow.sessions.session import Session
from agentflow.sessions.sqlite import SqliteSessionService
from agentflow.types.content import Content
from agentflow.types.events import Event

APP = "test_app"
USER = "user_1"


@pytest.fixture(autouse=True)
def _reset_llm_registry():
    """Keep model registrations from leaking between tests."""
    yield
    LlmRegistry.clear()


@pytest.fixture
def tmp_workdir(tmp_path: Path) -> Path:
    """Provide a temporary working directory for config tests."""
    return tmp_path


@pytest.fixture
def session_service() -> InMemorySessionService:
    return InMemorySessionService()


@pytest.fixture
async def sqlite_service(tmp_path: Path) -> AsyncIterator[SqliteSessionService]:
    service = SqliteSessionService(tmp_path / "sessions.db")
    await service.initialize()
    yield service
    await service.close()


@pytest.fixture
async def session(session_service: InMemorySessionService) -> Session:
    return await session_service.create_session(app_name=APP, user_id=USER)


@pytest.fixture
def make_context(
    session: Session, session_service: InMemorySessionService
) -> Callable[..., InvocationContext]:
    """Build an InvocationContext for an agent over the shared session."""

    def _make(
        agent: BaseAgent,
        *,
        user_text: str | None = None,
        run_config: RunConfig | None = None,
        branch: str | None = None,
    ) -> InvocationContext:
        invocation_id = new_invocation_id()
        user_content = None
        if user_text is not None:
            user_content = Content.from_text(user_text)
            session.events.append(
                Event(invocation_id=invocation_id, author="user", content=user_content)
            )
        return InvocationContext(
            invocation_id=invocation_id,
            agent=agent,
            session=session,
            session_service=session_service,
            run_config=run_config or RunConfig(),
            branch=branch,
            user_content=user_content,
        )

    return _make
