"""InvocationContext - the state threaded through one agent invocation."""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from agentflow.agents.run_config import RunConfig
from agentflow.errors import LlmCallsLimitExceededError
from agentflow.sessions.base import BaseSessionService
from agentflow.sessions.session import Session
from agentflow.types.content import Content

if TYPE_CHECKING:
    from agentflow.agents.base_agent import BaseAgent


def new_invocation_id() -> str:
    return f"e-{uuid.uuid4()}"


@dataclass
class InvocationControl:
    """Mutable flags shared by every context copy of one invocation."""

    end_invocation: bool = False
    llm_call_count: int = 0


@dataclass
class InvocationContext:
    """Bundle of everything one invocation needs.

    A copy is made for each agent the invocation passes through (see
    :meth:`model_copy`); the copies share one :class:`InvocationControl`, so
    ending the invocation or counting a model call anywhere in the agent tree
    is seen everywhere.
    """

    invocation_id: str
    agent: BaseAgent
    session: Session
    session_service: BaseSessionService | None = None
    run_config: RunConfig = field(default_factory=RunConfig)
    branch: str | None = None
    user_content: Content | None = None
    control: InvocationControl = field(default_factory=InvocationControl, repr=False)

    @property
    def app_name(self) -> str:
        return self.session.app_name

    @property
    def user_id(self) -> str:
        return self.session.user_id

    @property
    def end_invocation(self) -> bool:
        return self.control.end_invocation

    @end_invocation.setter
    def end_invocation(self, value: bool) -> None:
        self.control.end_invocation = value

    def increment_llm_call_count(self) -> None:
        """Count one model call, enforcing ``run_config.max_llm_calls``."""
        self.control.llm_call_count += 1
        limit = self.run_config.max_llm_calls
        if limit > 0 and self.control.llm_call_count > limit:
            raise LlmCallsLimitExceededError(limit)

    def model_copy(self, **changes: object) -> InvocationContext:
        return dataclasses.replace(self, **changes)
