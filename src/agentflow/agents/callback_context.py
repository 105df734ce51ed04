"""Contexts handed to instruction providers and callbacks."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from agentflow.sessions.state import State
from agentflow.types.content import Content
from agentflow.types.events import EventActions

if TYPE_CHECKING:
    from agentflow.agents.invocation_context import InvocationContext


class ReadonlyContext:
    """Read-only view of an invocation."""

    def __init__(self, invocation_context: InvocationContext) -> None:
        self._invocation_context = invocation_context

    @property
    def invocation_context(self) -> InvocationContext:
        return self._invocation_context

    @property
    def invocation_id(self) -> str:
        return self._invocation_context.invocation_id

    @property
    def agent_name(self) -> str:
        return self._invocation_context.agent.name

    @property
    def user_content(self) -> Content | None:
        return self._invocation_context.user_content

    @property
    def state(self) -> Mapping[str, Any]:
        return MappingProxyType(self._invocation_context.session.working_state)


class CallbackContext(ReadonlyContext):
    """Context for callbacks that may write state.

    Writes to :attr:`state` are collected in :attr:`actions` and reach the
    session only when the event carrying those actions is appended.
    """

    def __init__(
        self,
        invocation_context: InvocationContext,
        *,
        event_actions: EventActions | None = None,
    ) -> None:
        super().__init__(invocation_context)
        self._event_actions = event_actions if event_actions is not None else EventActions()
        self._state = State(
            value=invocation_context.session.working_state,
            delta=self._event_actions.state_delta,
        )

    @property
    def state(self) -> State:  # type: ignore[override]
        return self._state

    @property
    def actions(self) -> EventActions:
        return self._event_actions
