"""BaseAgent - the agent tree and the agent-level callback wrapper."""

from __future__ import annotations

import inspect
import logging
import re
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import Any

from agentflow.agents.callback_context import CallbackContext
from agentflow.agents.invocation_context import InvocationContext
from agentflow.types.content import Content
from agentflow.types.events import USER_AUTHOR, Event

logger = logging.getLogger(__name__)

_AGENT_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_-]*")

AgentCallback = Callable[[CallbackContext], "Content | None | Awaitable[Content | None]"]


async def maybe_await(value: Any) -> Any:
    """Resolve a callback result that may or may not be awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value


class BaseAgent:
    """A node in the agent tree.

    Subclasses implement :meth:`_run_async_impl`. :meth:`run_async` wraps it
    with the before/after agent callbacks.
    """

    def __init__(
        self,
        *,
        name: str,
        description: str = "",
        sub_agents: list[BaseAgent] | None = None,
        before_agent_callbacks: list[AgentCallback] | None = None,
        after_agent_callbacks: list[AgentCallback] | None = None,
    ) -> None:
        if not _AGENT_NAME.fullmatch(name):
            raise ValueError(f"Invalid agent name: {name!r}")
        if name == USER_AUTHOR:
            raise ValueError(f"Agent name cannot be {USER_AUTHOR!r}")
        self.name = name
        self.description = description
        self.parent_agent: BaseAgent | None = None
        self.sub_agents: list[BaseAgent] = []
        self.before_agent_callbacks: list[AgentCallback] = list(before_agent_callbacks or [])
        self.after_agent_callbacks: list[AgentCallback] = list(after_agent_callbacks or [])
        for sub_agent in sub_agents or []:
            self.add_sub_agent(sub_agent)

    def add_sub_agent(self, agent: BaseAgent) -> None:
        if agent.parent_agent is not None:
            raise ValueError(
                f"Agent {agent.name!r} already has parent {agent.parent_agent.name!r}"
            )
        agent.parent_agent = self
        self.sub_agents.append(agent)

    @property
    def root_agent(self) -> BaseAgent:
        agent = self
        while agent.parent_agent is not None:
            agent = agent.parent_agent
        return agent

    def find_agent(self, name: str) -> BaseAgent | None:
        """This agent or a descendant with the given name."""
        if self.name == name:
            return self
        return self.find_sub_agent(name)

    def find_sub_agent(self, name: str) -> BaseAgent | None:
        for sub_agent in self.sub_agents:
            found = sub_agent.find_agent(name)
            if found is not None:
                return found
        return None

    async def run_async(self, parent_context: InvocationContext) -> AsyncGenerator[Event, None]:
        """Run this agent, yielding its events."""
        ctx = parent_context.model_copy(agent=self)
        logger.debug("Agent %s starting invocation %s", self.name, ctx.invocation_id)

        event = await self._handle_before_agent_callbacks(ctx)
        if event is not None:
            yield event
        if ctx.end_invocation:
            return

        async for event in self._run_async_impl(ctx):
            yield event

        if ctx.end_invocation:
            return

        event = await self._handle_after_agent_callbacks(ctx)
        if event is not None:
            yield event

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        raise NotImplementedError(f"{type(self).__name__} must implement _run_async_impl")
        yield  # pragma: no cover

    async def _handle_before_agent_callbacks(self, ctx: InvocationContext) -> Event | None:
        """Run before-agent callbacks. Returned content ends the invocation."""
        if not self.before_agent_callbacks:
            return None
        callback_context = CallbackContext(ctx)
        for callback in self.before_agent_callbacks:
            content = await maybe_await(callback(callback_context))
            if content is not None:
                ctx.end_invocation = True
                return self._callback_event(ctx, callback_context, content)
        if callback_context.state.has_delta():
            return self._callback_event(ctx, callback_context, None)
        return None

    async def _handle_after_agent_callbacks(self, ctx: InvocationContext) -> Event | None:
        if not self.after_agent_callbacks:
            return None
        callback_context = CallbackContext(ctx)
        for callback in self.after_agent_callbacks:
            content = await maybe_await(callback(callback_context))
            if content is not None:
                return self._callback_event(ctx, callback_context, content)
        if callback_context.state.has_delta():
            return self._callback_event(ctx, callback_context, None)
        return None

    def _callback_event(
        self,
        ctx: InvocationContext,
        callback_context: CallbackContext,
        content: Content | None,
    ) -> Event:
        return Event(
            invocation_id=ctx.invocation_id,
            author=self.name,
            branch=ctx.branch,
            content=content,
            actions=callback_context.actions,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
