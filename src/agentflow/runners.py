"""Runner - the entry point that ties an agent tree to a session service."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.invocation_context import InvocationContext, new_invocation_id
from agentflow.agents.llm_agent import LlmAgent
from agentflow.agents.run_config import RunConfig
from agentflow.errors import SessionNotFoundError
from agentflow.sessions.base import BaseSessionService
from agentflow.sessions.in_memory import InMemorySessionService
from agentflow.sessions.session import Session
from agentflow.types.content import Content
from agentflow.types.events import USER_AUTHOR, Event, user_event
from agentflow.utilities.logger import (
    bind_invocation_context,
    clear_invocation_context,
    get_logger,
)


class Runner:
    """Runs an agent tree against stored sessions.

    Every non-partial event is appended to the session before it is yielded,
    so a caller that stops iterating never loses an event it has seen.
    """

    def __init__(
        self,
        *,
        app_name: str,
        agent: BaseAgent,
        session_service: BaseSessionService,
    ) -> None:
        self.app_name = app_name
        self.agent = agent
        self.session_service = session_service
        self._log = get_logger("agentflow.runner", app_name=app_name)

    async def run_async(
        self,
        *,
        user_id: str,
        session_id: str,
        new_message: Content | str,
        run_config: RunConfig | None = None,
    ) -> AsyncGenerator[Event, None]:
        """Process one user message and yield the resulting events.

        Raises:
            SessionNotFoundError: the session does not exist.
        """
        session = await self.session_service.get_session(
            app_name=self.app_name, user_id=user_id, session_id=session_id,
        )
        if session is None:
            raise SessionNotFoundError(session_id)

        if isinstance(new_message, str):
            new_message = Content.from_text(new_message)
        invocation_id = new_invocation_id()
        bind_invocation_context(
            user_id=user_id, session_id=session_id, invocation_id=invocation_id,
        )
        try:
            await self.session_service.append_event(session, user_event(invocation_id, new_message))

            ctx = InvocationContext(
                invocation_id=invocation_id,
                agent=self._find_agent_to_run(session),
                session=session,
                session_service=self.session_service,
                run_config=run_config or RunConfig(),
                user_content=new_message,
            )
            self._log.info("invocation_started", agent=ctx.agent.name)

            count = 0
            async for event in ctx.agent.run_async(ctx):
                if not event.partial:
                    await self.session_service.append_event(session, event)
                    count += 1
                yield event
            self._log.info("invocation_finished", events=count)
        finally:
            session.temp_state.clear()
            clear_invocation_context()

    def _find_agent_to_run(self, session: Session) -> BaseAgent:
        """Pick the agent that should answer the new message.

        A reply to a function call goes to the agent that made the call.
        Otherwise the conversation stays with the last agent that spoke,
        provided control could have moved back up the tree to it.
        """
        event = _find_matching_function_call(session.events)
        if event is not None:
            agent = self.agent.find_agent(event.author)
            if agent is not None:
                return agent

        for event in reversed(session.events):
            if event.author == USER_AUTHOR:
                continue
            if event.author == self.agent.name:
                return self.agent
            sub_agent = self.agent.find_sub_agent(event.author)
            if sub_agent is None:
                self._log.warning("unknown_event_author", author=event.author)
                continue
            if _is_transferable_across_agent_tree(sub_agent):
                return sub_agent
        return self.agent


class InMemoryRunner(Runner):
    """Runner backed by an :class:`InMemorySessionService`."""

    def __init__(self, agent: BaseAgent, *, app_name: str = "InMemoryRunner") -> None:
        super().__init__(
            app_name=app_name,
            agent=agent,
            session_service=InMemorySessionService(),
        )


def _find_matching_function_call(events: list[Event]) -> Event | None:
    """The event holding the call that the last event responds to."""
    if not events:
        return None
    responses = events[-1].get_function_responses()
    if not responses:
        return None
    response_ids = {r.id for r in responses if r.id}
    for event in reversed(events[:-1]):
        if any(fc.id in response_ids for fc in event.get_function_calls()):
            return event
    return None


def _is_transferable_across_agent_tree(agent: BaseAgent) -> bool:
    current: BaseAgent | None = agent
    while current is not None:
        if not isinstance(current, LlmAgent) or current.disallow_transfer_to_parent:
            return False
        current = current.parent_agent
    return True
