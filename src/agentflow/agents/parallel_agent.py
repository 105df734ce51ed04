"""ParallelAgent - fans one turn out to every sub-agent on its own branch."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.invocation_context import InvocationContext
from agentflow.types.events import Event


class ParallelAgent(BaseAgent):
    """Runs each sub-agent on the same turn, isolated from its siblings.

    A sub-agent runs on branch ``<this agent>.<sub-agent>``, nested under the
    current branch when there is one, so it never sees a sibling's events in
    its history. The sub-agents take turns yielding one event each, in tree
    order, until all of them are done; nothing runs concurrently.
    """

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        runs = [
            sub_agent.run_async(self._branch_context(sub_agent, ctx))
            for sub_agent in self.sub_agents
        ]
        async for event in interleave_agent_runs(runs):
            yield event

    def _branch_context(self, sub_agent: BaseAgent, ctx: InvocationContext) -> InvocationContext:
        suffix = f"{self.name}.{sub_agent.name}"
        branch = f"{ctx.branch}.{suffix}" if ctx.branch else suffix
        return ctx.model_copy(agent=sub_agent, branch=branch)


async def interleave_agent_runs(
    runs: list[AsyncGenerator[Event, None]],
) -> AsyncGenerator[Event, None]:
    """Round-robin over ``runs``, one event at a time.

    A run is not advanced again until the caller has taken its last event.
    """
    active = list(runs)
    try:
        while active:
            for run in list(active):
                try:
                    event = await anext(run)
                except StopAsyncIteration:
                    active.remove(run)
                    continue
                yield event
    finally:
        for run in active:
            await run.aclose()
