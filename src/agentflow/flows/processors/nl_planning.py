"""Planner hooks on both sides of the model call.

Runs after history assembly: the request side clears ``thought`` marks left
on history so earlier planning text is sent back as ordinary content.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.flows.processors.base import BaseLlmRequestProcessor, BaseLlmResponseProcessor
from agentflow.planners.base import BasePlanner
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest, LlmResponse


def _get_planner(ctx: InvocationContext) -> BasePlanner | None:
    agent = ctx.agent
    if not isinstance(agent, LlmAgent):
        return None
    return agent.planner


class NlPlanningRequestProcessor(BaseLlmRequestProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        planner = _get_planner(ctx)
        if planner is None:
            return
        instruction = planner.build_planning_instruction(ReadonlyContext(ctx), llm_request)
        if instruction:
            llm_request.append_instructions([instruction])
        for content in llm_request.contents:
            for part in content.parts:
                part.thought = False
        return
        yield  # pragma: no cover


class NlPlanningResponseProcessor(BaseLlmResponseProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_response: LlmResponse
    ) -> AsyncGenerator[Event, None]:
        if llm_response.partial or llm_response.content is None or not llm_response.content.parts:
            return
        planner = _get_planner(ctx)
        if planner is None:
            return

        callback_context = CallbackContext(ctx)
        processed = planner.process_planning_response(callback_context, llm_response.content.parts)
        if processed is not None:
            llm_response.content.parts = processed

        if callback_context.state.has_delta():
            yield Event(
                invocation_id=ctx.invocation_id,
                author=ctx.agent.name,
                branch=ctx.branch,
                actions=callback_context.actions,
            )


request_processor = NlPlanningRequestProcessor()
response_processor = NlPlanningResponseProcessor()
