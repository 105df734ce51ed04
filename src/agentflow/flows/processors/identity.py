"""Tells the model which agent it is."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.invocation_context import InvocationContext
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest


class IdentityRequestProcessor(BaseLlmRequestProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        instruction = f'You are an agent. Your internal name is "{agent.name}".'
        if agent.description:
            instruction += f' The description about you is "{agent.description}".'
        llm_request.append_instructions([instruction])
        return
        yield  # pragma: no cover


request_processor = IdentityRequestProcessor()
