"""Model and generation config setup."""

from __future__ import annotations

import copy
from collections.abc import AsyncGenerator

from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.types.events import Event
from agentflow.types.llm import GenerateConfig, LlmRequest


class BasicRequestProcessor(BaseLlmRequestProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent):
            return

        llm_request.model = agent.canonical_model.model
        llm_request.config = (
            copy.deepcopy(agent.generate_config) if agent.generate_config else GenerateConfig()
        )
        if agent.output_schema is not None:
            llm_request.set_output_schema(agent.output_schema)
        return
        yield  # pragma: no cover


request_processor = BasicRequestProcessor()
