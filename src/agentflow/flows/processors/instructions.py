"""Global and agent instruction assembly."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.callback_context import ReadonlyContext
from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest
from agentflow.utilities.instructions import inject_session_state


class InstructionsRequestProcessor(BaseLlmRequestProcessor):
    """Adds the root agent's global instruction, then the agent's own.

    Only the root agent's ``global_instruction`` takes effect.
    """

    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent):
            return

        readonly_context = ReadonlyContext(ctx)
        root = agent.root_agent
        if isinstance(root, LlmAgent) and root.global_instruction:
            text, bypass = await root.canonical_global_instruction(readonly_context)
            if not bypass:
                text = await inject_session_state(text, readonly_context)
            llm_request.append_instructions([text])

        if agent.instruction:
            text, bypass = await agent.canonical_instruction(readonly_context)
            if not bypass:
                text = await inject_session_state(text, readonly_context)
            llm_request.append_instructions([text])
        return
        yield  # pragma: no cover


request_processor = InstructionsRequestProcessor()
