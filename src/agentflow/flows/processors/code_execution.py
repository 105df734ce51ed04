"""Runs model-written code through the agent's code executor."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.code_executors.base import BaseCodeExecutor, CodeExecutionInput
from agentflow.code_executors.utils import (
    build_code_execution_result_part,
    convert_code_execution_parts,
    extract_code_and_truncate_content,
)
from agentflow.flows.processors.base import BaseLlmRequestProcessor, BaseLlmResponseProcessor
from agentflow.types.content import Content, Role
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest, LlmResponse

logger = logging.getLogger(__name__)


def _get_code_executor(ctx: InvocationContext) -> BaseCodeExecutor | None:
    agent = ctx.agent
    if not isinstance(agent, LlmAgent):
        return None
    return agent.code_executor


class CodeExecutionRequestProcessor(BaseLlmRequestProcessor):
    """Replays earlier code and results to the model as fenced text."""

    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        executor = _get_code_executor(ctx)
        if executor is None:
            return
        for content in llm_request.contents:
            convert_code_execution_parts(
                content,
                executor.code_block_delimiters[0],
                executor.execution_result_delimiters,
            )
        return
        yield  # pragma: no cover


class CodeExecutionResponseProcessor(BaseLlmResponseProcessor):
    """Executes the first code block of a response.

    Yields the truncated model turn ending in the code, then an event ending
    in the execution result, and clears the response content so the loop
    takes another step with the result in history.
    """

    async def run_async(
        self, ctx: InvocationContext, llm_response: LlmResponse
    ) -> AsyncGenerator[Event, None]:
        if llm_response.partial or llm_response.content is None:
            return
        executor = _get_code_executor(ctx)
        if executor is None:
            return

        content = llm_response.content
        code = extract_code_and_truncate_content(content, executor.code_block_delimiters)
        if not code:
            return

        yield Event(
            invocation_id=ctx.invocation_id,
            author=ctx.agent.name,
            branch=ctx.branch,
            content=content,
        )

        logger.debug("Executing code block for agent %s", ctx.agent.name)
        output = await executor.execute_code(
            ctx, CodeExecutionInput(code=code, execution_id=ctx.invocation_id),
        )
        yield Event(
            invocation_id=ctx.invocation_id,
            author=ctx.agent.name,
            branch=ctx.branch,
            content=Content(role=Role.MODEL, parts=[build_code_execution_result_part(output)]),
        )
        llm_response.content = None


request_processor = CodeExecutionRequestProcessor()
response_processor = CodeExecutionResponseProcessor()
