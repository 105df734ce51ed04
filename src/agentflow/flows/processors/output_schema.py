"""Structured-output validation."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from pydantic import ValidationError

from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.errors import OutputSchemaValidationError
from agentflow.flows.processors.base import BaseLlmResponseProcessor
from agentflow.types.content import Content, Part, Role
from agentflow.types.events import Event
from agentflow.types.llm import LlmResponse

logger = logging.getLogger(__name__)

OUTPUT_SCHEMA_VALIDATION_FAILED = "OUTPUT_SCHEMA_VALIDATION_FAILED"


class OutputSchemaResponseProcessor(BaseLlmResponseProcessor):
    """Validates the final text against the agent's ``output_schema``.

    On success the text is rewritten to the model's canonical JSON. On
    failure the response becomes an error-coded response and a diagnostic
    event is yielded; the loop carries on.
    """

    async def run_async(
        self, ctx: InvocationContext, llm_response: LlmResponse
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent) or agent.output_schema is None:
            return
        if llm_response.partial or llm_response.content is None or not llm_response.content.parts:
            return
        if any(p.function_call for p in llm_response.content.parts):
            return

        text = llm_response.content.text
        if not text.strip():
            return

        try:
            validated = agent.output_schema.model_validate_json(text)
        except ValidationError as e:
            error = OutputSchemaValidationError(
                f"Output schema validation failed for agent '{agent.name}': {e}",
                agent_name=agent.name,
            )
            message = str(error)
            logger.warning("%s (response: %.200s)", message, text)
            llm_response.error_code = OUTPUT_SCHEMA_VALIDATION_FAILED
            llm_response.error_message = message
            llm_response.content = None
            yield Event(
                invocation_id=ctx.invocation_id,
                author=agent.name,
                branch=ctx.branch,
                content=Content(role=Role.MODEL, parts=[Part(text=f"Error: {message}")]),
                error_code=OUTPUT_SCHEMA_VALIDATION_FAILED,
                error_message=message,
            )
            return

        llm_response.content.parts = [
            *(p for p in llm_response.content.parts if p.thought),
            Part(text=validated.model_dump_json()),
        ]


response_processor = OutputSchemaResponseProcessor()
