"""BaseLlmFlow - the invocation loop of a model-driven agent.

One *step* builds a request, calls the model and turns each response into an
event, dispatching any function calls it carries. The loop repeats steps until
a step yields nothing or ends on a final response.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from agentflow.agents.base_agent import BaseAgent, maybe_await
from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
from agentflow.agents.capabilities import ModelCallbackAgent, ToolCapableAgent
from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.agents.run_config import StreamingMode
from agentflow.errors import AgentNotFoundError, ConfigurationError, PartialEventError
from agentflow.flows import functions
from agentflow.flows.processors.base import BaseLlmRequestProcessor, BaseLlmResponseProcessor
from agentflow.models.base import BaseLlm
from agentflow.tools.tool_context import ToolContext
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest, LlmResponse

logger = logging.getLogger(__name__)

AGENT_NAME_LABEL_KEY = "agentflow_agent_name"


class BaseLlmFlow:
    """Drives an agent's turn to completion.

    Subclasses choose the request and response stages; the loop, the model
    call and function-call dispatch live here.
    """

    def __init__(self) -> None:
        self.request_processors: list[BaseLlmRequestProcessor] = []
        self.response_processors: list[BaseLlmResponseProcessor] = []

    async def run_async(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        """Run steps until the turn is complete.

        Raises:
            PartialEventError: a step ended on a partial event.
        """
        step = 0
        while True:
            step += 1
            last_event: Event | None = None
            async for event in self._run_one_step_async(ctx):
                last_event = event
                yield event

            if last_event is None or last_event.is_final_response():
                logger.debug("Agent %s finished after %d step(s)", ctx.agent.name, step)
                return
            if last_event.partial:
                raise PartialEventError()
            if ctx.end_invocation:
                logger.debug("Invocation %s ended by request", ctx.invocation_id)
                return

    async def run_live(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        """Bidirectional streaming entry point; runs the standard loop."""
        async for event in self.run_async(ctx):
            yield event

    async def _run_one_step_async(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        llm_request = LlmRequest()

        async for event in self._preprocess_async(ctx, llm_request):
            yield event
        if ctx.end_invocation:
            return

        model_response_event = Event(
            id=Event.new_id(),
            invocation_id=ctx.invocation_id,
            author=ctx.agent.name,
            branch=ctx.branch,
        )
        async for llm_response in self._call_llm_async(ctx, llm_request, model_response_event):
            async for event in self._postprocess_async(
                ctx, llm_request, llm_response, model_response_event
            ):
                model_response_event.id = Event.new_id()
                yield event

    async def _preprocess_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        for processor in self.request_processors:
            async for event in processor.run_async(ctx, llm_request):
                yield event
            if ctx.end_invocation:
                return

        agent = ctx.agent
        if isinstance(agent, ToolCapableAgent):
            for tool in await agent.canonical_tools(ReadonlyContext(ctx)):
                await tool.process_llm_request(
                    tool_context=ToolContext(ctx), llm_request=llm_request,
                )

    async def _postprocess_async(
        self,
        ctx: InvocationContext,
        llm_request: LlmRequest,
        llm_response: LlmResponse,
        model_response_event: Event,
    ) -> AsyncGenerator[Event, None]:
        for processor in self.response_processors:
            async for event in processor.run_async(ctx, llm_response):
                yield event

        if (
            llm_response.content is None
            and not llm_response.error_code
            and not llm_response.interrupted
        ):
            return

        event = self._finalize_model_response_event(llm_request, llm_response, model_response_event)
        yield event

        if event.get_function_calls() and not event.partial:
            async for dispatched in self._postprocess_handle_function_calls_async(
                ctx, event, llm_request
            ):
                yield dispatched

    async def _postprocess_handle_function_calls_async(
        self,
        ctx: InvocationContext,
        function_call_event: Event,
        llm_request: LlmRequest,
    ) -> AsyncGenerator[Event, None]:
        response_event = await functions.handle_function_calls(
            ctx, function_call_event, llm_request.tools_dict,
        )
        if response_event is None:
            return

        auth_event = functions.generate_auth_event(ctx, response_event)
        if auth_event is not None:
            yield auth_event
        yield response_event

        transfer_to_agent = response_event.actions.transfer_to_agent
        if transfer_to_agent:
            agent_to_run = self._get_agent_to_run(ctx, transfer_to_agent)
            logger.info("Transferring from %s to %s", ctx.agent.name, agent_to_run.name)
            async for event in agent_to_run.run_async(ctx):
                yield event

    def _get_agent_to_run(self, ctx: InvocationContext, agent_name: str) -> BaseAgent:
        agent_to_run = ctx.agent.root_agent.find_agent(agent_name)
        if agent_to_run is None:
            raise AgentNotFoundError(agent_name)
        return agent_to_run

    async def _call_llm_async(
        self,
        ctx: InvocationContext,
        llm_request: LlmRequest,
        model_response_event: Event,
    ) -> AsyncGenerator[LlmResponse, None]:
        response = await self._handle_before_model_callback(ctx, llm_request, model_response_event)
        if response is not None:
            yield response
            return

        llm_request.config.labels.setdefault(AGENT_NAME_LABEL_KEY, ctx.agent.name)
        llm = self._get_llm(ctx)
        ctx.increment_llm_call_count()
        stream = ctx.run_config.streaming_mode == StreamingMode.SSE
        logger.debug(
            "Calling model %s for agent %s (stream=%s, contents=%d, tools=%d)",
            llm.model,
            ctx.agent.name,
            stream,
            len(llm_request.contents),
            len(llm_request.tools_dict),
        )

        async for llm_response in llm.generate(llm_request, stream=stream):
            altered = await self._handle_after_model_callback(ctx, llm_response, model_response_event)
            yield altered if altered is not None else llm_response

    async def _handle_before_model_callback(
        self,
        ctx: InvocationContext,
        llm_request: LlmRequest,
        model_response_event: Event,
    ) -> LlmResponse | None:
        agent = ctx.agent
        if not isinstance(agent, ModelCallbackAgent) or not agent.before_model_callbacks:
            return None
        callback_context = CallbackContext(ctx, event_actions=model_response_event.actions)
        for callback in agent.before_model_callbacks:
            response = await maybe_await(callback(callback_context, llm_request))
            if response is not None:
                return response
        return None

    async def _handle_after_model_callback(
        self,
        ctx: InvocationContext,
        llm_response: LlmResponse,
        model_response_event: Event,
    ) -> LlmResponse | None:
        agent = ctx.agent
        if not isinstance(agent, ModelCallbackAgent) or not agent.after_model_callbacks:
            return None
        callback_context = CallbackContext(ctx, event_actions=model_response_event.actions)
        for callback in agent.after_model_callbacks:
            response = await maybe_await(callback(callback_context, llm_response))
            if response is not None:
                return response
        return None

    def _finalize_model_response_event(
        self,
        llm_request: LlmRequest,
        llm_response: LlmResponse,
        model_response_event: Event,
    ) -> Event:
        event = Event.from_llm_response(
            llm_response,
            invocation_id=model_response_event.invocation_id,
            author=model_response_event.author,
            branch=model_response_event.branch,
            actions=model_response_event.actions,
            id=model_response_event.id,
        )
        event.timestamp = model_response_event.timestamp
        function_calls = event.get_function_calls()
        if function_calls:
            functions.populate_client_function_call_id(event)
            event.long_running_tool_ids = (
                functions.get_long_running_function_calls(function_calls, llm_request.tools_dict)
                or None
            )
        return event

    def _get_llm(self, ctx: InvocationContext) -> BaseLlm:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent):
            raise ConfigurationError(f"Agent {agent.name!r} has no model")
        return agent.canonical_model
