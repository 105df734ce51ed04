"""Resumes function calls whose credential request was answered."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator

from agentflow.agents.callback_context import ReadonlyContext
from agentflow.agents.capabilities import ToolCapableAgent
from agentflow.agents.invocation_context import InvocationContext
from agentflow.flows.functions import find_function_call_event, handle_function_calls
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.tools.auth import REQUEST_CREDENTIAL_FUNCTION_CALL_NAME, AuthConfig
from agentflow.types.events import USER_AUTHOR, Event
from agentflow.types.llm import LlmRequest

logger = logging.getLogger(__name__)


class AuthPreprocessor(BaseLlmRequestProcessor):
    """Picks up ``af_request_credential`` responses when the user just replied.

    Each response carries the tool's :class:`AuthConfig` with the exchanged
    credential filled in. The credentials are written to temp-scoped state
    through a state-only event, then the original function calls are run
    again, restricted to the ids that were waiting on credentials.
    """

    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, ToolCapableAgent):
            return
        events = ctx.session.events
        if not events or events[-1].author != USER_AUTHOR:
            return
        last_user_event = events[-1]

        credential_call_ids: set[str] = set()
        state_delta: dict[str, object] = {}
        for response in last_user_event.get_function_responses():
            if response.name != REQUEST_CREDENTIAL_FUNCTION_CALL_NAME or not response.id:
                continue
            credential_call_ids.add(response.id)
            auth_config = AuthConfig.from_dict(response.response)
            state_delta[auth_config.state_key] = auth_config.exchanged_credential
        if not credential_call_ids:
            return

        request_event = find_function_call_event(events, credential_call_ids)
        if request_event is None:
            logger.warning("No credential request found for ids %s", sorted(credential_call_ids))
            return
        tools_to_resume = {
            fc.args["function_call_id"]
            for fc in request_event.get_function_calls()
            if fc.id in credential_call_ids and "function_call_id" in fc.args
        }
        original_event = find_function_call_event(events, tools_to_resume)
        if original_event is None:
            return

        credential_event = Event(
            invocation_id=ctx.invocation_id,
            author=agent.name,
            branch=ctx.branch,
        )
        credential_event.actions.state_delta.update(state_delta)
        yield credential_event

        tools = await agent.canonical_tools(ReadonlyContext(ctx))
        response_event = await handle_function_calls(
            ctx,
            original_event,
            {tool.name: tool for tool in tools},
            tools_to_resume,
        )
        if response_event is not None:
            yield response_event


request_processor = AuthPreprocessor()
