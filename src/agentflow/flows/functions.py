"""Function-call dispatch.

Calls from one model turn run one at a time, in the order the model emitted
them, and their results are merged into a single function-response event.
Every call writes into the action bundle of the triggering event, so a call
sees the state written by the calls before it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from agentflow.agents.base_agent import maybe_await
from agentflow.agents.capabilities import ToolCallbackAgent
from agentflow.errors import ToolNotFoundError
from agentflow.tools.auth import REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
from agentflow.tools.tool_context import ToolContext
from agentflow.types.content import Content, FunctionCall, Part, Role
from agentflow.types.events import Event

if TYPE_CHECKING:
    from agentflow.agents.invocation_context import InvocationContext
    from agentflow.tools.base import BaseTool

logger = logging.getLogger(__name__)

AF_FUNCTION_CALL_ID_PREFIX = "af-"


def generate_client_function_call_id() -> str:
    return f"{AF_FUNCTION_CALL_ID_PREFIX}{uuid.uuid4()}"


def populate_client_function_call_id(event: Event) -> None:
    """Give every function call in ``event`` an id if the model left it empty."""
    for function_call in event.get_function_calls():
        if not function_call.id:
            function_call.id = generate_client_function_call_id()


def remove_client_function_call_id(content: Content) -> None:
    """Strip client-minted ids so the model never sees them."""
    for part in content.parts:
        if part.function_call and (part.function_call.id or "").startswith(
            AF_FUNCTION_CALL_ID_PREFIX
        ):
            part.function_call.id = None
        if part.function_response and (part.function_response.id or "").startswith(
            AF_FUNCTION_CALL_ID_PREFIX
        ):
            part.function_response.id = None


def get_long_running_function_calls(
    function_calls: Iterable[FunctionCall],
    tools_dict: dict[str, BaseTool],
) -> set[str]:
    return {
        fc.id
        for fc in function_calls
        if fc.id and fc.name in tools_dict and tools_dict[fc.name].is_long_running
    }


def generate_auth_event(ctx: InvocationContext, function_response_event: Event) -> Event | None:
    """Build the credential-request event for a function-response event.

    One ``af_request_credential`` call is emitted per pending auth config,
    each with a fresh id that is marked long-running.
    """
    requested = function_response_event.actions.requested_auth_configs
    if not requested:
        return None

    parts: list[Part] = []
    long_running_ids: set[str] = set()
    for function_call_id, auth_config in requested.items():
        call_id = generate_client_function_call_id()
        long_running_ids.add(call_id)
        parts.append(
            Part.from_function_call(
                REQUEST_CREDENTIAL_FUNCTION_CALL_NAME,
                {"function_call_id": function_call_id, "auth_config": auth_config},
                id=call_id,
            )
        )
    role = function_response_event.content.role if function_response_event.content else Role.USER
    return Event(
        invocation_id=ctx.invocation_id,
        author=ctx.agent.name,
        branch=ctx.branch,
        content=Content(role=role, parts=parts),
        long_running_tool_ids=long_running_ids,
    )


async def handle_function_calls(
    ctx: InvocationContext,
    function_call_event: Event,
    tools_dict: dict[str, BaseTool],
    filters: set[str] | None = None,
) -> Event | None:
    """Run the function calls of ``function_call_event``.

    ``filters`` restricts dispatch to the given call ids. Returns the merged
    function-response event, or None when no call produced a result.

    Raises:
        ToolNotFoundError: a call names a tool that is not in ``tools_dict``.
    """
    agent = ctx.agent
    response_events: list[Event] = []

    for function_call in function_call_event.get_function_calls():
        if filters is not None and function_call.id not in filters:
            continue
        tool = tools_dict.get(function_call.name)
        if tool is None:
            raise ToolNotFoundError(function_call.name)

        tool_context = ToolContext(
            ctx,
            function_call_id=function_call.id,
            event_actions=function_call_event.actions,
        )
        args = dict(function_call.args or {})
        logger.debug("Calling tool %s (id=%s)", tool.name, function_call.id)

        result: Any = None
        if isinstance(agent, ToolCallbackAgent):
            for callback in agent.before_tool_callbacks:
                result = await maybe_await(callback(tool, args, tool_context))
                if result:
                    break

        if not result:
            result = await tool.run(args=args, tool_context=tool_context)

        if isinstance(agent, ToolCallbackAgent):
            for callback in agent.after_tool_callbacks:
                altered = await maybe_await(callback(tool, args, tool_context, result))
                if altered is not None:
                    result = altered
                    break

        if tool.is_long_running and result is None:
            continue

        response_events.append(_build_response_event(ctx, tool, result, tool_context))

    if not response_events:
        return None
    return merge_parallel_function_response_events(response_events)


def _build_response_event(
    ctx: InvocationContext,
    tool: BaseTool,
    result: Any,
    tool_context: ToolContext,
) -> Event:
    if not isinstance(result, dict):
        result = {"result": result}
    part = Part.from_function_response(tool.name, result, id=tool_context.function_call_id)
    return Event(
        invocation_id=ctx.invocation_id,
        author=ctx.agent.name,
        branch=ctx.branch,
        content=Content(role=Role.USER, parts=[part]),
        actions=tool_context.actions,
    )


def merge_parallel_function_response_events(events: list[Event]) -> Event:
    """Merge function-response events into one, keeping call order.

    Parts are concatenated and actions merged with :meth:`EventActions.merge`.
    The first event's invocation, author, branch and timestamp are kept.
    """
    if not events:
        raise ValueError("No function response events provided")
    if len(events) == 1:
        return events[0]

    base = events[0]
    parts = [part for event in events if event.content for part in event.content.parts]
    merged = Event(
        invocation_id=base.invocation_id,
        author=base.author,
        branch=base.branch,
        content=Content(role=Role.USER, parts=parts),
        actions=base.actions.merge(*(e.actions for e in events[1:])),
    )
    merged.timestamp = base.timestamp
    return merged


def find_function_call_event(events: list[Event], call_ids: set[str]) -> Event | None:
    """Most recent event holding a function call with one of ``call_ids``."""
    for event in reversed(events):
        if any(fc.id in call_ids for fc in event.get_function_calls()):
            return event
    return None
