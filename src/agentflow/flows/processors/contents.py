"""Conversation history assembly.

Builds ``llm_request.contents`` from the session transcript as seen by the
current agent:

- events outside the agent's branch ancestry are hidden
- other agents' turns are reframed as user-role "For context:" text
- partial, empty and credential-request events are dropped
- each function-call turn is followed directly by its response turn
- client-minted function call ids are removed
"""

from __future__ import annotations

import copy
import json
from collections.abc import AsyncGenerator

from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.flows.functions import remove_client_function_call_id
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.tools.auth import REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
from agentflow.types.content import Content, Part, Role
from agentflow.types.events import USER_AUTHOR, Event
from agentflow.types.llm import LlmRequest


class ContentsRequestProcessor(BaseLlmRequestProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent):
            return
        events = ctx.session.events
        if agent.include_contents == "none":
            events = _current_turn_events(events, agent.name)
        llm_request.contents = get_contents(ctx.branch, events, agent.name)
        return
        yield  # pragma: no cover


request_processor = ContentsRequestProcessor()


def get_contents(current_branch: str | None, events: list[Event], agent_name: str) -> list[Content]:
    filtered: list[Event] = []
    for event in events:
        if event.partial or not _has_content(event):
            continue
        if not _is_event_in_branch(current_branch, event):
            continue
        if _is_auth_event(event):
            continue
        if _is_other_agent_reply(agent_name, event):
            filtered.append(_convert_foreign_event(event))
        else:
            filtered.append(event)

    arranged = _rearrange_events_for_latest_function_response(filtered)
    arranged = _rearrange_events_for_async_function_responses(arranged)

    contents: list[Content] = []
    for event in arranged:
        content = copy.deepcopy(event.content)
        if content is None:
            continue
        remove_client_function_call_id(content)
        contents.append(content)
    return contents


def _current_turn_events(events: list[Event], agent_name: str) -> list[Event]:
    """Events from the latest message by the user or another agent onward."""
    for i in range(len(events) - 1, -1, -1):
        event = events[i]
        if event.author == USER_AUTHOR or _is_other_agent_reply(agent_name, event):
            return events[i:]
    return []


def _has_content(event: Event) -> bool:
    if event.content is None or not event.content.parts:
        return False
    return not (len(event.content.parts) == 1 and event.content.parts[0].text == "")


def _is_event_in_branch(current_branch: str | None, event: Event) -> bool:
    if not current_branch or not event.branch:
        return True
    return current_branch == event.branch or current_branch.startswith(f"{event.branch}.")


def _is_auth_event(event: Event) -> bool:
    for part in event.parts:
        if part.function_call and part.function_call.name == REQUEST_CREDENTIAL_FUNCTION_CALL_NAME:
            return True
        if (
            part.function_response
            and part.function_response.name == REQUEST_CREDENTIAL_FUNCTION_CALL_NAME
        ):
            return True
    return False


def _is_other_agent_reply(agent_name: str, event: Event) -> bool:
    return bool(agent_name) and event.author not in (agent_name, USER_AUTHOR)


def _convert_foreign_event(event: Event) -> Event:
    """Reframe another agent's turn as user-role context text."""
    parts = [Part(text="For context:")]
    for part in event.parts:
        if part.thought:
            continue
        if part.text:
            parts.append(Part(text=f"[{event.author}] said: {part.text}"))
        elif part.function_call:
            fc = part.function_call
            parts.append(
                Part(
                    text=f"[{event.author}] called tool `{fc.name}` with parameters: "
                    f"{json.dumps(fc.args, default=str)}"
                )
            )
        elif part.function_response:
            fr = part.function_response
            parts.append(
                Part(
                    text=f"[{event.author}] `{fr.name}` tool returned result: "
                    f"{json.dumps(fr.response, default=str)}"
                )
            )
        else:
            parts.append(part)

    return Event(
        invocation_id=event.invocation_id,
        author=USER_AUTHOR,
        branch=event.branch,
        content=Content(role=Role.USER, parts=parts),
        timestamp=event.timestamp,
    )


def _merge_function_response_events(events: list[Event]) -> Event:
    """Merge response events; a later response for the same id replaces an earlier one."""
    merged = copy.deepcopy(events[0])
    if merged.content is None:
        raise ValueError("Function response event has no content")
    parts = merged.content.parts
    index_by_id: dict[str | None, int] = {
        part.function_response.id: i for i, part in enumerate(parts) if part.function_response
    }
    for event in events[1:]:
        for part in event.parts:
            if part.function_response is None:
                parts.append(part)
                continue
            call_id = part.function_response.id
            if call_id in index_by_id:
                parts[index_by_id[call_id]] = part
            else:
                parts.append(part)
                index_by_id[call_id] = len(parts) - 1
    return merged


def _rearrange_events_for_latest_function_response(events: list[Event]) -> list[Event]:
    """Move the latest function response next to its call.

    Needed when a long-running call completes after other turns happened.
    """
    if len(events) < 2:
        return events
    responses = events[-1].get_function_responses()
    if not responses:
        return events
    response_ids = {fr.id for fr in responses}

    if any(fc.id in response_ids for fc in events[-2].get_function_calls()):
        return events

    call_index = -1
    for i in range(len(events) - 2, -1, -1):
        calls = events[i].get_function_calls()
        if any(fc.id in response_ids for fc in calls):
            call_index = i
            response_ids.update(fc.id for fc in calls)
            break
    if call_index == -1:
        raise ValueError(f"No function call event found for function responses ids: {response_ids}")

    response_events: list[Event] = []
    for event in events[call_index + 1 : -1]:
        event_responses = event.get_function_responses()
        if event_responses and event_responses[0].id in response_ids:
            response_events.append(event)
    response_events.append(events[-1])

    result = events[: call_index + 1]
    result.append(_merge_function_response_events(response_events))
    return result


def _rearrange_events_for_async_function_responses(events: list[Event]) -> list[Event]:
    """Place each call's response turn right after the call turn."""
    response_index_by_id: dict[str | None, int] = {}
    for i, event in enumerate(events):
        for fr in event.get_function_responses():
            response_index_by_id[fr.id] = i

    result: list[Event] = []
    for event in events:
        if event.get_function_responses():
            continue
        calls = event.get_function_calls()
        result.append(event)
        if not calls:
            continue
        indices = sorted({response_index_by_id[fc.id] for fc in calls if fc.id in response_index_by_id})
        if len(indices) == 1:
            result.append(events[indices[0]])
        elif indices:
            result.append(_merge_function_response_events([events[i] for i in indices]))
    return result
