"""Conversation events and their side-effect bundles.

An :class:`Event` is one durable step of a conversation: either a model
response or the outcome of one or more tool calls. Its :class:`EventActions`
carry the side effects (state writes, agent transfer, credential requests)
that the session service applies once the event is appended.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

from agentflow.types.content import (
    Content,
    FunctionCall,
    FunctionResponse,
    content_from_dict,
    content_to_dict,
)
from agentflow.types.llm import FinishReason, LlmResponse, TokenUsage

USER_AUTHOR = "user"


def new_event_id() -> str:
    """Short random id for an event."""
    return uuid.uuid4().hex[:8]


@dataclass
class EventActions:
    """Side effects attached to an event."""

    state_delta: dict[str, Any] = field(default_factory=dict)
    artifact_delta: dict[str, int] = field(default_factory=dict)
    transfer_to_agent: str | None = None
    requested_auth_configs: dict[str, Any] = field(default_factory=dict)
    skip_summarization: bool | None = None
    escalate: bool | None = None

    def merge(self, *others: EventActions) -> EventActions:
        """Return a new bundle combining this one with ``others`` in order.

        State, artifact and auth maps are unioned (later bundles win per
        key). Flags are truthy-wins. The last non-empty transfer target wins.
        """
        merged = EventActions(
            state_delta=dict(self.state_delta),
            artifact_delta=dict(self.artifact_delta),
            transfer_to_agent=self.transfer_to_agent,
            requested_auth_configs=dict(self.requested_auth_configs),
            skip_summarization=self.skip_summarization,
            escalate=self.escalate,
        )
        for other in others:
            merged.state_delta.update(other.state_delta)
            merged.artifact_delta.update(other.artifact_delta)
            merged.requested_auth_configs.update(other.requested_auth_configs)
            if other.transfer_to_agent:
                merged.transfer_to_agent = other.transfer_to_agent
            if other.skip_summarization:
                merged.skip_summarization = True
            if other.escalate:
                merged.escalate = True
        return merged

    def to_dict(self) -> dict[str, Any]:
        return {
            "state_delta": dict(self.state_delta),
            "artifact_delta": dict(self.artifact_delta),
            "transfer_to_agent": self.transfer_to_agent,
            "requested_auth_configs": dict(self.requested_auth_configs),
            "skip_summarization": self.skip_summarization,
            "escalate": self.escalate,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EventActions:
        return cls(
            state_delta=dict(data.get("state_delta") or {}),
            artifact_delta=dict(data.get("artifact_delta") or {}),
            transfer_to_agent=data.get("transfer_to_agent"),
            requested_auth_configs=dict(data.get("requested_auth_configs") or {}),
            skip_summarization=data.get("skip_summarization"),
            escalate=data.get("escalate"),
        )


@dataclass
class Event(LlmResponse):
    """An LlmResponse attributed to an author within one invocation.

    ``branch`` is the dotted agent ancestry (``root.child.grandchild``) used
    to hide sibling agents' history from each other. ``long_running_tool_ids``
    names the function calls in this event whose results arrive later.
    """

    invocation_id: str = ""
    author: str = ""
    actions: EventActions = field(default_factory=EventActions)
    long_running_tool_ids: set[str] | None = None
    branch: str | None = None
    id: str = field(default_factory=new_event_id)
    timestamp: float = field(default_factory=time.time)

    new_id = staticmethod(new_event_id)

    @classmethod
    def from_llm_response(
        cls,
        response: LlmResponse,
        *,
        invocation_id: str,
        author: str,
        branch: str | None = None,
        actions: EventActions | None = None,
        id: str | None = None,
    ) -> Event:
        """Merge a model response into a fresh event shell."""
        return cls(
            content=response.content,
            finish_reason=response.finish_reason,
            usage=response.usage,
            error_code=response.error_code,
            error_message=response.error_message,
            partial=response.partial,
            interrupted=response.interrupted,
            turn_complete=response.turn_complete,
            custom_metadata=response.custom_metadata,
            invocation_id=invocation_id,
            author=author,
            branch=branch,
            actions=actions if actions is not None else EventActions(),
            id=id or new_event_id(),
        )

    def get_function_calls(self) -> list[FunctionCall]:
        if self.content is None:
            return []
        return [p.function_call for p in self.content.parts if p.function_call]

    def get_function_responses(self) -> list[FunctionResponse]:
        if self.content is None:
            return []
        return [p.function_response for p in self.content.parts if p.function_response]

    def has_trailing_code_execution_result(self) -> bool:
        if self.content is None or not self.content.parts:
            return False
        return self.content.parts[-1].code_execution_result is not None

    def is_final_response(self) -> bool:
        """Whether this event ends the agent's turn."""
        if self.actions.skip_summarization or self.long_running_tool_ids:
            return True
        return (
            not self.get_function_calls()
            and not self.get_function_responses()
            and not self.partial
            and not self.has_trailing_code_execution_result()
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "invocation_id": self.invocation_id,
            "author": self.author,
            "branch": self.branch,
            "timestamp": self.timestamp,
            "content": content_to_dict(self.content) if self.content else None,
            "actions": self.actions.to_dict(),
            "long_running_tool_ids": sorted(self.long_running_tool_ids)
            if self.long_running_tool_ids
            else None,
            "finish_reason": self.finish_reason,
            "usage": {
                "prompt_tokens": self.usage.prompt_tokens,
                "candidates_tokens": self.usage.candidates_tokens,
                "total_tokens": self.usage.total_tokens,
            }
            if self.usage
            else None,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "partial": self.partial,
            "interrupted": self.interrupted,
            "turn_complete": self.turn_complete,
            "custom_metadata": self.custom_metadata,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Event:
        usage = data.get("usage")
        finish = data.get("finish_reason")
        lr_ids = data.get("long_running_tool_ids")
        return cls(
            content=content_from_dict(data["content"]) if data.get("content") else None,
            finish_reason=FinishReason(finish) if finish else None,
            usage=TokenUsage(**usage) if usage else None,
            error_code=data.get("error_code"),
            error_message=data.get("error_message"),
            partial=bool(data.get("partial", False)),
            interrupted=bool(data.get("interrupted", False)),
            turn_complete=bool(data.get("turn_complete", False)),
            custom_metadata=data.get("custom_metadata"),
            invocation_id=data.get("invocation_id", ""),
            author=data.get("author", ""),
            actions=EventActions.from_dict(data.get("actions") or {}),
            long_running_tool_ids=set(lr_ids) if lr_ids else None,
            branch=data.get("branch"),
            id=data.get("id") or new_event_id(),
            timestamp=data.get("timestamp", time.time()),
        )


def user_event(invocation_id: str, content: Content) -> Event:
    """Event recording a new user message."""
    return Event(invocation_id=invocation_id, author=USER_AUTHOR, content=content)
