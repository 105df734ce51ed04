"""Capability protocols that pipeline stages test agents against.

An agent implements a protocol only if it has the capability; stages check
with ``isinstance`` and skip agents that do not.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
    from agentflow.tools.base import BaseTool
    from agentflow.tools.tool_context import ToolContext
    from agentflow.types.llm import LlmRequest, LlmResponse

BeforeModelCallback = Callable[
    ["CallbackContext", "LlmRequest"], "LlmResponse | None | Awaitable[LlmResponse | None]"
]
AfterModelCallback = Callable[
    ["CallbackContext", "LlmResponse"], "LlmResponse | None | Awaitable[LlmResponse | None]"
]
BeforeToolCallback = Callable[
    ["BaseTool", "dict[str, Any]", "ToolContext"],
    "dict[str, Any] | None | Awaitable[dict[str, Any] | None]",
]
AfterToolCallback = Callable[
    ["BaseTool", "dict[str, Any]", "ToolContext", Any],
    "dict[str, Any] | None | Awaitable[dict[str, Any] | None]",
]


@runtime_checkable
class ToolCapableAgent(Protocol):
    """Agent that exposes tools to the model."""

    async def canonical_tools(self, ctx: ReadonlyContext | None = None) -> list[BaseTool]: ...


@runtime_checkable
class ModelCallbackAgent(Protocol):
    """Agent with callbacks around each model call."""

    before_model_callbacks: list[BeforeModelCallback]
    after_model_callbacks: list[AfterModelCallback]


@runtime_checkable
class ToolCallbackAgent(Protocol):
    """Agent with callbacks around each tool call."""

    before_tool_callbacks: list[BeforeToolCallback]
    after_tool_callbacks: list[AfterToolCallback]
