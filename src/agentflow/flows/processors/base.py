"""Pipeline stage contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agentflow.agents.invocation_context import InvocationContext
    from agentflow.types.events import Event
    from agentflow.types.llm import LlmRequest, LlmResponse


class BaseLlmRequestProcessor(ABC):
    """One stage of request assembly.

    A stage may mutate the request and yield events; it may also set
    ``ctx.end_invocation`` to stop the step before the model is called.
    """

    @abstractmethod
    def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]: ...


class BaseLlmResponseProcessor(ABC):
    """One stage of response post-processing, run before finalization."""

    @abstractmethod
    def run_async(
        self, ctx: InvocationContext, llm_response: LlmResponse
    ) -> AsyncGenerator[Event, None]: ...
