"""Planner contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from agentflow.types.content import Part

if TYPE_CHECKING:
    from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
    from agentflow.types.llm import LlmRequest


class BasePlanner(ABC):
    """Guides the model to plan before acting.

    A planner contributes an instruction to each request and may rewrite the
    parts of each response, typically marking planning text as ``thought``
    so it is hidden from the final answer.
    """

    @abstractmethod
    def build_planning_instruction(
        self, readonly_context: ReadonlyContext, llm_request: LlmRequest
    ) -> str | None: ...

    @abstractmethod
    def process_planning_response(
        self, callback_context: CallbackContext, response_parts: list[Part]
    ) -> list[Part] | None: ...
