"""Tool base types and abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from agentflow.types.llm import FunctionDeclaration

if TYPE_CHECKING:
    from agentflow.tools.tool_context import ToolContext
    from agentflow.types.llm import LlmRequest


class ToolParam(BaseModel):
    """Pydantic model for tool parameter validation."""

    model_config = {"extra": "forbid"}


class BaseTool(ABC):
    """A capability the model can call by name.

    ``run`` returns the tool's result, or ``None`` when a long-running tool
    has no result yet.
    """

    def __init__(self, *, name: str, description: str = "", is_long_running: bool = False) -> None:
        self.name = name
        self.description = description
        self.is_long_running = is_long_running

    def get_declaration(self) -> FunctionDeclaration | None:
        """Schema advertised to the model, or None for request-only tools."""
        return None

    @abstractmethod
    async def run(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any: ...

    async def process_llm_request(
        self, *, tool_context: ToolContext, llm_request: LlmRequest
    ) -> None:
        """Contribute to the outgoing request. Declares the tool by default."""
        llm_request.append_tools([self])

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
