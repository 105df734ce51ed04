"""Request and response types for the model boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from agentflow.types.content import Content, Part

if TYPE_CHECKING:
    from pydantic import BaseModel

    from agentflow.tools.base import BaseTool


class FinishReason(StrEnum):
    """Why the model stopped generating."""

    STOP = "stop"
    MAX_TOKENS = "max_tokens"
    SAFETY = "safety"
    OTHER = "other"


@dataclass(slots=True)
class FunctionDeclaration:
    """Schema of a tool as advertised to the model."""

    name: str
    description: str = ""
    parameters: dict[str, Any] | None = None

    def to_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"name": self.name, "description": self.description}
        if self.parameters is not None:
            schema["parameters"] = self.parameters
        return schema


@dataclass
class GenerateConfig:
    """Generation settings sent along with a request."""

    temperature: float | None = None
    max_output_tokens: int | None = None
    top_p: float | None = None
    stop_sequences: list[str] | None = None
    system_instruction: str | None = None
    tools: list[FunctionDeclaration] = field(default_factory=list)
    response_schema: type[BaseModel] | None = None
    response_mime_type: str | None = None
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class TokenUsage:
    """Token consumption reported by the model."""

    prompt_tokens: int = 0
    candidates_tokens: int = 0
    total_tokens: int = 0


@dataclass
class LlmRequest:
    """A model request, assembled by the request pipeline of one step.

    ``tools_dict`` maps tool names to the tools declared on this request; the
    dispatcher resolves function calls against it.
    """

    model: str | None = None
    contents: list[Content] = field(default_factory=list)
    config: GenerateConfig = field(default_factory=GenerateConfig)
    tools_dict: dict[str, BaseTool] = field(default_factory=dict)

    def append_instructions(self, instructions: list[str]) -> None:
        text = "\n\n".join(i for i in instructions if i)
        if not text:
            return
        if self.config.system_instruction:
            self.config.system_instruction += "\n\n" + text
        else:
            self.config.system_instruction = text

    def append_tools(self, tools: list[BaseTool]) -> None:
        for tool in tools:
            declaration = tool.get_declaration()
            if declaration is None:
                continue
            self.config.tools.append(declaration)
            self.tools_dict[tool.name] = tool

    def set_output_schema(self, schema: type[BaseModel]) -> None:
        self.config.response_schema = schema
        self.config.response_mime_type = "application/json"


@dataclass
class LlmResponse:
    """One response produced by the model boundary.

    Several may be produced per step when streaming: a run of partial
    responses followed by one non-partial response.
    """

    content: Content | None = None
    finish_reason: FinishReason | None = None
    usage: TokenUsage | None = None
    error_code: str | None = None
    error_message: str | None = None
    partial: bool = False
    interrupted: bool = False
    turn_complete: bool = False
    custom_metadata: dict[str, Any] | None = None

    @property
    def parts(self) -> list[Part]:
        return self.content.parts if self.content else []

    @property
    def text(self) -> str:
        return self.content.text if self.content else ""

    @classmethod
    def from_error(cls, error_code: str, error_message: str) -> LlmResponse:
        return cls(error_code=error_code, error_message=error_message)
