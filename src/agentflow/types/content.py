"""Content types exchanged with the model."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Role of a conversation turn."""

    USER = "user"
    MODEL = "model"


class Outcome(StrEnum):
    """Outcome of a code execution."""

    OK = "ok"
    FAILED = "failed"
    DEADLINE_EXCEEDED = "deadline_exceeded"


@dataclass
class FunctionCall:
    """A tool invocation requested by the model."""

    name: str
    args: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass
class FunctionResponse:
    """The result of a tool invocation, sent back to the model."""

    name: str
    response: dict[str, Any] = field(default_factory=dict)
    id: str | None = None


@dataclass
class ExecutableCode:
    """Code the model asked to run."""

    code: str
    language: str = "python"


@dataclass
class CodeExecutionResult:
    """Output of running an ExecutableCode part."""

    outcome: Outcome = Outcome.OK
    output: str = ""


@dataclass
class Part:
    """One piece of a turn. Exactly one field is expected to be set."""

    text: str | None = None
    function_call: FunctionCall | None = None
    function_response: FunctionResponse | None = None
    executable_code: ExecutableCode | None = None
    code_execution_result: CodeExecutionResult | None = None
    thought: bool = False

    @classmethod
    def from_text(cls, text: str) -> Part:
        return cls(text=text)

    @classmethod
    def from_function_call(
        cls, name: str, args: dict[str, Any] | None = None, *, id: str | None = None
    ) -> Part:
        return cls(function_call=FunctionCall(name=name, args=args or {}, id=id))

    @classmethod
    def from_function_response(
        cls, name: str, response: dict[str, Any], *, id: str | None = None
    ) -> Part:
        return cls(function_response=FunctionResponse(name=name, response=response, id=id))


@dataclass
class Content:
    """A conversation turn: a role plus an ordered list of parts."""

    role: str = Role.USER
    parts: list[Part] = field(default_factory=list)

    @classmethod
    def from_text(cls, text: str, role: str = Role.USER) -> Content:
        return cls(role=role, parts=[Part(text=text)])

    @property
    def text(self) -> str:
        """Concatenated text of all non-thought text parts."""
        return "".join(p.text for p in self.parts if p.text and not p.thought)


def content_to_dict(content: Content) -> dict[str, Any]:
    """Convert content to a JSON-serializable dict, dropping unset part fields."""
    parts: list[dict[str, Any]] = []
    for part in content.parts:
        data = {k: v for k, v in asdict(part).items() if v not in (None, False)}
        parts.append(data)
    return {"role": str(content.role), "parts": parts}


def content_from_dict(data: dict[str, Any]) -> Content:
    """Rebuild content from the output of :func:`content_to_dict`."""
    parts: list[Part] = []
    for raw in data.get("parts", []):
        part = Part(text=raw.get("text"), thought=bool(raw.get("thought", False)))
        if fc := raw.get("function_call"):
            part.function_call = FunctionCall(
                name=fc["name"], args=fc.get("args") or {}, id=fc.get("id"),
            )
        if fr := raw.get("function_response"):
            part.function_response = FunctionResponse(
                name=fr["name"], response=fr.get("response") or {}, id=fr.get("id"),
            )
        if ec := raw.get("executable_code"):
            part.executable_code = ExecutableCode(
                code=ec["code"], language=ec.get("language", "python"),
            )
        if cer := raw.get("code_execution_result"):
            part.code_execution_result = CodeExecutionResult(
                outcome=Outcome(cer.get("outcome", Outcome.OK)),
                output=cer.get("output", ""),
            )
        parts.append(part)
    return Content(role=data.get("role", Role.USER), parts=parts)
