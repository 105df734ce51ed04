"""Tool that wraps a plain Python callable."""

from __future__ import annotations

import inspect
import logging
import typing
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ValidationError

from agentflow.tools.base import BaseTool
from agentflow.types.llm import FunctionDeclaration

if TYPE_CHECKING:
    from agentflow.tools.tool_context import ToolContext

logger = logging.getLogger(__name__)

TOOL_CONTEXT_PARAM = "tool_context"

_JSON_TYPES: dict[Any, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    dict: "object",
}


def _json_type(annotation: Any) -> str:
    origin = typing.get_origin(annotation) or annotation
    return _JSON_TYPES.get(origin, "string")


class FunctionTool(BaseTool):
    """Expose an async or sync function to the model.

    The parameter schema comes from ``params_model`` when given (validated
    with pydantic before the call), otherwise from the function signature.
    A parameter named ``tool_context`` receives the per-call
    :class:`ToolContext` and is hidden from the model.

    Exceptions raised by the function are reported to the model as an
    ``{"error": ...}`` result rather than propagated.
    """

    def __init__(
        self,
        func: Callable[..., Any],
        *,
        name: str | None = None,
        description: str | None = None,
        params_model: type[BaseModel] | None = None,
        is_long_running: bool = False,
    ) -> None:
        doc = inspect.getdoc(func) or ""
        super().__init__(
            name=name or func.__name__,
            description=description if description is not None else doc,
            is_long_running=is_long_running,
        )
        self.func = func
        self.params_model = params_model
        self._signature = inspect.signature(func)

    def get_declaration(self) -> FunctionDeclaration:
        if self.params_model is not None:
            parameters = self.params_model.model_json_schema()
        else:
            parameters = self._signature_schema()
        return FunctionDeclaration(
            name=self.name, description=self.description, parameters=parameters,
        )

    def _signature_schema(self) -> dict[str, Any]:
        hints = typing.get_type_hints(self.func) if not isinstance(self.func, type) else {}
        properties: dict[str, Any] = {}
        required: list[str] = []
        for pname, param in self._signature.parameters.items():
            if pname == TOOL_CONTEXT_PARAM or param.kind in (
                param.VAR_POSITIONAL, param.VAR_KEYWORD,
            ):
                continue
            properties[pname] = {"type": _json_type(hints.get(pname, str))}
            if param.default is param.empty:
                required.append(pname)
        schema: dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema

    def _missing_args(self, args: dict[str, Any]) -> list[str]:
        return [
            pname
            for pname, param in self._signature.parameters.items()
            if pname != TOOL_CONTEXT_PARAM
            and param.default is param.empty
            and param.kind not in (param.VAR_POSITIONAL, param.VAR_KEYWORD)
            and pname not in args
        ]

    async def run(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any:
        call_args = dict(args)
        if self.params_model is not None:
            try:
                call_args = self.params_model.model_validate(call_args).model_dump()
            except ValidationError as e:
                return {"error": f"Invalid arguments for {self.name}: {e}"}
        else:
            missing = self._missing_args(call_args)
            if missing:
                return {
                    "error": f"Invoking `{self.name}()` failed: missing mandatory "
                    f"parameters: {', '.join(missing)}"
                }
            call_args = {k: v for k, v in call_args.items() if k in self._signature.parameters}

        if TOOL_CONTEXT_PARAM in self._signature.parameters:
            call_args[TOOL_CONTEXT_PARAM] = tool_context

        try:
            result = self.func(**call_args)
            if inspect.isawaitable(result):
                result = await result
        except Exception as e:
            logger.warning("Tool %s raised %s: %s", self.name, type(e).__name__, e)
            return {"error": f"{type(e).__name__}: {e}"}
        return result
