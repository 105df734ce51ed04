"""Agentflow error hierarchy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Category of error for classification and handling."""

    LLM = "llm"
    TOOL = "tool"
    AGENT = "agent"
    STATE = "state"
    SESSION = "session"
    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    INTERNAL = "internal"


class AgentError(Exception):
    """Base error for all agentflow exceptions."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, category={self.category!r})"


class LLMError(AgentError):
    """Error from the model boundary (malformed output, missing model, etc.)."""

    def __init__(self, message: str, *, retryable: bool = False, **kwargs: Any) -> None:
        super().__init__(message, category=ErrorCategory.LLM, retryable=retryable, **kwargs)


class PartialEventError(LLMError):
    """A step ended on a partial event.

    Signals truncated generation. Never recovered by the engine; the caller
    decides whether to retry with a larger output budget.
    """

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message
            or "Last event must not be partial. The model output-length limit was likely exceeded.",
            retryable=False,
        )


class LlmCallsLimitExceededError(LLMError):
    """The invocation made more model calls than the run config allows."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Max number of LLM calls limit of {limit} exceeded")
        self.limit = limit


class ToolError(AgentError):
    """Error while resolving or running a tool."""

    def __init__(
        self,
        message: str,
        *,
        tool_name: str | None = None,
        retryable: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, category=ErrorCategory.TOOL, retryable=retryable, **kwargs)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    """The model requested a tool the current request never declared."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}", tool_name=tool_name)


class AgentNotFoundError(AgentError):
    """A transfer target could not be resolved in the agent tree."""

    def __init__(self, agent_name: str) -> None:
        super().__init__(
            f"Agent '{agent_name}' not found in the agent tree",
            category=ErrorCategory.AGENT,
        )
        self.agent_name = agent_name


class StateKeyError(AgentError):
    """An instruction template referenced a state key that is not set."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Context variable not found: `{key}`", category=ErrorCategory.STATE)
        self.key = key


class SessionNotFoundError(AgentError):
    """The requested session does not exist in the session service."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}", category=ErrorCategory.SESSION)
        self.session_id = session_id


class OutputSchemaValidationError(AgentError):
    """Structured model output did not match the agent's output schema."""

    def __init__(self, message: str, *, agent_name: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.VALIDATION, retryable=False)
        self.agent_name = agent_name


class ConfigurationError(AgentError):
    """Invalid or missing configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=ErrorCategory.CONFIGURATION, retryable=False)
