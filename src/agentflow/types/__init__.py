"""Core data types: content parts, model requests/responses, events."""

from agentflow.types.content import (
    CodeExecutionResult,
    Content,
    ExecutableCode,
    FunctionCall,
    FunctionResponse,
    Outcome,
    Part,
    Role,
)
from agentflow.types.events import USER_AUTHOR, Event, EventActions, new_event_id
from agentflow.types.llm import (
    FinishReason,
    FunctionDeclaration,
    GenerateConfig,
    LlmRequest,
    LlmResponse,
    TokenUsage,
)

__all__ = [
    # Content
    "CodeExecutionResult",
    "Content",
    "ExecutableCode",
    "FunctionCall",
    "FunctionResponse",
    "Outcome",
    "Part",
    "Role",
    # Events
    "USER_AUTHOR",
    "Event",
    "EventActions",
    "new_event_id",
    # Model boundary
    "FinishReason",
    "FunctionDeclaration",
    "GenerateConfig",
    "LlmRequest",
    "LlmResponse",
    "TokenUsage",
]
