"""agentflow - turn-execution engine for LLM agents."""

__version__ = "0.1.0"

from agentflow.agents import (
    Agent,
    BaseAgent,
    CallbackContext,
    InvocationContext,
    LlmAgent,
    ParallelAgent,
    ReadonlyContext,
    RunConfig,
    StreamingMode,
)
from agentflow.config import FlowConfig, create_session_service, load_config
from agentflow.errors import AgentError
from agentflow.runners import InMemoryRunner, Runner
from agentflow.sessions import InMemorySessionService, Session, SqliteSessionService
from agentflow.tools import BaseTool, FunctionTool, ToolContext
from agentflow.types import Content, Event, EventActions, LlmRequest, LlmResponse, Part

__all__ = [
    "Agent",
    "AgentError",
    "BaseAgent",
    "BaseTool",
    "CallbackContext",
    "Content",
    "Event",
    "EventActions",
    "FlowConfig",
    "FunctionTool",
    "InMemoryRunner",
    "InMemorySessionService",
    "InvocationContext",
    "LlmAgent",
    "LlmRequest",
    "LlmResponse",
    "ParallelAgent",
    "Part",
    "ReadonlyContext",
    "RunConfig",
    "Runner",
    "Session",
    "SqliteSessionService",
    "StreamingMode",
    "ToolContext",
    "create_session_service",
    "load_config",
]
