"""Agents - the agent tree and its invocation contexts."""

from agentflow.agents.callback_context import CallbackContext, ReadonlyContext
from agentflow.agents.invocation_context import (
    InvocationContext,
    InvocationControl,
    new_invocation_id,
)
from agentflow.agents.run_config import RunConfig, StreamingMode
from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.capabilities import (
    ModelCallbackAgent,
    ToolCallbackAgent,
    ToolCapableAgent,
)
from agentflow.agents.llm_agent import Agent, LlmAgent
from agentflow.agents.parallel_agent import ParallelAgent

__all__ = [
    "Agent",
    "BaseAgent",
    "CallbackContext",
    "InvocationContext",
    "InvocationControl",
    "LlmAgent",
    "ModelCallbackAgent",
    "ParallelAgent",
    "ReadonlyContext",
    "RunConfig",
    "StreamingMode",
    "ToolCallbackAgent",
    "ToolCapableAgent",
    "new_invocation_id",
]
