"""Tools: the capabilities a model can call."""

from agentflow.tools.auth import AuthConfig
from agentflow.tools.base import BaseTool, ToolParam
from agentflow.tools.function_tool import FunctionTool
from agentflow.tools.tool_context import ToolContext
from agentflow.tools.transfer import TRANSFER_TO_AGENT, TransferToAgentTool

__all__ = [
    "AuthConfig",
    "BaseTool",
    "FunctionTool",
    "TRANSFER_TO_AGENT",
    "ToolContext",
    "ToolParam",
    "TransferToAgentTool",
]
