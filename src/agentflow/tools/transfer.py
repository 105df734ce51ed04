"""Agent hand-off tool."""

from __future__ import annotations

import logging
from typing import Any

from agentflow.tools.base import BaseTool
from agentflow.tools.tool_context import ToolContext
from agentflow.types.llm import FunctionDeclaration

logger = logging.getLogger(__name__)

TRANSFER_TO_AGENT = "transfer_to_agent"


class TransferToAgentTool(BaseTool):
    """Lets the model hand the conversation to another agent in the tree."""

    def __init__(self) -> None:
        super().__init__(
            name=TRANSFER_TO_AGENT,
            description="Transfer the question to another agent.",
        )

    def get_declaration(self) -> FunctionDeclaration:
        return FunctionDeclaration(
            name=self.name,
            description=self.description,
            parameters={
                "type": "object",
                "properties": {
                    "agent_name": {
                        "type": "string",
                        "description": "Name of the agent to transfer to",
                    },
                },
                "required": ["agent_name"],
            },
        )

    async def run(self, *, args: dict[str, Any], tool_context: ToolContext) -> Any:
        agent_name = args.get("agent_name", "")
        if not agent_name:
            return {"error": "agent_name is required"}
        logger.debug("Transfer requested to %s", agent_name)
        tool_context.actions.transfer_to_agent = agent_name
        return {"message": f"Transferred to agent: {agent_name}"}
