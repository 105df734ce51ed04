"""Offers the model a hand-off to other agents in the tree."""

from __future__ import annotations

from collections.abc import AsyncGenerator

from agentflow.agents.base_agent import BaseAgent
from agentflow.agents.invocation_context import InvocationContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.flows.processors.base import BaseLlmRequestProcessor
from agentflow.tools.tool_context import ToolContext
from agentflow.tools.transfer import TRANSFER_TO_AGENT, TransferToAgentTool
from agentflow.types.events import Event
from agentflow.types.llm import LlmRequest


class AgentTransferRequestProcessor(BaseLlmRequestProcessor):
    async def run_async(
        self, ctx: InvocationContext, llm_request: LlmRequest
    ) -> AsyncGenerator[Event, None]:
        agent = ctx.agent
        if not isinstance(agent, LlmAgent):
            return
        targets = get_transfer_targets(agent)
        if not targets:
            return
        llm_request.append_instructions([_build_transfer_instructions(agent, targets)])
        tool = TransferToAgentTool()
        await tool.process_llm_request(tool_context=ToolContext(ctx), llm_request=llm_request)
        return
        yield  # pragma: no cover


request_processor = AgentTransferRequestProcessor()


def get_transfer_targets(agent: LlmAgent) -> list[BaseAgent]:
    """Sub-agents, plus the parent and peers unless disallowed."""
    targets: list[BaseAgent] = list(agent.sub_agents)
    parent = agent.parent_agent
    if parent is None or not isinstance(parent, LlmAgent):
        return targets
    if not agent.disallow_transfer_to_parent:
        targets.append(parent)
    if not agent.disallow_transfer_to_peers:
        targets.extend(peer for peer in parent.sub_agents if peer.name != agent.name)
    return targets


def _build_transfer_instructions(agent: LlmAgent, targets: list[BaseAgent]) -> str:
    target_info = "\n\n".join(
        f"Agent name: {t.name}\nAgent description: {t.description}" for t in targets
    )
    instructions = f"""\
You can transfer the conversation to one of these agents:

{target_info}

If you are the best agent to answer according to your description, answer \
the question yourself.

If another agent is better suited according to its description, call the \
`{TRANSFER_TO_AGENT}` function to hand the question to that agent. When \
transferring, reply with the function call only."""
    if agent.parent_agent is not None and not agent.disallow_transfer_to_parent:
        instructions += f"""

Your parent agent is {agent.parent_agent.name}. If neither you nor the other \
agents are suited to answer, transfer to your parent agent."""
    return instructions
