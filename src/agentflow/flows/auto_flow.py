"""AutoFlow - SingleFlow plus agent transfer."""

from __future__ import annotations

from agentflow.flows.processors import agent_transfer
from agentflow.flows.single_flow import SingleFlow


class AutoFlow(SingleFlow):
    """Flow that lets the model hand off to sub-agents, the parent or peers.

    Which of those are offered depends on the agent's
    ``disallow_transfer_to_parent`` and ``disallow_transfer_to_peers`` flags.
    """

    def __init__(self) -> None:
        super().__init__()
        self.request_processors.append(agent_transfer.request_processor)
