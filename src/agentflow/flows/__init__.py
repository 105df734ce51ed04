"""Flows - the invocation loop and its request/response pipelines."""

from agentflow.flows.base_flow import BaseLlmFlow
from agentflow.flows.single_flow import SingleFlow
from agentflow.flows.auto_flow import AutoFlow

__all__ = ["AutoFlow", "BaseLlmFlow", "SingleFlow"]
