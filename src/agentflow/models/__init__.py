"""Model boundary: client protocol, registry, and a scripted test client."""

from agentflow.models.base import BaseLlm
from agentflow.models.mock import MockLlm
from agentflow.models.registry import LlmRegistry

__all__ = [
    "BaseLlm",
    "LlmRegistry",
    "MockLlm",
]
