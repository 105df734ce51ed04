"""Request and response pipeline stages."""

from agentflow.flows.processors.base import BaseLlmRequestProcessor, BaseLlmResponseProcessor

__all__ = ["BaseLlmRequestProcessor", "BaseLlmResponseProcessor"]
