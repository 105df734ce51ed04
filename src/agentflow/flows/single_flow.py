"""SingleFlow - an agent with its own tools and no hand-offs."""

from __future__ import annotations

from agentflow.flows.base_flow import BaseLlmFlow
from agentflow.flows.processors import (
    auth_preprocessor,
    basic,
    code_execution,
    contents,
    identity,
    instructions,
    nl_planning,
    output_schema,
)


class SingleFlow(BaseLlmFlow):
    """Flow for an agent that only considers itself and its tools.

    Request stages run in this order; planning must follow history assembly
    because it rewrites the ``thought`` marks on history parts.
    """

    def __init__(self) -> None:
        super().__init__()
        self.request_processors += [
            basic.request_processor,
            auth_preprocessor.request_processor,
            instructions.request_processor,
            identity.request_processor,
            contents.request_processor,
            nl_planning.request_processor,
            code_execution.request_processor,
        ]
        self.response_processors += [
            nl_planning.response_processor,
            code_execution.response_processor,
            output_schema.response_processor,
        ]
