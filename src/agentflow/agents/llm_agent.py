"""LlmAgent - an agent driven by a language model."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel

from agentflow.agents.base_agent import AgentCallback, BaseAgent, maybe_await
from agentflow.agents.callback_context import ReadonlyContext
from agentflow.agents.capabilities import (
    AfterModelCallback,
    AfterToolCallback,
    BeforeModelCallback,
    BeforeToolCallback,
)
from agentflow.agents.invocation_context import InvocationContext
from agentflow.code_executors.base import BaseCodeExecutor
from agentflow.errors import ConfigurationError
from agentflow.models.base import BaseLlm
from agentflow.models.registry import LlmRegistry
from agentflow.planners.base import BasePlanner
from agentflow.tools.base import BaseTool
from agentflow.tools.function_tool import FunctionTool
from agentflow.types.events import Event
from agentflow.types.llm import GenerateConfig

if TYPE_CHECKING:
    from agentflow.flows.base_flow import BaseLlmFlow

logger = logging.getLogger(__name__)

InstructionProvider = Callable[[ReadonlyContext], "str | Awaitable[str]"]
ToolUnion = BaseTool | Callable[..., Any]


class LlmAgent(BaseAgent):
    """Agent whose turns are produced by a model.

    Implements :class:`ToolCapableAgent`, :class:`ModelCallbackAgent` and
    :class:`ToolCallbackAgent`.

    ``model`` may be a name resolved through :class:`LlmRegistry`, a client
    instance, or empty to inherit the nearest ancestor LlmAgent's model.
    String instructions get ``{key}`` placeholders filled from session state;
    instruction providers are used verbatim.

    When ``output_schema`` is set the final reply must validate against it.
    When ``output_key`` is set the final reply text is saved to that state key.
    """

    def __init__(
        self,
        *,
        name: str,
        description: str = "",
        model: str | BaseLlm = "",
        instruction: str | InstructionProvider = "",
        global_instruction: str | InstructionProvider = "",
        tools: list[ToolUnion] | None = None,
        generate_config: GenerateConfig | None = None,
        output_schema: type[BaseModel] | None = None,
        output_key: str | None = None,
        planner: BasePlanner | None = None,
        code_executor: BaseCodeExecutor | None = None,
        include_contents: Literal["default", "none"] = "default",
        disallow_transfer_to_parent: bool = False,
        disallow_transfer_to_peers: bool = False,
        sub_agents: list[BaseAgent] | None = None,
        before_agent_callbacks: list[AgentCallback] | None = None,
        after_agent_callbacks: list[AgentCallback] | None = None,
        before_model_callbacks: list[BeforeModelCallback] | None = None,
        after_model_callbacks: list[AfterModelCallback] | None = None,
        before_tool_callbacks: list[BeforeToolCallback] | None = None,
        after_tool_callbacks: list[AfterToolCallback] | None = None,
    ) -> None:
        if generate_config is not None and generate_config.tools:
            raise ConfigurationError("Declare tools through LlmAgent.tools, not generate_config")
        if output_schema is not None and (tools or sub_agents):
            raise ConfigurationError(
                f"Agent {name!r} has output_schema and cannot use tools or sub-agents"
            )
        super().__init__(
            name=name,
            description=description,
            sub_agents=sub_agents,
            before_agent_callbacks=before_agent_callbacks,
            after_agent_callbacks=after_agent_callbacks,
        )
        self.model = model
        self.instruction = instruction
        self.global_instruction = global_instruction
        self.tools: list[ToolUnion] = list(tools or [])
        self.generate_config = generate_config
        self.output_schema = output_schema
        self.output_key = output_key
        self.planner = planner
        self.code_executor = code_executor
        self.include_contents = include_contents
        self.disallow_transfer_to_parent = disallow_transfer_to_parent
        self.disallow_transfer_to_peers = disallow_transfer_to_peers
        self.before_model_callbacks: list[BeforeModelCallback] = list(before_model_callbacks or [])
        self.after_model_callbacks: list[AfterModelCallback] = list(after_model_callbacks or [])
        self.before_tool_callbacks: list[BeforeToolCallback] = list(before_tool_callbacks or [])
        self.after_tool_callbacks: list[AfterToolCallback] = list(after_tool_callbacks or [])
        self._resolved_model: BaseLlm | None = None

    @property
    def canonical_model(self) -> BaseLlm:
        """The model client for this agent, resolved once."""
        if not isinstance(self.model, str):
            return self.model
        if self.model:
            if self._resolved_model is None:
                self._resolved_model = LlmRegistry.new_llm(self.model)
            return self._resolved_model
        ancestor = self.parent_agent
        while ancestor is not None:
            if isinstance(ancestor, LlmAgent):
                return ancestor.canonical_model
            ancestor = ancestor.parent_agent
        raise ConfigurationError(f"No model found for agent {self.name!r}")

    async def canonical_instruction(self, ctx: ReadonlyContext) -> tuple[str, bool]:
        """Instruction text, and whether state injection should be bypassed."""
        if isinstance(self.instruction, str):
            return self.instruction, False
        return await maybe_await(self.instruction(ctx)), True

    async def canonical_global_instruction(self, ctx: ReadonlyContext) -> tuple[str, bool]:
        if isinstance(self.global_instruction, str):
            return self.global_instruction, False
        return await maybe_await(self.global_instruction(ctx)), True

    async def canonical_tools(self, ctx: ReadonlyContext | None = None) -> list[BaseTool]:
        return [t if isinstance(t, BaseTool) else FunctionTool(t) for t in self.tools]

    @property
    def _llm_flow(self) -> BaseLlmFlow:
        from agentflow.flows.auto_flow import AutoFlow
        from agentflow.flows.single_flow import SingleFlow

        if (
            self.disallow_transfer_to_parent
            and self.disallow_transfer_to_peers
            and not self.sub_agents
        ):
            return SingleFlow()
        return AutoFlow()

    async def _run_async_impl(self, ctx: InvocationContext) -> AsyncGenerator[Event, None]:
        async for event in self._llm_flow.run_async(ctx):
            self._maybe_save_output_to_state(event)
            yield event

    def _maybe_save_output_to_state(self, event: Event) -> None:
        if not self.output_key or event.author != self.name or event.partial or event.error_code:
            return
        if not event.is_final_response() or event.content is None:
            return
        result = event.content.text
        if result:
            event.actions.state_delta[self.output_key] = result


Agent = LlmAgent
