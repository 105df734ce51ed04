"""End-to-end tests for the invocation loop, dispatch and agent transfer."""

from __future__ import annotations

from typing import Any

import pytest

from agentflow.agents.callback_context import CallbackContext
from agentflow.agents.llm_agent import LlmAgent
from agentflow.agents.run_config import RunConfig, StreamingMode
from agentflow.errors import (
    AgentNotFoundError,
    LlmCallsLimitExceededError,
    PartialEventError,
    ToolNotFoundError,
)
from agentflow.flows.base_flow import AGENT_NAME_LABEL_KEY
from agentflow.models.mock import MockLlm
from agentflow.tools.base import BaseTool
from agentflow.tools.function_tool import FunctionTool
from agentflow.tools.tool_context import ToolContext
from agentflow.types.content import Content, Part, Role
from agentflow.types.llm import LlmRequest, LlmResponse
from tests.helpers import collect_turn, new_runner, texts_by_author
from tests.helpers.fixtures import APP_NAME, SESSION_ID, USER_ID


def calc(a: int, b: int) -> int:
    """Add two integers."""
    return a + b


def remember(fact: str, tool_context: ToolContext) -> dict[str, Any]:
    """Store a fact in session state."""
    tool_context.state["fact"] = fact
    return {"status": "remembered"}


class TestSingleStep:
    @pytest.mark.asyncio
    async def test_text_reply_ends_after_one_step(self) -> None:
        llm = MockLlm().add_response("Hello there")
        runner = await new_runner(LlmAgent(name="greeter", model=llm))

        events = await collect_turn(runner, "hi")

        assert len(events) == 1
        assert events[0].author == "greeter"
        assert events[0].text == "Hello there"
        assert events[0].get_function_calls() == []
        assert events[0].is_final_response()
        assert llm.call_count == 1

    @pytest.mark.asyncio
    async def test_request_carries_history_and_identity(self) -> None:
        llm = MockLlm().add_response("ok")
        agent = LlmAgent(name="greeter", model=llm, description="Says hello")
        runner = await new_runner(agent)

        await collect_turn(runner, "hi")

        request = llm.last_request
        assert request is not None
        assert request.model == "mock"
        assert [c.text for c in request.contents] == ["hi"]
        assert request.config.system_instruction is not None
        assert 'Your internal name is "greeter"' in request.config.system_instruction
        assert request.config.labels[AGENT_NAME_LABEL_KEY] == "greeter"


class TestFunctionCallDispatch:
    @pytest.mark.asyncio
    async def test_parallel_calls_merged_in_order(self) -> None:
        llm = (
            MockLlm()
            .add_function_calls(("calc", {"a": 2, "b": 3}), ("remember", {"fact": "x"}))
            .add_response("2 + 3 is 5, and I will remember x.")
        )
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[calc, remember]))

        events = await collect_turn(runner, "add 2 and 3, remember x")

        call_event, response_event, final_event = events
        call_ids = [fc.id for fc in call_event.get_function_calls()]
        assert all(cid and cid.startswith("af-") for cid in call_ids)
        assert call_event.long_running_tool_ids is None

        responses = response_event.get_function_responses()
        assert [r.name for r in responses] == ["calc", "remember"]
        assert [r.id for r in responses] == call_ids
        assert responses[0].response == {"result": 5}
        assert responses[1].response == {"status": "remembered"}
        assert response_event.actions.state_delta == {"fact": "x"}
        assert response_event.content is not None
        assert response_event.content.role == Role.USER

        assert final_event.is_final_response()
        session = await runner.session_service.get_session(
            app_name=APP_NAME, user_id=USER_ID, session_id=SESSION_ID,
        )
        assert session is not None
        assert session.state["fact"] == "x"

    @pytest.mark.asyncio
    async def test_calls_in_one_turn_share_state(self) -> None:
        seen: list[object] = []

        def write(tool_context: ToolContext) -> str:
            tool_context.state["x"] = 1
            return "written"

        def read(tool_context: ToolContext) -> str:
            seen.append(tool_context.state.get("x"))
            return "read"

        llm = MockLlm().add_function_calls(("write", {}), ("read", {})).add_response("done")
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[write, read]))

        events = await collect_turn(runner, "write then read")

        assert seen == [1]
        assert events[1].actions.state_delta == {"x": 1}

    @pytest.mark.asyncio
    async def test_client_ids_hidden_from_model(self) -> None:
        llm = MockLlm().add_function_calls(("calc", {"a": 1, "b": 1})).add_response("2")
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[calc]))

        await collect_turn(runner, "1+1?")

        second_request = llm.call_history[1][0]
        call_turn, response_turn = second_request.contents[1:]
        assert call_turn.parts[0].function_call is not None
        assert call_turn.parts[0].function_call.id is None
        assert response_turn.parts[0].function_response is not None
        assert response_turn.parts[0].function_response.id is None

    @pytest.mark.asyncio
    async def test_tool_error_reported_to_model(self) -> None:
        def broken() -> None:
            raise ValueError("bad input")

        llm = MockLlm().add_function_calls(("broken", {})).add_response("Sorry.")
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[broken]))

        events = await collect_turn(runner, "go")

        assert events[1].get_function_responses()[0].response == {"error": "ValueError: bad input"}
        assert events[-1].text == "Sorry."

    @pytest.mark.asyncio
    async def test_unknown_tool_raises(self) -> None:
        llm = MockLlm().add_function_calls(("nonexistent", {}))
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[calc]))

        with pytest.raises(ToolNotFoundError, match="nonexistent"):
            await collect_turn(runner, "go")

    @pytest.mark.asyncio
    async def test_long_running_tool_without_result(self) -> None:
        async def request_approval(amount: int) -> None:
            return None

        tool = FunctionTool(request_approval, is_long_running=True)
        llm = MockLlm().add_function_calls(("request_approval", {"amount": 10}))
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[tool]))

        events = await collect_turn(runner, "approve 10")

        assert len(events) == 1
        call_id = events[0].get_function_calls()[0].id
        assert events[0].long_running_tool_ids == {call_id}
        assert llm.call_count == 1

    @pytest.mark.asyncio
    async def test_tool_callbacks(self) -> None:
        def block_calc(tool: BaseTool, args: dict[str, Any], tool_context: ToolContext):
            if tool.name == "calc" and args.get("a") == 13:
                return {"error": "unlucky"}
            return None

        def annotate(tool: BaseTool, args: dict[str, Any], tool_context: ToolContext, result: Any):
            return {"annotated": result}

        llm = (
            MockLlm()
            .add_function_calls(("calc", {"a": 13, "b": 1}), ("calc", {"a": 1, "b": 1}))
            .add_response("done")
        )
        agent = LlmAgent(
            name="assistant",
            model=llm,
            tools=[calc],
            before_tool_callbacks=[block_calc],
            after_tool_callbacks=[annotate],
        )
        runner = await new_runner(agent)

        events = await collect_turn(runner, "go")

        responses = events[1].get_function_responses()
        assert responses[0].response == {"annotated": {"error": "unlucky"}}
        assert responses[1].response == {"annotated": 2}


class TestModelCallbacks:
    @pytest.mark.asyncio
    async def test_before_model_short_circuits(self) -> None:
        def cached(cc: CallbackContext, request: LlmRequest) -> LlmResponse:
            cc.state["cache_hit"] = True
            return LlmResponse(content=Content.from_text("cached", role=Role.MODEL))

        llm = MockLlm()
        runner = await new_runner(
            LlmAgent(name="assistant", model=llm, before_model_callbacks=[cached])
        )

        events = await collect_turn(runner, "hi")

        assert texts_by_author(events) == [("assistant", "cached")]
        assert events[0].actions.state_delta == {"cache_hit": True}
        assert llm.call_count == 0

    @pytest.mark.asyncio
    async def test_after_model_replaces_response(self) -> None:
        async def redact(cc: CallbackContext, response: LlmResponse) -> LlmResponse | None:
            if "secret" in response.text:
                return LlmResponse(content=Content.from_text("[redacted]", role=Role.MODEL))
            return None

        llm = MockLlm().add_response("the secret is 42")
        runner = await new_runner(
            LlmAgent(name="assistant", model=llm, after_model_callbacks=[redact])
        )

        events = await collect_turn(runner, "tell me")

        assert texts_by_author(events) == [("assistant", "[redacted]")]


class TestAgentTransfer:
    @pytest.mark.asyncio
    async def test_transfer_runs_target_agent(self) -> None:
        billing_llm = MockLlm().add_response("Your balance is $5.")
        billing = LlmAgent(name="billing-agent", model=billing_llm, description="Handles billing")
        root_llm = MockLlm().add_function_calls(
            ("transfer_to_agent", {"agent_name": "billing-agent"})
        )
        root = LlmAgent(name="front_desk", model=root_llm, sub_agents=[billing])
        runner = await new_runner(root)

        events = await collect_turn(runner, "what do I owe?")

        assert [e.author for e in events] == ["front_desk", "front_desk", "billing-agent"]
        assert events[1].actions.transfer_to_agent == "billing-agent"
        assert events[2].text == "Your balance is $5."
        assert events[2].is_final_response()

        root_request = root_llm.call_history[0][0]
        assert "transfer_to_agent" in root_request.tools_dict
        assert root_request.config.system_instruction is not None
        assert "Agent name: billing-agent" in root_request.config.system_instruction

        billing_request = billing_llm.call_history[0][0]
        context_turns = [c for c in billing_request.contents if c.parts[0].text == "For context:"]
        assert context_turns
        assert any("[front_desk] called tool `transfer_to_agent`" in (p.text or "")
                   for c in context_turns for p in c.parts)

    @pytest.mark.asyncio
    async def test_unknown_target_raises(self) -> None:
        llm = MockLlm().add_function_calls(("transfer_to_agent", {"agent_name": "ghost"}))
        helper = LlmAgent(name="helper", model=MockLlm())
        runner = await new_runner(LlmAgent(name="root", model=llm, sub_agents=[helper]))

        with pytest.raises(AgentNotFoundError, match="ghost"):
            await collect_turn(runner, "go")

    @pytest.mark.asyncio
    async def test_no_transfer_tool_without_targets(self) -> None:
        llm = MockLlm().add_response("ok")
        runner = await new_runner(LlmAgent(name="solo", model=llm))

        await collect_turn(runner, "hi")

        request = llm.last_request
        assert request is not None
        assert "transfer_to_agent" not in request.tools_dict


class TestLoopGuards:
    @pytest.mark.asyncio
    async def test_streamed_reply(self) -> None:
        llm = MockLlm().add_streamed_text(["Hel", "lo"])
        runner = await new_runner(LlmAgent(name="assistant", model=llm))

        events = await collect_turn(
            runner, "hi", run_config=RunConfig(streaming_mode=StreamingMode.SSE),
        )

        assert [e.partial for e in events] == [True, True, False]
        assert events[-1].text == "Hello"
        session = await runner.session_service.get_session(
            app_name=APP_NAME, user_id=USER_ID, session_id=SESSION_ID,
        )
        assert session is not None
        assert [e.text for e in session.events] == ["hi", "Hello"]

    @pytest.mark.asyncio
    async def test_cut_off_stream_raises(self) -> None:
        llm = MockLlm().add_streamed_text(["Hel", "lo"], complete=False)
        runner = await new_runner(LlmAgent(name="assistant", model=llm))

        with pytest.raises(PartialEventError, match="must not be partial"):
            await collect_turn(
                runner, "hi", run_config=RunConfig(streaming_mode=StreamingMode.SSE),
            )

    @pytest.mark.asyncio
    async def test_llm_call_limit(self) -> None:
        async def always_call(request: LlmRequest) -> LlmResponse:
            return LlmResponse(
                content=Content(
                    role=Role.MODEL, parts=[Part.from_function_call("calc", {"a": 1, "b": 1})]
                )
            )

        llm = MockLlm(response_fn=always_call)
        runner = await new_runner(LlmAgent(name="looper", model=llm, tools=[calc]))

        with pytest.raises(LlmCallsLimitExceededError):
            await collect_turn(runner, "loop", run_config=RunConfig(max_llm_calls=3))
        assert llm.call_count == 3

    @pytest.mark.asyncio
    async def test_end_invocation_from_tool_stops_loop(self) -> None:
        def stop(tool_context: ToolContext) -> str:
            tool_context.invocation_context.end_invocation = True
            return "stopping"

        llm = MockLlm().add_function_calls(("stop", {})).add_response("never sent")
        runner = await new_runner(LlmAgent(name="assistant", model=llm, tools=[stop]))

        events = await collect_turn(runner, "stop now")

        assert len(events) == 2
        assert llm.call_count == 1
