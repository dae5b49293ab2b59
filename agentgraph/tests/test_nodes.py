"""
Tests for the node variants - completion, deep think, decide-then-call,
native tool loops, ReAct and the environment node.
"""

import json
from datetime import datetime, timezone

import pytest

from agentgraph.nodes import (
    CompletionNode,
    DecideToolGroupNode,
    DecideToolNode,
    DeepThinkNode,
    NativeToolGroupNode,
    NativeToolNode,
    NowadaysNode,
    ReActNode,
)
from agentgraph.shared.chunks import FENCE
from agentgraph.shared.constants import TOOL_CALLING_FINISHED
from agentgraph.shared.models import AgentMessage, ToolCall, ToolCallFunction
from agentgraph.shared.prompts import DEEP_THINK_RESULT_PREFIX

from conftest import ScriptedLLM, make_tool_call, streamed_text, tool_reply


# ═══════════════════════════════════════════════════════════════
# COMPLETION
# ═══════════════════════════════════════════════════════════════

class TestCompletionNode:
    @pytest.mark.asyncio
    async def test_appends_reply_and_streams(self, state, chunks):
        llm = ScriptedLLM(["Here is the answer."])
        node = CompletionNode("answer", llm, system_prompt="Be brief.")

        result = await node.execute(state)

        assert result is state
        assert state.context[-1].role == "assistant"
        assert state.context[-1].content == "Here is the answer."
        assert streamed_text(chunks) == "Here is the answer."

    @pytest.mark.asyncio
    async def test_message_order(self, state):
        state.append(AgentMessage(role="assistant", content="earlier step"))
        llm = ScriptedLLM(["ok"])
        await CompletionNode("answer", llm, system_prompt="Be brief.").execute(state)

        sent = llm.calls[0]
        assert sent[0] == {"role": "system", "content": "Be brief."}
        assert sent[1] == {"role": "user", "content": "What is in the project?"}
        assert sent[2] == {"role": "assistant", "content": "earlier step"}

    @pytest.mark.asyncio
    async def test_tool_traffic_flattened_for_plain_completion(self, state):
        call = make_tool_call("echo", {"text": "x"}, "c1")
        state.append(AgentMessage(role="assistant", title="tool request: echo", tool_calls=[call]))
        state.append(AgentMessage(role="tool", content="echo:x", title="tool result: echo", tool_call_id="c1"))
        llm = ScriptedLLM(["ok"])
        await CompletionNode("answer", llm).execute(state)

        sent = llm.calls[0]
        assert all(m["role"] != "tool" for m in sent)
        assert sent[-1] == {"role": "assistant", "content": "[tool result: echo] echo:x"}
        assert "tool_calls" not in sent[-2]

    @pytest.mark.asyncio
    async def test_model_error_propagates(self, state):
        llm = ScriptedLLM([RuntimeError("transport failure")])
        with pytest.raises(RuntimeError):
            await CompletionNode("answer", llm).execute(state)
        assert state.context == []

    def test_requires_llm(self):
        with pytest.raises(ValueError):
            CompletionNode("answer", None)


class TestDeepThinkNode:
    @pytest.mark.asyncio
    async def test_wraps_output_in_thinking_section(self, state, chunks):
        llm = ScriptedLLM(["Consider the angles."])
        await DeepThinkNode("think", llm).execute(state)

        text = streamed_text(chunks)
        assert text.startswith(f"\n{FENCE}[md|thinking]\n")
        assert "Consider the angles." in text
        assert text.endswith(f"\n{FENCE}\n")
        assert state.context[-1].content == f"{DEEP_THINK_RESULT_PREFIX}Consider the angles."
        assert state.context[-1].title == "deep thinking"

    @pytest.mark.asyncio
    async def test_uses_default_prompt(self, state):
        llm = ScriptedLLM(["..."])
        await DeepThinkNode("think", llm).execute(state)
        assert "deep-thinking assistant" in llm.calls[0][0]["content"]


# ═══════════════════════════════════════════════════════════════
# DECIDE-THEN-CALL
# ═══════════════════════════════════════════════════════════════

class TestDecideToolNode:
    @pytest.mark.asyncio
    async def test_declined_call_appends_reason(self, state, echo_tool, echo_log):
        llm = ScriptedLLM(['{"shouldCall": false, "reason": "already answered"}'])
        node = DecideToolNode("decide", llm, echo_tool, "Should we echo?", "Echo it.")

        await node.execute(state)

        assert llm.call_count == 1
        assert echo_log == []
        assert state.context[-1].content == "already answered"

    @pytest.mark.asyncio
    async def test_accepted_call_runs_tool(self, state, echo_tool, echo_log):
        llm = ScriptedLLM([
            '```json\n{"shouldCall": true, "reason": "needed"}\n```',
            '```json\n{"toolName": "echo", "arguments": {"text": "hi"}}\n```',
        ])
        node = DecideToolNode("decide", llm, echo_tool, "Should we echo?", "Echo it.")

        await node.execute(state)

        assert echo_log == [("echo", "hi")]
        assert state.context[-1].content == "[tool: echo]\necho:hi"

    @pytest.mark.asyncio
    async def test_unparseable_decision_means_no_call(self, state, echo_tool, echo_log):
        llm = ScriptedLLM(["Yes, definitely echo!"])
        await DecideToolNode("decide", llm, echo_tool).execute(state)
        assert echo_log == []
        assert state.context[-1].content.startswith("parse failed: Yes, definitely")

    @pytest.mark.asyncio
    async def test_malformed_arguments_call_with_empty_args(self, state, echo_tool, echo_log):
        llm = ScriptedLLM(['{"shouldCall": true}', "echo the word hi"])
        await DecideToolNode("decide", llm, echo_tool).execute(state)
        assert echo_log == [("echo", "")]

    @pytest.mark.asyncio
    async def test_prompts_carry_schema_and_instructions(self, state, echo_tool):
        llm = ScriptedLLM(['{"shouldCall": true}', '{"arguments": {}}'])
        await DecideToolNode("decide", llm, echo_tool, "COND", "CALL").execute(state)

        condition = llm.calls[0][0]["content"]
        assert condition.startswith("COND")
        assert '"name": "echo"' in condition
        assert "shouldCall" in condition
        assert "[user] What is in the project?" in condition
        call = llm.calls[1][0]["content"]
        assert call.startswith("CALL")
        assert '"toolName": "echo"' in call

    @pytest.mark.asyncio
    async def test_throwing_tool_contained(self, state, failing_tool):
        llm = ScriptedLLM(['{"shouldCall": true}', '{"arguments": {}}'])
        await DecideToolNode("decide", llm, failing_tool).execute(state)
        assert "Tool call error: tool exploded" in state.context[-1].content

    def test_requires_tool(self):
        with pytest.raises(ValueError):
            DecideToolNode("decide", ScriptedLLM(), None)


class TestDecideToolGroupNode:
    @pytest.mark.asyncio
    async def test_runs_named_tool(self, state, echo_tool, upper_tool, echo_log):
        llm = ScriptedLLM([
            '{"shouldCall": true, "reason": "r", "selectedTool": "upper"}',
            '{"toolName": "upper", "arguments": {"text": "abc"}}',
        ])
        await DecideToolGroupNode("group", llm, [echo_tool, upper_tool]).execute(state)
        assert echo_log == [("upper", "abc")]
        assert state.context[-1].content == "[tool: upper]\nupper:abc"

    @pytest.mark.asyncio
    async def test_selected_tool_used_when_call_reply_malformed(self, state, echo_tool, upper_tool, echo_log):
        llm = ScriptedLLM(['{"shouldCall": true, "selectedTool": "upper"}', "garbage"])
        await DecideToolGroupNode("group", llm, [echo_tool, upper_tool]).execute(state)
        assert echo_log == [("upper", "")]

    @pytest.mark.asyncio
    async def test_unknown_tool_reported(self, state, echo_tool, upper_tool, echo_log):
        llm = ScriptedLLM(['{"shouldCall": true}', '{"toolName": "nope", "arguments": {}}'])
        await DecideToolGroupNode("group", llm, [echo_tool, upper_tool]).execute(state)
        assert echo_log == []
        assert state.context[-1].content == 'Tool "nope" not found. Available tools: echo, upper'

    @pytest.mark.asyncio
    async def test_declined(self, state, echo_tool):
        llm = ScriptedLLM(['{"shouldCall": false, "reason": "no need"}'])
        await DecideToolGroupNode("group", llm, [echo_tool]).execute(state)
        assert state.context[-1].content == "no need"


# ═══════════════════════════════════════════════════════════════
# NATIVE TOOL LOOP
# ═══════════════════════════════════════════════════════════════

class TestNativeToolGroupNode:
    @pytest.mark.asyncio
    async def test_plain_reply_appended_as_is(self, state, echo_tool):
        llm = ScriptedLLM(["No tools needed."])
        node = NativeToolGroupNode("tools", llm, [echo_tool])
        await node.execute(state)
        assert [m.content for m in state.context] == ["No tools needed."]
        assert llm.bound_tools == [echo_tool]

    @pytest.mark.asyncio
    async def test_three_calls_then_stop(self, state, echo_tool, upper_tool, echo_log):
        llm = ScriptedLLM([
            tool_reply(make_tool_call("echo", {"text": "1"}, "c1"), make_tool_call("upper", {"text": "2"}, "c2")),
            tool_reply(make_tool_call("echo", {"text": "3"}, "c3")),
            "All done.",
        ])
        node = NativeToolGroupNode("tools", llm, [echo_tool, upper_tool])

        await node.execute(state)

        assert echo_log == [("echo", "1"), ("upper", "2"), ("echo", "3")]
        assert len(state.context) == 7
        pairs = state.context[:6]
        assert [m.role for m in pairs] == ["assistant", "tool"] * 3
        for request, result in zip(pairs[::2], pairs[1::2]):
            assert len(request.tool_calls) == 1
            assert result.tool_call_id == request.tool_calls[0].id
        assert state.context[1].content == "echo:1"
        assert state.context[1].title == "tool result: echo"
        assert state.context[2].title == "tool request: upper"
        assert state.context[-1].content == f"{TOOL_CALLING_FINISHED}\nAll done."
        assert llm.call_count == 3

    @pytest.mark.asyncio
    async def test_resend_carries_native_tool_messages(self, state, echo_tool):
        llm = ScriptedLLM([tool_reply(make_tool_call("echo", {"text": "x"}, "c1")), ""])
        await NativeToolGroupNode("tools", llm, [echo_tool]).execute(state)

        second = llm.calls[1]
        assert second[-2]["tool_calls"][0]["id"] == "c1"
        assert second[-1] == {"role": "tool", "content": "echo:x", "tool_call_id": "c1"}
        assert state.context[-1].content == TOOL_CALLING_FINISHED

    @pytest.mark.asyncio
    async def test_unknown_tool_ends_turn(self, state, echo_tool, echo_log, chunks):
        llm = ScriptedLLM([tool_reply(make_tool_call("ghost"), make_tool_call("echo", {"text": "later"}))])
        await NativeToolGroupNode("tools", llm, [echo_tool]).execute(state)

        assert llm.call_count == 1
        assert echo_log == []
        assert state.context[-1].content == 'Tool "ghost" not found. Available tools: echo'
        assert "[tool-call-error]ghost" in streamed_text(chunks)

    @pytest.mark.asyncio
    async def test_malformed_arguments_become_result_text(self, state, echo_tool, echo_log):
        llm = ScriptedLLM([tool_reply(make_tool_call("echo", '{"text": "unterminated')), "ok"])
        await NativeToolGroupNode("tools", llm, [echo_tool]).execute(state)

        assert echo_log == []
        assert state.context[1].role == "tool"
        assert state.context[1].content.startswith("Invalid tool arguments for echo")

    @pytest.mark.asyncio
    async def test_throwing_tool_contained(self, state, failing_tool, chunks):
        llm = ScriptedLLM([tool_reply(make_tool_call("boom")), "recovered"])
        await NativeToolGroupNode("tools", llm, [failing_tool]).execute(state)

        assert state.context[1].content == "Tool call error: tool exploded"
        assert state.context[-1].content == f"{TOOL_CALLING_FINISHED}\nrecovered"
        assert "[tool-call-success]boom" in streamed_text(chunks)

    @pytest.mark.asyncio
    async def test_round_limit(self, state, echo_tool):
        endless = [tool_reply(make_tool_call("echo", {"text": str(i)}, f"c{i}")) for i in range(10)]
        llm = ScriptedLLM(endless)
        await NativeToolGroupNode("tools", llm, [echo_tool], max_tool_rounds=2).execute(state)

        assert llm.call_count == 2
        assert len(state.context) == 5
        assert state.context[-1].content == f"{TOOL_CALLING_FINISHED} (round limit 2 reached)"

    @pytest.mark.asyncio
    async def test_missing_call_id_generated(self, state, echo_tool):
        call = ToolCall(id="", function=ToolCallFunction(name="echo", arguments=""))
        llm = ScriptedLLM([tool_reply(call), ""])
        await NativeToolGroupNode("tools", llm, [echo_tool]).execute(state)
        assert state.context[0].tool_calls[0].id.startswith("call_")
        assert state.context[1].tool_call_id == state.context[0].tool_calls[0].id

    @pytest.mark.asyncio
    async def test_callable_system_prompt(self, state, echo_tool):
        llm = ScriptedLLM(["ok"])
        node = NativeToolGroupNode(
            "tools", llm, [echo_tool], system_prompt=lambda tools: f"{len(tools)} tools",
        )
        await node.execute(state)
        assert llm.calls[0][0] == {"role": "system", "content": "1 tools"}

    def test_duplicate_tool_names_rejected(self, echo_tool):
        with pytest.raises(ValueError):
            NativeToolGroupNode("tools", ScriptedLLM(), [echo_tool, echo_tool])

    def test_requires_tools(self):
        with pytest.raises(ValueError):
            NativeToolGroupNode("tools", ScriptedLLM(), [])


class TestNativeToolNode:
    @pytest.mark.asyncio
    async def test_prompt_includes_tool_definition(self, state, echo_tool):
        llm = ScriptedLLM(["ok"])
        await NativeToolNode("tool", llm, echo_tool, system_prompt="Use echo.").execute(state)
        system = llm.calls[0][0]["content"]
        assert system.startswith("Use echo.")
        assert "## Tool definition" in system
        schemas = json.loads(system.split("```json\n", 1)[1].split("\n```", 1)[0])
        assert schemas[0]["function"]["name"] == "echo"


# ═══════════════════════════════════════════════════════════════
# REACT
# ═══════════════════════════════════════════════════════════════

class TestReActNode:
    @pytest.mark.asyncio
    async def test_think_act_then_stop(self, state, echo_tool, echo_log, chunks):
        think = ScriptedLLM(["Echo the word hi.", ""])
        call = ScriptedLLM([tool_reply(make_tool_call("echo", {"text": "hi"})), "done"])
        node = ReActNode("react", call, think, [echo_tool])

        await node.execute(state)

        assert echo_log == [("echo", "hi")]
        assert [m.title for m in state.context] == [
            "thought", "tool request: echo", "tool result: echo", None,
        ]
        assert state.context[-1].content == f"{TOOL_CALLING_FINISHED}\ndone"
        assert think.call_count == 2
        text = streamed_text(chunks)
        assert "[md|tool assessment]" in text
        assert "Tool calling complete." in text

    @pytest.mark.asyncio
    async def test_think_prompt_restates_question_and_context(self, state, echo_tool):
        think = ScriptedLLM([""])
        await ReActNode("react", ScriptedLLM(), think, [echo_tool]).execute(state)

        sent = think.calls[0]
        assert len(sent) == 1
        assert sent[0]["role"] == "system"
        assert "The user's question is: What is in the project?" in sent[0]["content"]
        assert '"name": "echo"' in sent[0]["content"]

    @pytest.mark.asyncio
    async def test_iterations_bounded(self, state, echo_tool):
        think = ScriptedLLM(["try again"] * 10)
        call = ScriptedLLM(["no call"] * 10)
        await ReActNode("react", call, think, [echo_tool], max_iterations=3).execute(state)
        assert think.call_count == 3
        assert call.call_count == 3

    def test_requires_both_models(self, echo_tool):
        with pytest.raises(ValueError):
            ReActNode("react", ScriptedLLM(), None, [echo_tool])


# ═══════════════════════════════════════════════════════════════
# ENVIRONMENT
# ═══════════════════════════════════════════════════════════════

class TestNowadaysNode:
    @pytest.mark.asyncio
    async def test_appends_environment(self, empty_state, chunks):
        clock = lambda: datetime(2024, 1, 1, 12, 30, 0, tzinfo=timezone.utc)
        node = NowadaysNode("env", tz="UTC", language="fr-FR", clock=clock)

        await node.execute(empty_state)

        message = empty_state.context[0]
        assert message.role == "system"
        assert message.title == "environment"
        assert "Current time: 2024-01-01 12:30:00 UTC" in message.content
        assert "Conversation language: fr-FR" in message.content
        assert "[pre|environment]" in streamed_text(chunks)

    def test_unknown_timezone_falls_back_to_utc(self):
        clock = lambda: datetime(2024, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
        node = NowadaysNode("env", tz="Not/AZone", clock=clock)
        assert "2024-01-01 00:00:00 UTC" in node.describe()
