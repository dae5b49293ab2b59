"""
Tests for shared/models.py and shared/chunks.py - tool call arguments,
message conversion, AgentState and section framing.
"""

import pytest

from agentgraph.shared.chunks import FENCE, ChunkSender
from agentgraph.shared.models import (
    AgentMessage, AgentState, ExecutionResult, HistoryMessage, ToolCall, ToolCallFunction,
)


def _call(arguments: str, name: str = "read_file") -> ToolCall:
    return ToolCall(id="c1", function=ToolCallFunction(name=name, arguments=arguments))


class TestToolCallArguments:
    def test_object(self):
        assert _call('{"file_path": "/a"}').parse_arguments() == ({"file_path": "/a"}, None)

    def test_empty_means_no_arguments(self):
        assert _call("  ").parse_arguments() == ({}, None)

    def test_invalid_json(self):
        args, error = _call('{"file_path": ').parse_arguments()
        assert args == {}
        assert error.startswith("Invalid tool arguments for read_file")

    def test_non_object(self):
        args, error = _call("[1, 2]").parse_arguments()
        assert args == {}
        assert "expected a JSON object" in error


class TestMessages:
    def test_history_rejects_other_roles(self):
        with pytest.raises(ValueError):
            HistoryMessage(role="system", content="nope")

    def test_plain_message_to_llm(self):
        message = AgentMessage(role="assistant", content="hi", title="ignored for model")
        assert message.to_llm_message() == {"role": "assistant", "content": "hi"}

    def test_native_tool_message_keeps_structure(self):
        request = AgentMessage(role="assistant", tool_calls=[_call("{}")])
        data = request.to_llm_message(native_tools=True)
        assert data["tool_calls"][0]["function"]["name"] == "read_file"
        result = AgentMessage(role="tool", content="text", tool_call_id="c1")
        assert result.to_llm_message(native_tools=True) == {
            "role": "tool", "content": "text", "tool_call_id": "c1",
        }

    def test_flattened_request_describes_call(self):
        request = AgentMessage(role="assistant", title="tool request: read_file", tool_calls=[_call('{"a":1}')])
        assert request.to_llm_message() == {
            "role": "assistant", "content": '[tool request: read_file] read_file({"a":1})',
        }

    def test_to_dict_includes_title(self):
        assert AgentMessage(role="system", content="x", title="env").to_dict()["title"] == "env"


class TestAgentState:
    def test_append_preserves_order(self):
        state = AgentState()
        first = state.append(AgentMessage(role="assistant", content="1"))
        state.extend([AgentMessage(role="assistant", content="2"), AgentMessage(role="assistant", content="3")])
        assert state.context[0] is first
        assert [m.content for m in state.context] == ["1", "2", "3"]

    def test_copy_context_is_independent(self):
        state = AgentState(context=[AgentMessage(role="assistant", content="1")])
        copy = state.copy_context()
        copy.append(AgentMessage(role="assistant", content="2"))
        assert len(state.context) == 1

    def test_last_user_message_prefers_context(self):
        state = AgentState(
            history=[HistoryMessage(role="user", content="old")],
            context=[AgentMessage(role="user", content="new")],
        )
        assert state.last_user_message().content == "new"

    def test_default_sink_discards(self):
        AgentState().send_chunk(None)

    def test_final_message(self):
        state = AgentState(context=[
            AgentMessage(role="assistant", content="answer"),
            AgentMessage(role="system", content="env"),
        ])
        assert ExecutionResult(final_state=state).final_message == "answer"
        assert ExecutionResult(final_state=AgentState()).final_message is None


class TestChunkSender:
    def test_section_framing(self):
        sent = []
        ChunkSender(sent.append).section("[md|thinking]", "body")
        assert [c.content for c in sent] == [f"\n{FENCE}[md|thinking]\n", "body", f"\n{FENCE}\n"]

    def test_pass_through(self):
        sent = []
        sender = ChunkSender(sent.append)
        sender.send_chunk("raw")
        assert sent == ["raw"]
