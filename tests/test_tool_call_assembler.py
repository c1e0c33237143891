"""Tests for toolchat.llm.tool_call_assembler.ToolCallAssembler."""

from __future__ import annotations

import json

from toolchat.llm.tool_call_assembler import ToolCallAssembler
from toolchat.llm.types import ToolCallDelta


class TestSingleToolCall:
    """Assemble a single tool call from incremental shards."""

    def test_basic_assembly(self):
        asm = ToolCallAssembler()

        asm.feed(ToolCallDelta(index=0, id="call_1", type="function", name="read_"))
        asm.feed(ToolCallDelta(index=0, name="file"))
        asm.feed(ToolCallDelta(index=0, arguments='{"path": '))
        asm.feed(ToolCallDelta(index=0, arguments='"/etc/hosts"}'))

        result = asm.flush()
        assert len(result) == 1

        tc = result[0]
        assert tc.id == "call_1"
        assert tc.name == "read_file"
        assert tc.arguments == {"path": "/etc/hosts"}
        assert tc.type == "function"

    def test_single_delta_with_everything(self):
        """A server may send the whole call in one shard."""
        asm = ToolCallAssembler()
        asm.feed(
            ToolCallDelta(
                index=0, id="call_x", name="ping", arguments='{"host": "localhost"}'
            )
        )
        result = asm.flush()
        assert len(result) == 1
        assert result[0].name == "ping"
        assert result[0].arguments == {"host": "localhost"}
        assert asm.errors == []

    def test_empty_arguments_become_empty_dict(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="c", name="noargs"))
        assert asm.flush()[0].arguments == {}

    def test_missing_id_gets_synthetic_id(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=2, choice_index=1, name="t", arguments="{}"))
        assert asm.flush()[0].id == "call_1_2"

    def test_flush_clears_buffers(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="c", name="t", arguments="{}"))
        assert asm.pending
        asm.flush()
        assert not asm.pending
        assert asm.flush() == []


class TestMultipleToolCalls:
    """Two or more calls assembled in parallel."""

    def test_two_parallel_calls(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="c0", name="alpha"))
        asm.feed(ToolCallDelta(index=1, id="c1", name="beta"))
        asm.feed(ToolCallDelta(index=1, arguments='{"b": 2}'))
        asm.feed(ToolCallDelta(index=0, arguments='{"a": 1}'))

        calls = asm.flush()
        assert [c.id for c in calls] == ["c0", "c1"]
        assert calls[0].arguments == {"a": 1}
        assert calls[1].arguments == {"b": 2}
        assert [c.index for c in calls] == [0, 1]

    def test_new_id_at_same_index_starts_new_call(self):
        """Self-contained calls that all reuse index 0 stay separate."""
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="first", name="a", arguments='{"x": 1}'))
        asm.feed(ToolCallDelta(index=0, id="second", name="b", arguments='{"y": 2}'))

        calls = asm.flush()
        assert [(c.id, c.name, c.arguments) for c in calls] == [
            ("first", "a", {"x": 1}),
            ("second", "b", {"y": 2}),
        ]

    def test_flush_by_choice_leaves_other_choices(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, choice_index=0, id="a", name="t", arguments="{}"))
        asm.feed(ToolCallDelta(index=0, choice_index=1, id="b", name="t", arguments="{}"))

        assert asm.pending_choices() == [0, 1]
        assert [c.id for c in asm.flush(0)] == ["a"]
        assert asm.pending_choices() == [1]
        assert [c.id for c in asm.flush()] == ["b"]


class TestMalformedArguments:
    def test_invalid_json_is_dropped_and_recorded(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="bad", name="t", arguments='{"key": INVALID'))

        assert asm.flush() == []
        assert len(asm.errors) == 1
        assert "tool_call_json_parse_failed" in asm.errors[0]

    def test_non_object_arguments_rejected(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="arr", name="t", arguments=json.dumps([1, 2])))

        assert asm.flush() == []
        assert "tool_call_arguments_not_object" in asm.errors[0]

    def test_good_call_survives_next_to_bad_one(self):
        asm = ToolCallAssembler()
        asm.feed(ToolCallDelta(index=0, id="ok", name="t", arguments="{}"))
        asm.feed(ToolCallDelta(index=1, id="bad", name="t", arguments="{"))

        calls = asm.flush()
        assert [c.id for c in calls] == ["ok"]
        assert len(asm.errors) == 1
