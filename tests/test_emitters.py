"""Tests for threshold emitters and output payloads."""

from __future__ import annotations

import pytest

from responseloop.streaming.emitters import (
    ChunkOutput,
    CollectingSink,
    FinalOutput,
    ReasoningEmitter,
    ReasoningOutput,
    TextEmitter,
    ThresholdEmitter,
    ToolResultOutput,
)


@pytest.fixture
def sink():
    return CollectingSink()


class TestTextEmitter:
    def test_below_threshold_emits_nothing(self, sink):
        emitter = TextEmitter(sink, threshold=10)
        assert not emitter.emit_if_needed("abc", 3)
        assert sink.payloads == []
        assert emitter.chars_since_emit == 3

    def test_exact_threshold_emits_full_value_once(self, sink):
        emitter = TextEmitter(sink, threshold=5)
        emitter.emit_if_needed("ab", 2)
        assert emitter.emit_if_needed("abcde", 3)
        assert sink.payloads == [ChunkOutput(chunk="abcde")]
        assert emitter.chars_since_emit == 0

    def test_final_after_flush_emits_nothing(self, sink):
        emitter = TextEmitter(sink, threshold=5)
        emitter.emit_if_needed("abcde", 5)
        assert not emitter.emit_final("abcde")
        assert len(sink.payloads) == 1

    def test_final_flushes_remainder(self, sink):
        emitter = TextEmitter(sink, threshold=5)
        emitter.emit_if_needed("abcde", 5)
        emitter.emit_if_needed("abcdefg", 2)
        assert emitter.emit_final("abcdefg")
        assert sink.payloads[-1] == ChunkOutput(chunk="abcdefg")
        assert not emitter.emit_final("abcdefg")

    def test_each_emission_carries_everything_so_far(self, sink):
        emitter = TextEmitter(sink, threshold=3)
        text = ""
        for piece in ["abc", "def", "ghi"]:
            text += piece
            emitter.emit_if_needed(text, len(piece))
        assert [p.chunk for p in sink.payloads] == ["abc", "abcdef", "abcdefghi"]

    def test_reset_drops_pending_count(self, sink):
        emitter = TextEmitter(sink, threshold=5)
        emitter.emit_if_needed("abcd", 4)
        emitter.reset()
        assert not emitter.emit_final("abcd")
        assert sink.payloads == []

    def test_default_threshold(self, sink):
        assert TextEmitter(sink).threshold == 300

    @pytest.mark.parametrize("threshold", [0, -1])
    def test_rejects_non_positive_threshold(self, sink, threshold):
        with pytest.raises(ValueError):
            ThresholdEmitter(sink, channel="chunk", threshold=threshold)


class TestReasoningEmitter:
    def test_emits_reasoning_payload(self, sink):
        emitter = ReasoningEmitter(sink, threshold=4)
        emitter.emit_if_needed("why?", 4)
        assert sink.payloads == [ReasoningOutput(reasoning="why?")]

    def test_default_threshold_is_smaller_than_text(self, sink):
        assert ReasoningEmitter(sink).threshold == 150
        assert ReasoningEmitter(sink).threshold < TextEmitter(sink).threshold

    def test_final_requires_content(self, sink):
        emitter = ReasoningEmitter(sink, threshold=100)
        emitter.chars_since_emit = 3
        assert not emitter.emit_final("")
        assert sink.payloads == []


class TestPayloads:
    def test_wire_shapes(self):
        assert ChunkOutput("a").to_dict() == {"chunk": "a"}
        assert ReasoningOutput("r").to_dict() == {"reasoning": "r"}
        assert ToolResultOutput("search", {"q": "x"}, {"hits": []}).to_dict() == {
            "mcpResult": {"name": "search", "arguments": {"q": "x"}, "result": {"hits": []}}
        }

    def test_final_omits_empty_reasoning(self):
        assert FinalOutput(chunk="t", text="t").to_dict() == {"chunk": "t", "text": "t"}
        assert FinalOutput(chunk="t", text="t", reasoning="r").to_dict()["reasoning"] == "r"

    def test_collecting_sink_filters_by_type(self, sink):
        sink(ChunkOutput("a"))
        sink(ReasoningOutput("b"))
        assert sink.of_type(ReasoningOutput) == [ReasoningOutput("b")]
