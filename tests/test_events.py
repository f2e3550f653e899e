"""Tests for stream event parsing."""

from __future__ import annotations

from types import SimpleNamespace

from responseloop.llm.events import (
    INERT_EVENT_TYPES,
    ErrorEvent,
    FunctionCallArgumentsDelta,
    FunctionCallArgumentsDone,
    InertEvent,
    OutputItemAdded,
    OutputTextDelta,
    ReasoningSummaryDelta,
    ResponseCompleted,
    ResponseIncomplete,
    UnknownEvent,
    parse_event,
)


class TestParseEvent:
    def test_text_delta(self):
        event = parse_event({"type": "response.output_text.delta", "delta": "Hi"})
        assert event == OutputTextDelta(delta="Hi")

    def test_reasoning_summary_delta(self):
        event = parse_event(
            {"type": "response.reasoning_summary_text.delta", "delta": "thinking"}
        )
        assert isinstance(event, ReasoningSummaryDelta)
        assert event.delta == "thinking"

    def test_output_item_added_keeps_item(self):
        item = {"type": "function_call", "id": "fc_1", "call_id": "call_1", "name": "search"}
        event = parse_event({"type": "response.output_item.added", "item": item})
        assert isinstance(event, OutputItemAdded)
        assert event.item == item

    def test_function_call_arguments(self):
        delta = parse_event(
            {"type": "response.function_call_arguments.delta", "item_id": "fc_1", "delta": "{"}
        )
        done = parse_event({
            "type": "response.function_call_arguments.done",
            "item_id": "fc_1",
            "arguments": "{}",
            "name": "search",
        })
        assert delta == FunctionCallArgumentsDelta(item_id="fc_1", delta="{")
        assert done == FunctionCallArgumentsDone(item_id="fc_1", arguments="{}", name="search")

    def test_done_without_name(self):
        done = parse_event({
            "type": "response.function_call_arguments.done",
            "item_id": "fc_1",
            "arguments": "{}",
        })
        assert done.name is None

    def test_completed_carries_response(self):
        event = parse_event({
            "type": "response.completed",
            "response": {"id": "resp_1", "usage": {"total_tokens": 3}},
        })
        assert isinstance(event, ResponseCompleted)
        assert event.response["usage"] == {"total_tokens": 3}

    def test_incomplete(self):
        event = parse_event({
            "type": "response.incomplete",
            "response": {"incomplete_details": {"reason": "max_output_tokens"}},
        })
        assert isinstance(event, ResponseIncomplete)

    def test_error_event_code_is_string(self):
        event = parse_event({"type": "error", "message": "bad", "code": 500})
        assert event == ErrorEvent(message="bad", code="500")

    def test_inert_types_are_recognised(self):
        for etype in ("response.in_progress", "response.content_part.added"):
            assert etype in INERT_EVENT_TYPES
            assert parse_event({"type": etype}) == InertEvent(type=etype)

    def test_unknown_type_passes_through(self):
        raw = {"type": "response.brand_new_thing", "x": 1}
        event = parse_event(raw)
        assert isinstance(event, UnknownEvent)
        assert event.type == "response.brand_new_thing"
        assert event.payload == raw

    def test_missing_type(self):
        event = parse_event({"delta": "orphan"})
        assert isinstance(event, UnknownEvent)
        assert event.type == ""

    def test_non_mapping_garbage(self):
        assert isinstance(parse_event(42), UnknownEvent)

    def test_wrong_field_types_default_to_empty(self):
        event = parse_event({"type": "response.output_text.delta", "delta": None})
        assert event == OutputTextDelta(delta="")

    def test_typed_event_is_returned_as_is(self):
        event = OutputTextDelta(delta="x")
        assert parse_event(event) is event

    def test_sdk_model_objects(self):
        class FakeModel:
            def model_dump(self):
                return {"type": "response.output_text.delta", "delta": "sdk"}

        assert parse_event(FakeModel()) == OutputTextDelta(delta="sdk")

    def test_plain_objects(self):
        raw = SimpleNamespace(type="response.refusal.delta", delta="no")
        event = parse_event(raw)
        assert event.type == "response.refusal.delta"
        assert event.delta == "no"
