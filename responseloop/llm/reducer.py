"""
Folds typed stream events into an ``Accumulator``.

``reduce(event, state)`` is pure: it never mutates *state* and returns either
*state* itself (for events with no effect) or a new ``Accumulator``.

Function calls stream in three phases:
  - ``response.output_item.added`` with a ``function_call`` item opens a
    ``PendingToolCall`` keyed by both the item id and the call id;
  - ``response.function_call_arguments.delta`` appends fragments, matched by
    item id;
  - ``response.function_call_arguments.done`` replaces the fragments with
    the authoritative argument string.
Argument events for an item id that was never opened are dropped.
"""

from __future__ import annotations

from dataclasses import replace
from functools import singledispatch
from typing import Any, Iterable

from responseloop.llm.events import (
    ErrorEvent,
    FunctionCallArgumentsDelta,
    FunctionCallArgumentsDone,
    OutputItemAdded,
    OutputItemDone,
    OutputTextDelta,
    ReasoningSummaryDelta,
    ReasoningTextDelta,
    RefusalDelta,
    RefusalDone,
    ResponseCompleted,
    ResponseCreated,
    ResponseFailed,
    ResponseIncomplete,
    StreamEvent,
)
from responseloop.llm.types import (
    Accumulator,
    FinishReason,
    PendingToolCall,
    UsageMode,
)


def reduce(
    event: StreamEvent,
    state: Accumulator,
    usage_mode: UsageMode = UsageMode.REPLACE,
) -> Accumulator:
    """Apply a single event to *state* and return the resulting state."""
    return _reduce(event, state, usage_mode)


def fold(
    events: Iterable[StreamEvent],
    state: Accumulator | None = None,
    usage_mode: UsageMode = UsageMode.REPLACE,
) -> Accumulator:
    """Reduce every event in *events*, in order, starting from *state*."""
    acc = state if state is not None else Accumulator()
    for event in events:
        acc = _reduce(event, acc, usage_mode)
    return acc


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


@singledispatch
def _reduce(event: Any, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    # InertEvent, UnknownEvent and anything unforeseen.
    return state


@_reduce.register(OutputTextDelta)
def _(event: OutputTextDelta, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.delta:
        return state
    return replace(
        state,
        iteration_text=state.iteration_text + event.delta,
        full_text=state.full_text + event.delta,
    )


@_reduce.register(ReasoningSummaryDelta)
def _(event: ReasoningSummaryDelta, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.delta:
        return state
    return replace(state, reasoning=state.reasoning + event.delta)


@_reduce.register(ReasoningTextDelta)
def _(event: ReasoningTextDelta, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    # Raw reasoning is too verbose for end users; only summaries accumulate.
    return state


@_reduce.register(OutputItemAdded)
def _(event: OutputItemAdded, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    item = event.item
    if item.get("type") != "function_call":
        return state
    call = PendingToolCall(
        id=item.get("call_id") or "",
        item_id=item.get("id") or "",
        name=item.get("name") or "",
        arguments="",
    )
    return replace(state, tool_calls=state.tool_calls + (call,))


@_reduce.register(FunctionCallArgumentsDelta)
def _(event: FunctionCallArgumentsDelta, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.delta or not event.item_id:
        return state
    idx = state.find_call(event.item_id)
    if idx is None:
        return state
    call = state.tool_calls[idx]
    return _replace_call(state, idx, call.with_arguments(call.arguments + event.delta))


@_reduce.register(FunctionCallArgumentsDone)
def _(event: FunctionCallArgumentsDone, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.item_id:
        return state
    idx = state.find_call(event.item_id)
    if idx is None:
        return state
    call = state.tool_calls[idx]
    updated = replace(
        call,
        name=event.name or call.name,
        arguments=event.arguments,
    )
    return _replace_call(state, idx, updated)


@_reduce.register(ResponseCreated)
def _(event: ResponseCreated, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    response_id = event.response.get("id")
    if response_id and not state.response_id:
        return replace(state, response_id=response_id)
    return state


@_reduce.register(ResponseCompleted)
def _(event: ResponseCompleted, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    response = event.response
    usage = state.usage
    reported = response.get("usage")
    if reported:
        if usage_mode is UsageMode.ACCUMULATE:
            usage = merge_usage(usage, reported)
        else:
            usage = dict(reported)
    response_id = state.response_id or response.get("id") or None
    return replace(
        state,
        finish_reason=FinishReason.COMPLETED,
        usage=usage,
        response_id=response_id,
    )


@_reduce.register(ResponseFailed)
def _(event: ResponseFailed, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    return replace(state, finish_reason=FinishReason.ERROR)


@_reduce.register(ResponseIncomplete)
def _(event: ResponseIncomplete, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    details = event.response.get("incomplete_details") or {}
    reason = details.get("reason") if isinstance(details, dict) else None
    return replace(state, finish_reason=reason or FinishReason.INCOMPLETE)


@_reduce.register(RefusalDelta)
def _(event: RefusalDelta, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.delta:
        return state
    return replace(state, full_text=state.full_text + f"[REFUSAL: {event.delta}]")


@_reduce.register(RefusalDone)
def _(event: RefusalDone, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.refusal:
        return state
    return replace(
        state,
        full_text=state.full_text + f"[REFUSAL: {event.refusal}]",
        finish_reason=FinishReason.REFUSED,
    )


@_reduce.register(OutputItemDone)
def _(event: OutputItemDone, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    if not event.item:
        return state
    return replace(state, output_items=state.output_items + (dict(event.item),))


@_reduce.register(ErrorEvent)
def _(event: ErrorEvent, state: Accumulator, usage_mode: UsageMode) -> Accumulator:
    return replace(state, finish_reason=FinishReason.ERROR)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _replace_call(state: Accumulator, idx: int, call: PendingToolCall) -> Accumulator:
    calls = state.tool_calls[:idx] + (call,) + state.tool_calls[idx + 1:]
    return replace(state, tool_calls=calls)


def merge_usage(base: dict, overlay: dict) -> dict:
    """Sum numeric leaves of *overlay* into *base*, returning a new dict."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(value, dict):
            merged[key] = merge_usage(current if isinstance(current, dict) else {}, value)
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            if isinstance(current, (int, float)) and not isinstance(current, bool):
                merged[key] = current + value
            else:
                merged[key] = value
        else:
            merged[key] = value
    return merged
