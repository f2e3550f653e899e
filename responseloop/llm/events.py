"""
Typed stream events for the Responses API streaming protocol.

Providers send a flat sequence of JSON objects discriminated by ``type``.
``parse_event`` turns each one into one of the dataclasses below:

  - the kinds the reducer acts on get their own class;
  - kinds the protocol documents but the reducer deliberately ignores
    become ``InertEvent``;
  - anything else becomes ``UnknownEvent`` so newer provider events pass
    through without breaking the fold.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union, get_args

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Event classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OutputTextDelta:
    delta: str = ""
    type: str = "response.output_text.delta"


@dataclass(frozen=True)
class ReasoningSummaryDelta:
    """User-visible reasoning summary text."""

    delta: str = ""
    type: str = "response.reasoning_summary_text.delta"


@dataclass(frozen=True)
class ReasoningTextDelta:
    """Raw internal reasoning text.  Not surfaced."""

    delta: str = ""
    type: str = "response.reasoning_text.delta"


@dataclass(frozen=True)
class OutputItemAdded:
    item: dict = field(default_factory=dict)
    type: str = "response.output_item.added"


@dataclass(frozen=True)
class OutputItemDone:
    item: dict = field(default_factory=dict)
    type: str = "response.output_item.done"


@dataclass(frozen=True)
class FunctionCallArgumentsDelta:
    item_id: str = ""
    delta: str = ""
    type: str = "response.function_call_arguments.delta"


@dataclass(frozen=True)
class FunctionCallArgumentsDone:
    item_id: str = ""
    arguments: str = ""
    name: str | None = None
    type: str = "response.function_call_arguments.done"


@dataclass(frozen=True)
class ResponseCreated:
    response: dict = field(default_factory=dict)
    type: str = "response.created"


@dataclass(frozen=True)
class ResponseCompleted:
    response: dict = field(default_factory=dict)
    type: str = "response.completed"


@dataclass(frozen=True)
class ResponseFailed:
    response: dict = field(default_factory=dict)
    type: str = "response.failed"


@dataclass(frozen=True)
class ResponseIncomplete:
    response: dict = field(default_factory=dict)
    type: str = "response.incomplete"


@dataclass(frozen=True)
class RefusalDelta:
    delta: str = ""
    type: str = "response.refusal.delta"


@dataclass(frozen=True)
class RefusalDone:
    refusal: str = ""
    type: str = "response.refusal.done"


@dataclass(frozen=True)
class ErrorEvent:
    message: str = ""
    code: str | None = None
    type: str = "error"


@dataclass(frozen=True)
class InertEvent:
    """A documented event kind that carries nothing the fold needs."""

    type: str


@dataclass(frozen=True)
class UnknownEvent:
    """An event kind outside the known taxonomy."""

    type: str
    payload: dict = field(default_factory=dict)


StreamEvent = Union[
    OutputTextDelta,
    ReasoningSummaryDelta,
    ReasoningTextDelta,
    OutputItemAdded,
    OutputItemDone,
    FunctionCallArgumentsDelta,
    FunctionCallArgumentsDone,
    ResponseCreated,
    ResponseCompleted,
    ResponseFailed,
    ResponseIncomplete,
    RefusalDelta,
    RefusalDone,
    ErrorEvent,
    InertEvent,
    UnknownEvent,
]

_TYPED_EVENTS: tuple[type, ...] = get_args(StreamEvent)


INERT_EVENT_TYPES: frozenset[str] = frozenset(
    {
        # lifecycle
        "response.in_progress",
        "response.queued",
        # text / reasoning completion markers (content already came via deltas)
        "response.output_text.done",
        "response.reasoning_summary_text.done",
        "response.reasoning_text.done",
        # structural boundaries
        "response.content_part.added",
        "response.content_part.done",
        "response.reasoning_summary_part.added",
        "response.reasoning_summary_part.done",
        # annotations
        "response.output_text.annotation.added",
        # hosted MCP calls
        "response.mcp_call_arguments.delta",
        "response.mcp_call_arguments.done",
        "response.mcp_call.in_progress",
        "response.mcp_call.completed",
        "response.mcp_call.failed",
        # other hosted tools
        "response.file_search_call.in_progress",
        "response.file_search_call.searching",
        "response.file_search_call.completed",
        "response.web_search_call.in_progress",
        "response.web_search_call.searching",
        "response.web_search_call.completed",
        "response.code_interpreter_call.in_progress",
        "response.code_interpreter_call.interpreting",
        "response.code_interpreter_call.completed",
        "response.code_interpreter_call_code.delta",
        "response.code_interpreter_call_code.done",
        "response.image_generation_call.in_progress",
        "response.image_generation_call.generating",
        "response.image_generation_call.completed",
        "response.image_generation_call.partial_image",
        # custom tools
        "response.custom_tool_call_input.delta",
        "response.custom_tool_call_input.done",
    }
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _as_dict(raw: Any) -> dict[str, Any]:
    """Coerce a raw event (mapping or SDK model) into a plain dict."""
    if isinstance(raw, Mapping):
        return dict(raw)
    dump = getattr(raw, "model_dump", None)
    if callable(dump):
        return dump()
    if hasattr(raw, "__dict__"):
        return {k: v for k, v in vars(raw).items() if not k.startswith("_")}
    return {}


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _obj(data: dict, key: str) -> dict:
    value = data.get(key)
    if isinstance(value, Mapping):
        return dict(value)
    if value is not None:
        return _as_dict(value)
    return {}


def parse_event(raw: Any) -> StreamEvent:
    """
    Convert a raw provider event into a typed ``StreamEvent``.

    Never raises on unexpected shapes; missing fields take empty defaults.
    """
    if isinstance(raw, _TYPED_EVENTS):
        return raw

    data = _as_dict(raw)
    etype = data.get("type")
    if not isinstance(etype, str) or not etype:
        return UnknownEvent(type="", payload=data)

    if etype == "response.output_text.delta":
        return OutputTextDelta(delta=_str(data, "delta"))
    if etype == "response.reasoning_summary_text.delta":
        return ReasoningSummaryDelta(delta=_str(data, "delta"))
    if etype == "response.reasoning_text.delta":
        return ReasoningTextDelta(delta=_str(data, "delta"))
    if etype == "response.output_item.added":
        return OutputItemAdded(item=_obj(data, "item"))
    if etype == "response.output_item.done":
        return OutputItemDone(item=_obj(data, "item"))
    if etype == "response.function_call_arguments.delta":
        return FunctionCallArgumentsDelta(
            item_id=_str(data, "item_id"), delta=_str(data, "delta")
        )
    if etype == "response.function_call_arguments.done":
        return FunctionCallArgumentsDone(
            item_id=_str(data, "item_id"),
            arguments=_str(data, "arguments"),
            name=data.get("name") or None,
        )
    if etype == "response.created":
        return ResponseCreated(response=_obj(data, "response"))
    if etype == "response.completed":
        return ResponseCompleted(response=_obj(data, "response"))
    if etype == "response.failed":
        return ResponseFailed(response=_obj(data, "response"))
    if etype == "response.incomplete":
        return ResponseIncomplete(response=_obj(data, "response"))
    if etype == "response.refusal.delta":
        return RefusalDelta(delta=_str(data, "delta"))
    if etype == "response.refusal.done":
        return RefusalDone(refusal=_str(data, "refusal"))
    if etype == "error":
        code = data.get("code")
        return ErrorEvent(
            message=_str(data, "message"),
            code=str(code) if code is not None else None,
        )
    if etype in INERT_EVENT_TYPES:
        return InertEvent(type=etype)

    logger.debug("Unknown stream event type: %s", etype)
    return UnknownEvent(type=etype, payload=data)
