"""
Mock transports for testing.

Provides canned Responses API event streams so tests can exercise the
reducer and orchestrator without hitting real APIs.
"""

from __future__ import annotations

import json
from typing import AsyncIterator

from responseloop.llm.providers.base import Transport


class ScriptedTransport(Transport):
    """
    A transport that yields one pre-configured event list per call.

    Usage::

        transport = ScriptedTransport([
            tool_call_events("search", {"q": "x"}),
            text_events("Answer."),
        ])

    Parameters
    ----------
    scripts:
        One list of raw event dicts per expected ``create_stream`` call.
        Calls beyond the end of the list repeat the last script.
    fail_with:
        Exception raised after the first *fail_after* events of every stream.
    """

    def __init__(
        self,
        scripts: list[list[dict]] | None = None,
        *,
        fail_with: Exception | None = None,
        fail_after: int = 0,
    ) -> None:
        self._scripts = scripts or [completed_events()]
        self._fail_with = fail_with
        self._fail_after = fail_after
        self.calls: list[dict] = []

    @property
    def name(self) -> str:
        return "scripted"

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def create_stream(self, params: dict) -> AsyncIterator[dict]:
        self.calls.append(params)
        idx = min(len(self.calls) - 1, len(self._scripts) - 1)
        for n, event in enumerate(self._scripts[idx]):
            if self._fail_with is not None and n == self._fail_after:
                raise self._fail_with
            yield event
        if self._fail_with is not None and self._fail_after >= len(self._scripts[idx]):
            raise self._fail_with


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------


def created_event(response_id: str = "resp_1") -> dict:
    return {"type": "response.created", "response": {"id": response_id}}


def completed_events(
    response_id: str = "resp_1",
    usage: dict | None = None,
) -> list[dict]:
    response: dict = {"id": response_id}
    if usage is not None:
        response["usage"] = usage
    return [{"type": "response.completed", "response": response}]


def text_events(
    text: str,
    response_id: str = "resp_1",
    usage: dict | None = None,
) -> list[dict]:
    """Stream *text* one word at a time, bracketed by lifecycle events."""
    events = [created_event(response_id)]
    words = text.split(" ")
    for i, word in enumerate(words):
        suffix = " " if i < len(words) - 1 else ""
        events.append({"type": "response.output_text.delta", "delta": word + suffix})
    events.append({"type": "response.output_text.done", "text": text})
    events.extend(completed_events(response_id, usage))
    return events


def function_call_events(
    name: str,
    args: dict | str,
    *,
    call_id: str = "call_1",
    item_id: str = "fc_1",
) -> list[dict]:
    """Open a function call item and stream its arguments in two fragments."""
    arguments = args if isinstance(args, str) else json.dumps(args)
    half = len(arguments) // 2
    return [
        {
            "type": "response.output_item.added",
            "item": {
                "type": "function_call",
                "id": item_id,
                "call_id": call_id,
                "name": name,
                "arguments": "",
            },
        },
        {
            "type": "response.function_call_arguments.delta",
            "item_id": item_id,
            "delta": arguments[:half],
        },
        {
            "type": "response.function_call_arguments.delta",
            "item_id": item_id,
            "delta": arguments[half:],
        },
        {
            "type": "response.function_call_arguments.done",
            "item_id": item_id,
            "arguments": arguments,
        },
        {
            "type": "response.output_item.done",
            "item": {
                "type": "function_call",
                "id": item_id,
                "call_id": call_id,
                "name": name,
                "arguments": arguments,
            },
        },
    ]


def tool_call_events(
    name: str,
    args: dict | str,
    *,
    call_id: str = "call_1",
    item_id: str = "fc_1",
    response_id: str = "resp_1",
    preamble: str = "",
    usage: dict | None = None,
) -> list[dict]:
    """A full response that requests a single tool call."""
    events = [created_event(response_id)]
    if preamble:
        events.append({"type": "response.output_text.delta", "delta": preamble})
    events.extend(function_call_events(name, args, call_id=call_id, item_id=item_id))
    events.extend(completed_events(response_id, usage))
    return events


def multi_tool_call_events(
    calls: list[tuple[str, dict]],
    *,
    response_id: str = "resp_1",
) -> list[dict]:
    """A full response that requests several tool calls, in order."""
    events = [created_event(response_id)]
    for n, (name, args) in enumerate(calls, start=1):
        events.extend(
            function_call_events(name, args, call_id=f"call_{n}", item_id=f"fc_{n}")
        )
    events.extend(completed_events(response_id))
    return events
