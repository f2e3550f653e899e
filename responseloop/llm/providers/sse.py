"""
Responses API transport over plain HTTP with Server-Sent Events.

Any endpoint that streams ``POST {base}/responses`` in the Responses wire
format works; the ``openai`` SDK is not required.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import httpx

from responseloop.llm.events import StreamEvent, parse_event
from responseloop.llm.providers.base import Transport

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class _EventBlock:
    """Collects the ``event:`` and ``data:`` fields of one SSE block."""

    def __init__(self) -> None:
        self.name: str | None = None
        self.data: list[str] = []

    def feed(self, line: str) -> None:
        field, _, value = line.partition(":")
        value = value[1:] if value.startswith(" ") else value
        if field == "event":
            self.name = value.strip()
        elif field == "data":
            self.data.append(value)
        # ids, retry hints and ":" comments carry nothing we use

    def take(self) -> tuple[str | None, str] | None:
        if not self.data:
            self.name = None
            return None
        taken = (self.name, "\n".join(self.data))
        self.name = None
        self.data = []
        return taken


class ResponsesSSETransport(Transport):
    """
    Streams Responses API events from an HTTP endpoint.

    Parameters
    ----------
    url:
        API base, e.g. ``"https://api.openai.com/v1"``.
    api_key:
        Sent as a bearer token when non-empty.
    organization:
        Optional ``OpenAI-Organization`` header value.
    timeout:
        Per-request timeout in seconds for clients this transport creates.
    client:
        Shared ``httpx.AsyncClient``; one is opened per stream when omitted.
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        api_key: str = "",
        organization: str | None = None,
        timeout: float = 120.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.endpoint = url.rstrip("/") + "/responses"
        self._api_key = api_key
        self._organization = organization
        self._timeout = timeout
        self._client = client

    @property
    def name(self) -> str:
        return "responses-sse"

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "text/event-stream"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        return headers

    async def create_stream(self, params: dict) -> AsyncIterator[StreamEvent]:
        payload = {**params, "stream": True}
        logger.info(
            "Opening response stream: model=%s tools=%d input_items=%d tool_choice=%s chained=%s",
            payload.get("model"),
            len(payload.get("tools") or []),
            len(payload.get("input") or []),
            payload.get("tool_choice"),
            bool(payload.get("previous_response_id")),
        )

        client = self._client or httpx.AsyncClient(timeout=self._timeout)
        try:
            async with client.stream(
                "POST", self.endpoint, json=payload, headers=self._headers()
            ) as response:
                if response.is_error:
                    await response.aread()
                    logger.error(
                        "Responses endpoint returned HTTP %d: %s",
                        response.status_code,
                        response.text[:500],
                    )
                    response.raise_for_status()
                async for event in self._events(response):
                    yield event
        finally:
            if client is not self._client:
                await client.aclose()

    async def _events(self, response: httpx.Response) -> AsyncIterator[StreamEvent]:
        """
        Decode the SSE body into typed events.

        Blocks are separated by blank lines.  ``data: [DONE]`` ends the
        stream, and a final block without a trailing blank line still counts.
        """
        block = _EventBlock()
        async for line in response.aiter_lines():
            if line:
                block.feed(line)
                continue
            taken = block.take()
            if taken is None:
                continue
            if taken[1] == DONE_SENTINEL:
                return
            event = self._decode(*taken)
            if event is not None:
                yield event

        taken = block.take()
        if taken is not None and taken[1] != DONE_SENTINEL:
            event = self._decode(*taken)
            if event is not None:
                yield event

    @staticmethod
    def _decode(event_name: str | None, data: str) -> StreamEvent | None:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning("Skipping undecodable SSE data: %s", data[:200])
            return None
        if not isinstance(payload, dict):
            return None
        # Some servers only name the event on the ``event:`` line.
        if "type" not in payload and event_name:
            payload["type"] = event_name
        return parse_event(payload)
