"""Abstract base class for response-stream transports."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from responseloop.llm.events import StreamEvent


class Transport(ABC):
    """
    A transport opens one streamed response per call.

    Implementations receive fully-built request parameters (``model``,
    ``input``, ``instructions``, ``tools``, ``tool_choice``,
    ``previous_response_id`` ...) and yield typed ``StreamEvent`` objects in
    arrival order.  Connection failures are raised, not converted to events.
    """

    @abstractmethod
    async def create_stream(self, params: dict) -> AsyncIterator[StreamEvent]:
        """Open a response stream and yield its events."""
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        if False:  # pragma: no cover
            yield  # type: ignore[misc]

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable transport name (e.g. ``"responses-sse"``)."""
        ...
