"""
Threshold-flushed emission of partial output.

An emitter counts characters added since its last flush and, once the count
reaches its threshold, pushes the *entire* accumulated value to the sink.
Every emission is self-contained: a consumer that keeps only the latest
payload always holds the full text so far.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

DEFAULT_TEXT_THRESHOLD = 300
DEFAULT_REASONING_THRESHOLD = 150


# ---------------------------------------------------------------------------
# Output payloads
# ---------------------------------------------------------------------------


@dataclass
class ChunkOutput:
    chunk: str

    def to_dict(self) -> dict:
        return {"chunk": self.chunk}


@dataclass
class ReasoningOutput:
    reasoning: str

    def to_dict(self) -> dict:
        return {"reasoning": self.reasoning}


@dataclass
class ToolResultOutput:
    name: str
    arguments: Any
    result: Any

    def to_dict(self) -> dict:
        return {
            "mcpResult": {
                "name": self.name,
                "arguments": self.arguments,
                "result": self.result,
            }
        }


@dataclass
class FinalOutput:
    chunk: str
    text: str
    reasoning: str | None = None

    def to_dict(self) -> dict:
        d: dict = {"chunk": self.chunk, "text": self.text}
        if self.reasoning:
            d["reasoning"] = self.reasoning
        return d


OutputSink = Callable[[Any], None]


@dataclass
class CollectingSink:
    """A sink that records every payload it receives."""

    payloads: list = field(default_factory=list)

    def __call__(self, payload: Any) -> None:
        self.payloads.append(payload)

    def of_type(self, cls: type) -> list:
        return [p for p in self.payloads if isinstance(p, cls)]


# ---------------------------------------------------------------------------
# Emitters
# ---------------------------------------------------------------------------


class ThresholdEmitter:
    """
    Flushes the full accumulated value once enough new characters arrive.

    Parameters
    ----------
    sink:
        Callable receiving each payload.
    channel:
        ``"chunk"`` for assistant text, ``"reasoning"`` for reasoning.
    threshold:
        Number of new characters that triggers a flush.
    """

    def __init__(self, sink: OutputSink, *, channel: str, threshold: int) -> None:
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        self._sink = sink
        self.channel = channel
        self.threshold = threshold
        self.chars_since_emit = 0

    def _payload(self, value: str) -> Any:
        if self.channel == "reasoning":
            return ReasoningOutput(reasoning=value)
        return ChunkOutput(chunk=value)

    def emit_if_needed(self, value: str, new_chars: int) -> bool:
        """Add *new_chars* to the counter and flush *value* if due."""
        self.chars_since_emit += new_chars
        if self.chars_since_emit < self.threshold:
            return False
        self._sink(self._payload(value))
        logger.debug(
            "Emitted %s (%d new chars, %d total)",
            self.channel,
            self.chars_since_emit,
            len(value),
        )
        self.chars_since_emit = 0
        return True

    def emit_final(self, value: str) -> bool:
        """Flush any unflushed remainder.  Emits nothing if the counter is zero."""
        if self.chars_since_emit <= 0:
            return False
        self._sink(self._payload(value))
        logger.debug(
            "Emitted final %s (%d new chars, %d total)",
            self.channel,
            self.chars_since_emit,
            len(value),
        )
        self.chars_since_emit = 0
        return True

    def reset(self) -> None:
        self.chars_since_emit = 0


class TextEmitter(ThresholdEmitter):
    def __init__(self, sink: OutputSink, threshold: int = DEFAULT_TEXT_THRESHOLD) -> None:
        super().__init__(sink, channel="chunk", threshold=threshold)


class ReasoningEmitter(ThresholdEmitter):
    def __init__(self, sink: OutputSink, threshold: int = DEFAULT_REASONING_THRESHOLD) -> None:
        super().__init__(sink, channel="reasoning", threshold=threshold)

    def emit_final(self, value: str) -> bool:
        if not value:
            return False
        return super().emit_final(value)
