"""Core types for the LLM subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class FinishReason:
    COMPLETED = "completed"
    ERROR = "error"
    REFUSED = "refused"
    INCOMPLETE = "incomplete"


class UsageMode(str, Enum):
    """
    How a ``response.completed`` usage payload is folded into the accumulator.

    ``REPLACE`` suits response-chained transports, where the provider reports
    a cumulative total for the whole chain.  ``ACCUMULATE`` suits transports
    that resend the full history on every iteration and report per-call usage.
    """

    REPLACE = "replace"
    ACCUMULATE = "accumulate"


@dataclass(frozen=True)
class PendingToolCall:
    """
    A function call requested by the model during the current iteration.

    *id* is the provider's ``call_id`` and is what a ``function_call_output``
    must reference.  *item_id* is the output item id, which is what the
    argument delta events carry.  The two are never interchangeable.
    """

    id: str
    item_id: str
    name: str = ""
    arguments: str = ""

    def with_arguments(self, arguments: str) -> PendingToolCall:
        return replace(self, arguments=arguments)


@dataclass(frozen=True)
class Accumulator:
    """
    Fold state built from stream events within and across iterations.

    Instances are immutable; every reduction returns a new value.
    """

    full_text: str = ""
    iteration_text: str = ""
    reasoning: str = ""
    tool_calls: tuple[PendingToolCall, ...] = ()
    output_items: tuple[dict, ...] = ()
    response_id: str | None = None
    usage: dict[str, Any] = field(default_factory=dict)
    finish_reason: str | None = None

    def begin_iteration(self) -> Accumulator:
        """
        Clear the per-iteration fields.

        ``full_text``, ``reasoning``, ``usage`` and ``response_id`` carry over.
        """
        return replace(
            self,
            iteration_text="",
            tool_calls=(),
            output_items=(),
            finish_reason=None,
        )

    def find_call(self, item_id: str) -> int | None:
        """Return the index of the pending call streaming under *item_id*."""
        for idx, call in enumerate(self.tool_calls):
            if call.item_id == item_id:
                return idx
        return None


@dataclass
class UsageStats:
    """Normalised token accounting for a finished conversation."""

    total_tokens: int = 0
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    reasoning_tokens: int | None = None
    estimated: bool = False
    raw: dict = field(default_factory=dict)
