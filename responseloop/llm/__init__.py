"""LLM subsystem -- stream events, the accumulator fold, and transports."""

from responseloop.llm.events import StreamEvent, parse_event
from responseloop.llm.reducer import fold, reduce
from responseloop.llm.token_counter import TokenCounter
from responseloop.llm.types import (
    Accumulator,
    FinishReason,
    PendingToolCall,
    UsageMode,
    UsageStats,
)
from responseloop.llm.usage import summarize_usage

__all__ = [
    "Accumulator",
    "FinishReason",
    "PendingToolCall",
    "StreamEvent",
    "TokenCounter",
    "UsageMode",
    "UsageStats",
    "fold",
    "parse_event",
    "reduce",
    "summarize_usage",
]
