"""Incremental output emission."""

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

__all__ = [
    "ChunkOutput",
    "CollectingSink",
    "FinalOutput",
    "ReasoningEmitter",
    "ReasoningOutput",
    "TextEmitter",
    "ThresholdEmitter",
    "ToolResultOutput",
]
