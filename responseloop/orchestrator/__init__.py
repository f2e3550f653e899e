"""Conversation orchestration: the tool-calling loop and its transcript."""

from responseloop.orchestrator.core import (
    ConversationOrchestrator,
    ConversationResult,
    LoopState,
    OrchestratorConfig,
    ToolCallRecord,
)
from responseloop.orchestrator.transcript import (
    ConversationRequest,
    FunctionCallItem,
    FunctionCallOutputItem,
    MessageItem,
    build_input_items,
    build_request,
    build_request_params,
)

__all__ = [
    "ConversationOrchestrator",
    "ConversationRequest",
    "ConversationResult",
    "FunctionCallItem",
    "FunctionCallOutputItem",
    "LoopState",
    "MessageItem",
    "OrchestratorConfig",
    "ToolCallRecord",
    "build_input_items",
    "build_request",
    "build_request_params",
]
