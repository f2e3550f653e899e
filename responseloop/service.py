"""
Top-level entry point: one prompt in, one finished conversation out.

``stream_completion`` wires a prompt and ``LoopSettings`` into a
``ConversationOrchestrator`` run, emits the final bundled payload, and
summarises token usage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from responseloop.config import LoopSettings
from responseloop.errors import StreamCompletionError
from responseloop.llm.providers.base import Transport
from responseloop.llm.providers.openai_sdk import OpenAISDKTransport
from responseloop.llm.providers.sse import ResponsesSSETransport
from responseloop.llm.token_counter import TokenCounter
from responseloop.llm.types import UsageStats
from responseloop.llm.usage import summarize_usage
from responseloop.orchestrator.core import (
    ConversationOrchestrator,
    ConversationResult,
    OrchestratorConfig,
)
from responseloop.orchestrator.transcript import build_input_items, build_request
from responseloop.streaming.emitters import FinalOutput, OutputSink
from responseloop.tools.policy import DataToolsPolicy
from responseloop.tools.registry import ToolRegistry
from responseloop.tools.tracing import JsonlTraceSink, TraceDispatcher

logger = logging.getLogger(__name__)


@dataclass
class StreamRequest:
    prompt: str
    system_prompt: str = ""
    history: list[dict] = field(default_factory=list)
    conversation_id: str | None = None
    previous_response_id: str | None = None
    execution_id: str | None = None
    node_id: str | None = None


@dataclass
class CompletionOutcome:
    final: FinalOutput
    result: ConversationResult
    usage: UsageStats


def build_transport(settings: LoopSettings) -> Transport:
    """Create the transport selected by ``settings.llm.transport``."""
    llm = settings.llm
    if llm.transport == "sdk":
        return OpenAISDKTransport(
            api_key=llm.api_key() or None,
            base_url=llm.api_base or None,
            organization=llm.organization or None,
            timeout=float(llm.timeout_seconds),
        )
    return ResponsesSSETransport(
        url=llm.api_base,
        api_key=llm.api_key(),
        organization=llm.organization or None,
        timeout=float(llm.timeout_seconds),
    )


def build_trace(
    settings: LoopSettings,
    *,
    execution_id: str | None = None,
    node_id: str | None = None,
) -> TraceDispatcher | None:
    """Create a JSONL-backed trace dispatcher when tracing is enabled."""
    tracing = settings.tracing
    if not tracing.enabled:
        return None
    sink = JsonlTraceSink(
        tracing.path,
        max_size_mb=tracing.max_size_mb,
        keep_files=tracing.keep_files,
    )
    return TraceDispatcher(sink, execution_id=execution_id, parent_node_id=node_id)


def orchestrator_config(settings: LoopSettings) -> OrchestratorConfig:
    conv = settings.conversation
    return OrchestratorConfig(
        max_iterations=conv.max_iterations,
        text_threshold=conv.text_threshold,
        reasoning_threshold=conv.reasoning_threshold,
        require_first_tool_call=conv.require_first_tool_call,
        chain_responses=conv.chain_responses,
        usage_mode=settings.usage_mode(),
    )


async def stream_completion(
    request: StreamRequest,
    settings: LoopSettings,
    transport: Transport,
    *,
    emit: OutputSink,
    registry: ToolRegistry | None = None,
    trace: TraceDispatcher | None = None,
) -> CompletionOutcome:
    """
    Run one conversation and emit its final ``FinalOutput`` payload.

    Any failure is logged and re-raised as ``StreamCompletionError``.
    """
    settings.validate()
    llm = settings.llm
    conv = settings.conversation
    has_tools = registry is not None and len(registry) > 0

    try:
        items = build_input_items(
            request.prompt,
            system_prompt=request.system_prompt,
            history=request.history,
            has_tools=has_tools,
            enable_preambles=conv.enable_preambles,
            enable_markdown=conv.enable_markdown,
        )
        conversation = build_request(
            llm.model,
            items,
            max_output_tokens=llm.max_output_tokens,
            reasoning_effort=llm.reasoning_effort or None,
            reasoning_summary=llm.reasoning_summary,
            verbosity=llm.verbosity,
            has_tools=has_tools,
            previous_response_id=request.previous_response_id,
            conversation_id=request.conversation_id,
        )
        if trace is None:
            trace = build_trace(
                settings, execution_id=request.execution_id, node_id=request.node_id
            )

        orchestrator = ConversationOrchestrator(
            transport,
            emit=emit,
            registry=registry if has_tools else None,
            config=orchestrator_config(settings),
            terminal_policy=DataToolsPolicy(conv.data_tools),
            trace=trace,
        )
        logger.info(
            "Starting conversation: model=%s transport=%s tools=%d",
            llm.model,
            transport.name,
            len(registry) if registry is not None else 0,
        )
        result = await orchestrator.run(conversation)
    except Exception as e:
        logger.exception("Failed to stream completion")
        raise StreamCompletionError(f"Failed to stream completion: {e}") from e

    usage = summarize_usage(
        result.usage,
        full_text=result.full_text,
        prompt_items=[item.to_input() for item in conversation.items],
        counter=TokenCounter(llm.model),
    )
    if usage.estimated:
        logger.warning("No usage reported by provider; estimated %d tokens", usage.total_tokens)
    else:
        logger.info("Usage: %d total tokens for model %s", usage.total_tokens, llm.model)

    final = FinalOutput(
        chunk=result.full_text,
        text=result.full_text,
        reasoning=result.reasoning or None,
    )
    emit(final)
    logger.info(
        "Stream completed: %d chars, %d reasoning chars, state=%s",
        len(result.full_text),
        len(result.reasoning),
        result.state.value,
    )
    return CompletionOutcome(final=final, result=result, usage=usage)
