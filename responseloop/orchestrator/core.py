"""
Orchestrator core -- the multi-turn tool-calling loop.

Per iteration the orchestrator:
1. Builds request parameters from the transcript (or chains onto the
   previous response id)
2. Opens a response stream and folds every event into the accumulator
3. Pushes threshold-flushed text and reasoning to the output sink
4. Stops when the model requests no tool calls
5. Otherwise executes the requested calls concurrently, emits each result,
   and either stops (terminal tool) or feeds the outputs back
6. Gives up after ``max_iterations`` and returns what it has
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from responseloop.llm.events import parse_event
from responseloop.llm.providers.base import Transport
from responseloop.llm.reducer import reduce
from responseloop.llm.types import Accumulator, PendingToolCall, UsageMode
from responseloop.orchestrator.transcript import (
    NO_TOOLS_DIRECTIVE,
    ConversationRequest,
    FunctionCallItem,
    FunctionCallOutputItem,
    MessageItem,
    TranscriptItem,
    append_directive,
)
from responseloop.streaming.emitters import (
    DEFAULT_REASONING_THRESHOLD,
    DEFAULT_TEXT_THRESHOLD,
    OutputSink,
    ReasoningEmitter,
    TextEmitter,
    ToolResultOutput,
)
from responseloop.tools.executor import ToolMapping, execute_all, parse_arguments
from responseloop.tools.policy import (
    FirstCallRequiredPolicy,
    NeverTerminalPolicy,
    TerminalToolPolicy,
    ToolChoicePolicy,
)
from responseloop.tools.registry import ToolRegistry
from responseloop.tools.tracing import TraceDispatcher
from responseloop.types import ToolResult

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    ITERATING = "iterating"
    AWAITING_TOOL_RESULTS = "awaiting_tool_results"
    COMPLETED = "completed"
    ABORTED = "aborted"


@dataclass
class OrchestratorConfig:
    max_iterations: int = 10
    text_threshold: int = DEFAULT_TEXT_THRESHOLD
    reasoning_threshold: int = DEFAULT_REASONING_THRESHOLD
    require_first_tool_call: bool = True
    chain_responses: bool = True
    # None picks REPLACE when chaining (cumulative usage), ACCUMULATE otherwise.
    usage_mode: UsageMode | None = None
    flush_at_stream_end: bool = False

    @property
    def effective_usage_mode(self) -> UsageMode:
        if self.usage_mode is not None:
            return self.usage_mode
        return UsageMode.REPLACE if self.chain_responses else UsageMode.ACCUMULATE


@dataclass
class ToolCallRecord:
    name: str
    arguments: Any
    result: Any

    def to_dict(self) -> dict:
        return {"name": self.name, "arguments": self.arguments, "result": self.result}


@dataclass
class ConversationResult:
    full_text: str
    reasoning: str
    usage: dict
    finish_reason: str | None
    tool_calls: list[ToolCallRecord] | None = None
    state: LoopState = LoopState.COMPLETED
    iterations: int = 0
    response_id: str | None = None
    transcript: list[TranscriptItem] = field(default_factory=list, repr=False)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "fullText": self.full_text,
            "reasoning": self.reasoning,
            "usage": self.usage,
            "finishReason": self.finish_reason,
        }
        if self.tool_calls:
            d["toolCalls"] = [tc.to_dict() for tc in self.tool_calls]
        return d


def _decode_result(content: str) -> Any:
    try:
        return json.loads(content or "{}")
    except (json.JSONDecodeError, ValueError):
        return content


class ConversationOrchestrator:
    """
    Drives one conversation to completion.

    Parameters
    ----------
    transport : Transport
        Opens response streams.
    emit : callable
        Output sink receiving ``ChunkOutput``, ``ReasoningOutput`` and
        ``ToolResultOutput`` payloads.
    registry : ToolRegistry or mapping, optional
        Tool name -> async function.  ``None`` means no tools can run.
    tools : list of dict, optional
        Tool definitions advertised to the model.  Defaults to the registry's
        schema when *registry* is a ``ToolRegistry``.
    config : OrchestratorConfig
        Iteration bound, emitter thresholds and chaining/usage policy.
    tool_choice_policy : callable, optional
        ``(iteration, has_tools) -> tool_choice``.  Defaults to requiring a
        tool call on the first iteration when ``require_first_tool_call``.
    terminal_policy : TerminalToolPolicy, optional
        Decides which tools end the conversation.  Defaults to none.
    trace : TraceDispatcher, optional
        Receives a fire-and-forget record per tool call.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        emit: OutputSink,
        registry: ToolRegistry | ToolMapping | None = None,
        tools: list[dict] | None = None,
        config: OrchestratorConfig | None = None,
        tool_choice_policy: ToolChoicePolicy | None = None,
        terminal_policy: TerminalToolPolicy | None = None,
        trace: TraceDispatcher | None = None,
    ) -> None:
        self.transport = transport
        self.emit = emit
        self.config = config or OrchestratorConfig()
        if isinstance(registry, ToolRegistry):
            self.tool_map: ToolMapping | None = registry.as_mapping()
            self.tools = tools if tools is not None else registry.to_responses_schema()
        else:
            self.tool_map = registry
            self.tools = tools or []
        self.tool_choice_policy = tool_choice_policy or FirstCallRequiredPolicy(
            self.config.require_first_tool_call
        )
        self.terminal_policy = terminal_policy or NeverTerminalPolicy()
        self.trace = trace
        self.text_emitter = TextEmitter(emit, self.config.text_threshold)
        self.reasoning_emitter = ReasoningEmitter(emit, self.config.reasoning_threshold)

    async def run(self, request: ConversationRequest) -> ConversationResult:
        """
        Run the conversation described by *request*.

        Returns a result in every terminal state, including when
        ``max_iterations`` is exhausted.  Transport exceptions propagate.
        """
        cfg = self.config
        transcript: list[TranscriptItem] = list(request.items)
        instructions = request.instructions
        state = Accumulator()
        records: list[ToolCallRecord] = []
        previous_response_id: str | None = None
        last_response_id: str | None = None
        chained_input: list[TranscriptItem] = []
        directive_added = False
        loop_state = LoopState.ITERATING
        iteration = 0

        self.text_emitter.reset()
        self.reasoning_emitter.reset()

        while iteration < cfg.max_iterations:
            iteration += 1
            loop_state = LoopState.ITERATING
            logger.info("Conversation iteration %d", iteration)

            params = self._build_params(
                request.params,
                instructions=instructions,
                iteration=iteration,
                transcript=transcript,
                previous_response_id=previous_response_id,
                chained_input=chained_input,
            )
            # Each response.created supplies a fresh id; only an empty slot is filled.
            last_response_id = state.response_id or last_response_id
            state = replace(state.begin_iteration(), response_id=None)
            state = await self._consume_stream(params, state)

            logger.info(
                "Iteration %d finished: text=%d reasoning=%d tool_calls=%d finish_reason=%s",
                iteration,
                len(state.full_text),
                len(state.reasoning),
                len(state.tool_calls),
                state.finish_reason,
            )

            if not state.tool_calls:
                loop_state = LoopState.COMPLETED
                logger.info("Conversation complete (finish_reason: %s)", state.finish_reason)
                break

            if self.tool_map is None:
                logger.warning(
                    "Model requested %d tool call(s) but no tool registry is "
                    "available; instructing it to answer directly",
                    len(state.tool_calls),
                )
                if not directive_added:
                    instructions = append_directive(instructions, NO_TOOLS_DIRECTIVE)
                    directive_added = True
                # The unanswered calls cannot be chained onto; resend history.
                previous_response_id = None
                chained_input = []
                continue

            loop_state = LoopState.AWAITING_TOOL_RESULTS
            calls = state.tool_calls
            logger.info("Model requested %d tool call(s)", len(calls))

            if state.iteration_text:
                transcript.append(MessageItem(role="assistant", content=state.iteration_text))

            results = await execute_all(calls, self.tool_map, trace=self.trace)
            for call, result in zip(calls, results):
                record = self._record(call, result)
                records.append(record)
                logger.info("Emitting tool result: %s", record.name)
                self.emit(ToolResultOutput(
                    name=record.name,
                    arguments=record.arguments,
                    result=record.result,
                ))

            terminal = [c.name for c in calls if self.terminal_policy.is_terminal(c.name)]
            if terminal:
                loop_state = LoopState.COMPLETED
                logger.info("Terminal tool(s) %s invoked; ending conversation", terminal)
                break

            transcript.extend(
                FunctionCallItem(call_id=c.id, name=c.name, arguments=c.arguments)
                for c in calls
            )
            chained_input = [
                FunctionCallOutputItem(call_id=c.id, output=r.content)
                for c, r in zip(calls, results)
            ]
            transcript.extend(chained_input)
            previous_response_id = state.response_id if cfg.chain_responses else None
            logger.info(
                "Added %d function_call_output item(s) for next iteration", len(chained_input)
            )
        else:
            loop_state = LoopState.ABORTED
            logger.warning(
                "Max iterations (%d) reached, stopping conversation", cfg.max_iterations
            )

        return ConversationResult(
            full_text=state.full_text,
            reasoning=state.reasoning,
            usage=state.usage,
            finish_reason=state.finish_reason,
            tool_calls=records or None,
            state=loop_state,
            iterations=iteration,
            response_id=state.response_id or last_response_id,
            transcript=transcript,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_params(
        self,
        base: dict,
        *,
        instructions: str,
        iteration: int,
        transcript: list[TranscriptItem],
        previous_response_id: str | None,
        chained_input: list[TranscriptItem],
    ) -> dict:
        params = dict(base)
        if instructions:
            params["instructions"] = instructions
        else:
            params.pop("instructions", None)

        if previous_response_id and iteration > 1:
            params["previous_response_id"] = previous_response_id
            params["input"] = [item.to_input() for item in chained_input]
            logger.info(
                "Chaining with previous_response_id: %s, input items: %d",
                previous_response_id,
                len(chained_input),
            )
        else:
            if iteration > 1:
                params.pop("previous_response_id", None)
            params["input"] = [item.to_input() for item in transcript]

        has_tools = bool(self.tools)
        if has_tools:
            params["tools"] = self.tools
        tool_choice = self.tool_choice_policy(iteration, has_tools)
        if tool_choice is not None:
            params["tool_choice"] = tool_choice
            logger.info("Tool choice for iteration %d: %s", iteration, tool_choice)
        return params

    async def _consume_stream(self, params: dict, state: Accumulator) -> Accumulator:
        usage_mode = self.config.effective_usage_mode
        count = 0
        try:
            async for raw in self.transport.create_stream(params):
                count += 1
                event = parse_event(raw)
                prev_text = len(state.full_text)
                prev_reasoning = len(state.reasoning)
                state = reduce(event, state, usage_mode)

                new_text = len(state.full_text) - prev_text
                if new_text > 0:
                    self.text_emitter.emit_if_needed(state.full_text, new_text)
                new_reasoning = len(state.reasoning) - prev_reasoning
                if new_reasoning > 0:
                    self.reasoning_emitter.emit_if_needed(state.reasoning, new_reasoning)
        except Exception:
            logger.exception("Stream processing error after %d events", count)
            raise

        logger.debug("Processed %d stream events", count)
        if self.config.flush_at_stream_end:
            self.text_emitter.emit_final(state.full_text)
            self.reasoning_emitter.emit_final(state.reasoning)
        return state

    @staticmethod
    def _record(call: PendingToolCall, result: ToolResult) -> ToolCallRecord:
        return ToolCallRecord(
            name=call.name,
            arguments=parse_arguments(call.arguments),
            result=_decode_result(result.content),
        )
