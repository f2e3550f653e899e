"""
Concurrent tool-call execution.

All calls in a batch start before any is awaited, and results come back in
call order.  A missing tool, malformed arguments or a raising tool function
each become a structured result; ``execute_all`` itself never raises for
per-call failures.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Mapping, Sequence

from responseloop.llm.types import PendingToolCall
from responseloop.tools.tracing import TraceDispatcher, TraceRecord
from responseloop.types import ErrorCode, ToolResult

logger = logging.getLogger(__name__)

ToolMapping = Mapping[str, Callable[[dict], Awaitable[Any]]]


def parse_arguments(raw: str) -> dict:
    """Decode a tool-call argument string; anything but a JSON object is ``{}``."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Malformed tool arguments, using {}: %s", raw[:200])
        return {}
    return value if isinstance(value, dict) else {}


async def execute_all(
    calls: Sequence[PendingToolCall],
    registry: ToolMapping,
    *,
    trace: TraceDispatcher | None = None,
) -> list[ToolResult]:
    """
    Run every call in *calls* concurrently against *registry*.

    ``result[i]`` always corresponds to ``calls[i]``.
    """
    logger.info("Executing %d tool call(s) in parallel", len(calls))
    results = await asyncio.gather(
        *(_execute_one(call, registry, trace) for call in calls)
    )
    logger.info("All %d tool results completed", len(results))
    return list(results)


async def _execute_one(
    call: PendingToolCall,
    registry: ToolMapping,
    trace: TraceDispatcher | None,
) -> ToolResult:
    args = parse_arguments(call.arguments)
    fn = registry.get(call.name)
    if fn is None:
        logger.warning("Tool %s not found in registry", call.name)
        return ToolResult(
            correlation_id=call.id,
            content=json.dumps({"error": "Tool not found"}),
            success=False,
            error="Tool not found",
            error_code=ErrorCode.TOOL_NOT_FOUND,
        )

    logger.info("Executing tool: %s args=%s", call.name, args)
    started_at = datetime.now(timezone.utc)
    start = time.monotonic()
    try:
        value = await fn(args)
        # Non-string keys and cycles are not covered by default=str.
        content = json.dumps(value, default=str)
    except Exception as e:
        duration_ms = int((time.monotonic() - start) * 1000)
        logger.error("Tool %s failed: %s", call.name, e)
        result = ToolResult(
            correlation_id=call.id,
            content=json.dumps({"error": str(e)}),
            success=False,
            error=str(e),
            error_code=ErrorCode.TOOL_EXCEPTION,
        )
        if trace is not None:
            trace.report(TraceRecord(
                tool_name=call.name,
                arguments=args,
                start_time=started_at,
                end_time=datetime.now(timezone.utc),
                duration_ms=duration_ms,
                success=False,
                error=str(e),
            ))
        return result

    duration_ms = int((time.monotonic() - start) * 1000)
    logger.info("Tool %s executed successfully in %dms", call.name, duration_ms)
    if trace is not None:
        trace.report(TraceRecord(
            tool_name=call.name,
            arguments=args,
            start_time=started_at,
            end_time=datetime.now(timezone.utc),
            duration_ms=duration_ms,
            success=True,
            result=value,
        ))
    return ToolResult(correlation_id=call.id, content=content)
