"""Normalise provider usage payloads into ``UsageStats``."""

from __future__ import annotations

from responseloop.llm.token_counter import TokenCounter
from responseloop.llm.types import UsageStats


def _int(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    return None


def summarize_usage(
    usage: dict | None,
    *,
    full_text: str = "",
    prompt_items: list[dict] | None = None,
    counter: TokenCounter | None = None,
) -> UsageStats:
    """
    Build ``UsageStats`` from a raw usage dict.

    Responses API payloads (``input_tokens``/``output_tokens``) and Chat
    Completions payloads (``prompt_tokens``/``completion_tokens``) are both
    understood.  An empty payload falls back to an estimate from
    *full_text* and *prompt_items*, flagged ``estimated=True``.
    """
    usage = usage or {}
    if not usage:
        counter = counter or TokenCounter(None)
        completion = counter.count_text(full_text)
        prompt = counter.count_items(prompt_items or [])
        return UsageStats(
            total_tokens=prompt + completion,
            prompt_tokens=prompt,
            completion_tokens=completion,
            estimated=True,
        )

    if "input_tokens" in usage:
        details = usage.get("output_tokens_details") or {}
        return UsageStats(
            total_tokens=_int(usage.get("total_tokens")) or 0,
            prompt_tokens=_int(usage.get("input_tokens")),
            completion_tokens=_int(usage.get("output_tokens")),
            reasoning_tokens=_int(details.get("reasoning_tokens")),
            raw=dict(usage),
        )

    return UsageStats(
        total_tokens=_int(usage.get("total_tokens")) or 0,
        prompt_tokens=_int(usage.get("prompt_tokens")),
        completion_tokens=_int(usage.get("completion_tokens")),
        reasoning_tokens=_int(usage.get("reasoning_tokens")),
        raw=dict(usage),
    )
