"""
Token estimation with optional tiktoken backend.

Used only when a provider finishes a conversation without reporting usage.
If ``tiktoken`` is installed the counter delegates to its BPE encoder for the
requested model; otherwise a character heuristic is used (~4 chars/token).
"""

from __future__ import annotations

import json
from typing import Any


class TokenCounter:
    """
    Estimate token counts for text and transcript items.

    Parameters
    ----------
    model:
        Model name passed to ``tiktoken.encoding_for_model``.  Ignored when
        tiktoken is not available.
    """

    def __init__(self, model: str | None = None) -> None:
        self.model = model
        self._tiktoken_enc: Any = None
        try:
            import tiktoken  # type: ignore[import-untyped]

            self._tiktoken_enc = tiktoken.encoding_for_model(model or "gpt-4o")
        except Exception:
            # tiktoken missing or model not recognised -- heuristic only.
            pass

    def count_text(self, text: str) -> int:
        """Return the estimated token count for a plain string."""
        if not text:
            return 0
        if self._tiktoken_enc is not None:
            return len(self._tiktoken_enc.encode(text))
        return max(1, len(text) // 4)

    def count_items(self, items: list[dict]) -> int:
        """
        Estimate the prompt size of a list of Responses API input items.

        Each item adds a small fixed overhead for role and separators.
        """
        total = 0
        for item in items:
            total += 4
            content = item.get("content")
            if isinstance(content, str):
                total += self.count_text(content)
            elif content is not None:
                total += self.count_text(json.dumps(content, default=str))
            for key in ("output", "arguments", "name"):
                value = item.get(key)
                if isinstance(value, str):
                    total += self.count_text(value)
        return total
