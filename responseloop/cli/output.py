"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

import yaml
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from responseloop.llm.types import UsageStats
from responseloop.orchestrator.core import ConversationResult
from responseloop.streaming.emitters import (
    ChunkOutput,
    FinalOutput,
    ReasoningOutput,
    ToolResultOutput,
)


class OutputFormatter:
    """
    Rich-based rendering of conversation output.

    Instances are usable directly as an output sink.  Text payloads carry the
    full accumulated value, so only the unseen suffix is printed.
    """

    def __init__(self, console: Console | None = None, *, show_reasoning: bool = True) -> None:
        self.console = console or Console()
        self.show_reasoning = show_reasoning
        self._printed_text = 0
        self._printed_reasoning = 0

    def __call__(self, payload: Any) -> None:
        if isinstance(payload, ChunkOutput):
            self._print_suffix(payload.chunk)
        elif isinstance(payload, ReasoningOutput):
            if self.show_reasoning:
                new = payload.reasoning[self._printed_reasoning:]
                if new:
                    self.console.print(new, style="dim italic", end="", markup=False)
                self._printed_reasoning = len(payload.reasoning)
        elif isinstance(payload, ToolResultOutput):
            self.format_tool_result(payload)
        elif isinstance(payload, FinalOutput):
            self._print_suffix(payload.text)
            self.console.print()

    def _print_suffix(self, text: str) -> None:
        new = text[self._printed_text:]
        if new:
            self.console.print(new, end="", markup=False)
        self._printed_text = len(text)

    def format_tool_result(self, payload: ToolResultOutput) -> None:
        body = json.dumps(
            {"arguments": payload.arguments, "result": payload.result},
            indent=2,
            default=str,
        )
        self.console.print()
        self.console.print(Panel(
            Syntax(body[:2000], "json", theme="monokai"),
            title=f"Tool: {payload.name}",
        ))

    def format_summary(self, result: ConversationResult, usage: UsageStats) -> None:
        table = Table(title="Conversation", show_header=False)
        table.add_column("Field", style="cyan", no_wrap=True)
        table.add_column("Value")
        table.add_row("State", result.state.value)
        table.add_row("Finish reason", str(result.finish_reason))
        table.add_row("Iterations", str(result.iterations))
        table.add_row("Tool calls", str(len(result.tool_calls or [])))
        suffix = " (estimated)" if usage.estimated else ""
        table.add_row("Total tokens", f"{usage.total_tokens}{suffix}")
        if usage.prompt_tokens is not None:
            table.add_row("Prompt tokens", str(usage.prompt_tokens))
        if usage.completion_tokens is not None:
            table.add_row("Completion tokens", str(usage.completion_tokens))
        if usage.reasoning_tokens is not None:
            table.add_row("Reasoning tokens", str(usage.reasoning_tokens))
        self.console.print(table)

    def format_config(self, config: dict) -> None:
        yaml_str = yaml.safe_dump(config, sort_keys=False)
        self.console.print(Syntax(yaml_str, "yaml", theme="monokai"))
