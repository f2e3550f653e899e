"""
Conversation policies consulted by the orchestrator.

Tool choice decides, per iteration, whether the model must, may, or cannot
call a tool.  Terminal-tool policy decides whether a tool call ends the
conversation (a "workflow" tool) or feeds its result back for further
reasoning (a "data" tool).
"""

from __future__ import annotations

from typing import Iterable, Protocol

DEFAULT_DATA_TOOLS = ("searchKnowledgeBase", "getChunksByQuery", "getActiveMCPs")


class ToolChoicePolicy(Protocol):
    def __call__(self, iteration: int, has_tools: bool) -> str | None: ...


class TerminalToolPolicy(Protocol):
    def is_terminal(self, name: str) -> bool: ...


class FirstCallRequiredPolicy:
    """``"required"`` on the first iteration, ``"auto"`` afterwards."""

    def __init__(self, required: bool = True):
        self.required = required

    def __call__(self, iteration: int, has_tools: bool) -> str | None:
        if not has_tools:
            return None
        if iteration == 1 and self.required:
            return "required"
        return "auto"


class AutoToolChoicePolicy:
    def __call__(self, iteration: int, has_tools: bool) -> str | None:
        return "auto" if has_tools else None


class DataToolsPolicy:
    """Every tool outside *data_tools* ends the conversation."""

    def __init__(self, data_tools: Iterable[str] = DEFAULT_DATA_TOOLS):
        self.data_tools = frozenset(data_tools)

    def is_terminal(self, name: str) -> bool:
        return name not in self.data_tools


class NeverTerminalPolicy:
    def is_terminal(self, name: str) -> bool:
        return False
