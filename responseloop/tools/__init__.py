"""Tool registry, concurrent execution, policies and trace reporting."""

from responseloop.tools.executor import execute_all, parse_arguments
from responseloop.tools.policy import (
    AutoToolChoicePolicy,
    DataToolsPolicy,
    FirstCallRequiredPolicy,
    NeverTerminalPolicy,
)
from responseloop.tools.registry import ToolRegistry
from responseloop.tools.tracing import JsonlTraceSink, TraceDispatcher, TraceRecord

__all__ = [
    "AutoToolChoicePolicy",
    "DataToolsPolicy",
    "FirstCallRequiredPolicy",
    "JsonlTraceSink",
    "NeverTerminalPolicy",
    "ToolRegistry",
    "TraceDispatcher",
    "TraceRecord",
    "execute_all",
    "parse_arguments",
]
