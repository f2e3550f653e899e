from dataclasses import dataclass


@dataclass
class ToolResult:
    """
    Outcome of one tool call.

    *content* is always a JSON string, an encoded error object on failure,
    so it can be returned to the model as a ``function_call_output``.
    """

    correlation_id: str
    content: str
    success: bool = True
    error: str | None = None
    error_code: str | None = None


class ErrorCode:
    TOOL_NOT_FOUND = "tool_not_found"
    TOOL_EXCEPTION = "tool_exception"
