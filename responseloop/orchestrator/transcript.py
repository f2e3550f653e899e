"""
Transcript items and request-parameter building.

The transcript is the running list of input items sent to the model:
messages, function-call records and function-call outputs.  Only the
orchestrator appends to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Union

PREAMBLE_DIRECTIVE = "Before you call a tool, explain why you are calling it."
NO_TOOLS_DIRECTIVE = (
    "Tools are unavailable in this environment. Do not call tools. "
    "Provide the best possible direct answer to the user."
)
MARKDOWN_DIRECTIVE = (
    "Use Markdown formatting where semantically correct (e.g., `inline code`, "
    "```code fences```, lists, tables). Use backticks for file, directory, "
    "function, and class names."
)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


@dataclass
class MessageItem:
    role: str  # "system", "user", "assistant"
    content: Any

    def to_input(self) -> dict:
        return {"type": "message", "role": self.role, "content": self.content}


@dataclass
class FunctionCallItem:
    call_id: str
    name: str
    arguments: str

    def to_input(self) -> dict:
        return {
            "type": "function_call",
            "call_id": self.call_id,
            "name": self.name,
            "arguments": self.arguments,
        }


@dataclass
class FunctionCallOutputItem:
    call_id: str
    output: str

    def to_input(self) -> dict:
        return {
            "type": "function_call_output",
            "call_id": self.call_id,
            "output": self.output,
        }


TranscriptItem = Union[MessageItem, FunctionCallItem, FunctionCallOutputItem]


def append_directive(instructions: str, directive: str) -> str:
    """Append *directive* to *instructions* as a new paragraph."""
    if not instructions:
        return directive
    return f"{instructions}\n\n{directive}"


def split_instructions(
    items: Iterable[TranscriptItem],
) -> tuple[str, list[TranscriptItem]]:
    """Lift system messages out of *items*; the last one wins."""
    instructions = ""
    rest: list[TranscriptItem] = []
    for item in items:
        if isinstance(item, MessageItem) and item.role == "system":
            instructions = item.content if isinstance(item.content, str) else str(item.content)
        else:
            rest.append(item)
    return instructions, rest


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def build_input_items(
    prompt: str,
    *,
    system_prompt: str = "",
    history: list[dict] | None = None,
    has_tools: bool = False,
    enable_preambles: bool = True,
    enable_markdown: bool = False,
) -> list[TranscriptItem]:
    """
    Build the initial transcript for a conversation.

    The system prompt gains a preamble directive when tools exist, a no-tools
    directive when none do, and a Markdown directive when requested.
    """
    system = system_prompt or ""
    if has_tools and enable_preambles:
        system = append_directive(system, PREAMBLE_DIRECTIVE)
    if not has_tools:
        system = append_directive(system, NO_TOOLS_DIRECTIVE)
    if enable_markdown:
        system = append_directive(system, MARKDOWN_DIRECTIVE)

    items: list[TranscriptItem] = []
    if system:
        items.append(MessageItem(role="system", content=system))
    for msg in history or []:
        items.append(MessageItem(role=msg["role"], content=msg["content"]))
    items.append(MessageItem(role="user", content=prompt))
    return items


def resolve_reasoning_effort(model: str, requested: str | None) -> str:
    """
    Pick a reasoning effort the model accepts.

    ``gpt-5.2`` models accept ``none`` and ``xhigh``; older reasoning models
    only accept ``minimal`` .. ``high``.
    """
    is_gpt52 = (model or "").startswith("gpt-5.2")
    effort = requested or ("none" if is_gpt52 else "minimal")
    if not is_gpt52:
        if effort == "none":
            effort = "minimal"
        elif effort == "xhigh":
            effort = "high"
    return effort


@dataclass
class ConversationRequest:
    """
    Everything the orchestrator needs to start a conversation.

    *items* is the initial transcript without system messages; *params* holds
    the base request parameters (``model``, ``instructions``, reasoning and
    text settings ...).  ``input``, ``tools``, ``tool_choice`` and
    ``previous_response_id`` are filled in per iteration.
    """

    items: list[TranscriptItem]
    params: dict = field(default_factory=dict)

    @property
    def instructions(self) -> str:
        return self.params.get("instructions") or ""


def build_request(
    model: str,
    items: Iterable[TranscriptItem],
    *,
    max_output_tokens: int = 4096,
    reasoning_effort: str | None = None,
    reasoning_summary: str = "concise",
    verbosity: str = "medium",
    has_tools: bool = False,
    previous_response_id: str | None = None,
    conversation_id: str | None = None,
    temperature: float | None = None,
) -> ConversationRequest:
    """Build a ``ConversationRequest`` from a transcript and model settings."""
    instructions, rest = split_instructions(items)

    params: dict[str, Any] = {"model": model}
    if instructions:
        params["instructions"] = instructions
    if conversation_id:
        params["conversation"] = conversation_id
    elif previous_response_id:
        params["previous_response_id"] = previous_response_id

    params["reasoning"] = {
        "effort": resolve_reasoning_effort(model, reasoning_effort),
        "summary": reasoning_summary,
    }
    params["text"] = {"format": {"type": "text"}, "verbosity": verbosity}
    params["max_output_tokens"] = max_output_tokens
    if temperature is not None:
        params["temperature"] = temperature
    if has_tools:
        # One call per turn keeps tool sequencing predictable.
        params["parallel_tool_calls"] = False

    return ConversationRequest(items=rest, params=params)


def build_request_params(
    model: str,
    items: Iterable[TranscriptItem],
    *,
    tools: list[dict] | None = None,
    **kwargs: Any,
) -> dict:
    """Flat request parameters for a single, unchained call."""
    request = build_request(model, items, has_tools=bool(tools), **kwargs)
    params = dict(request.params)
    params["input"] = [item.to_input() for item in request.items]
    if tools:
        params["tools"] = tools
    return params
