"""Response-stream transports."""

from responseloop.llm.providers.base import Transport
from responseloop.llm.providers.openai_sdk import OpenAISDKTransport
from responseloop.llm.providers.sse import ResponsesSSETransport

__all__ = ["OpenAISDKTransport", "ResponsesSSETransport", "Transport"]
