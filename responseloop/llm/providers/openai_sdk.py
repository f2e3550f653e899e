"""
Transport backed by the ``openai`` Python SDK.

The SDK is an optional dependency; it is imported lazily so the rest of the
package works without it.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from responseloop.errors import TransportError
from responseloop.llm.events import StreamEvent, parse_event
from responseloop.llm.providers.base import Transport

logger = logging.getLogger(__name__)


def _import_openai():
    """Attempt to import the OpenAI SDK.  Returns ``None`` on failure."""
    try:
        import openai  # type: ignore[import-untyped]
        return openai
    except ImportError:
        return None


class OpenAISDKTransport(Transport):
    """
    Streams ``client.responses.create(..., stream=True)`` events.

    Parameters
    ----------
    client:
        An existing ``openai.AsyncOpenAI`` (or compatible) client.  When
        omitted one is built lazily from the remaining arguments.
    api_key, base_url, organization:
        Passed to ``openai.AsyncOpenAI`` when building a client.
    timeout:
        Default request timeout.
    """

    def __init__(
        self,
        client: Any = None,
        api_key: str | None = None,
        base_url: str | None = None,
        organization: str | None = None,
        timeout: float = 120.0,
    ) -> None:
        self._client = client
        self._api_key = api_key
        self._base_url = base_url
        self._organization = organization
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "sdk-openai"

    def _get_client(self):
        if self._client is not None:
            return self._client
        openai = _import_openai()
        if openai is None:
            raise ImportError(
                "openai SDK is not installed. "
                "Install it with: pip install 'responseloop[openai]'"
            )

        kwargs: dict = {"timeout": self._timeout}
        if self._api_key:
            kwargs["api_key"] = self._api_key
        if self._base_url:
            kwargs["base_url"] = self._base_url
        if self._organization:
            kwargs["organization"] = self._organization

        self._client = openai.AsyncOpenAI(**kwargs)
        return self._client

    async def create_stream(self, params: dict) -> AsyncIterator[StreamEvent]:
        client = self._get_client()
        request = dict(params)
        request["stream"] = True
        logger.info(
            "Creating SDK stream: model=%s tools=%d tool_choice=%s",
            request.get("model"),
            len(request.get("tools") or []),
            request.get("tool_choice"),
        )
        try:
            stream = await client.responses.create(**request)
        except Exception as exc:
            openai = _import_openai()
            if openai is not None and isinstance(exc, openai.APIConnectionError):
                raise TransportError(f"Could not open response stream: {exc}") from exc
            raise

        async for raw in stream:
            yield parse_event(raw)
