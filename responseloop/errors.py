"""Exception hierarchy for responseloop."""

from __future__ import annotations


class ResponseLoopError(Exception):
    """Base class for all responseloop errors."""


class TransportError(ResponseLoopError):
    """The transport could not open or continue a response stream."""


class StreamCompletionError(ResponseLoopError):
    """A conversation failed at the service boundary."""


class ConfigError(ResponseLoopError):
    """Configuration values are missing or invalid."""
