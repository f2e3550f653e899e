"""Multi-turn, tool-calling conversations over streamed Responses API events."""

__version__ = "0.1.0"
