"""
Settings for the model connection, the conversation loop and tracing.

Values are layered, later sources winning:

    built-in defaults, YAML file, named profile, RLOOP_* env vars, CLI flags
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from responseloop.errors import ConfigError
from responseloop.llm.types import UsageMode
from responseloop.tools.policy import DEFAULT_DATA_TOOLS


@dataclass
class LLMConfig:
    model: str = "gpt-5-mini"
    api_base: str = "https://api.openai.com/v1"
    api_key_env: str = "OPENAI_API_KEY"
    organization: str = ""
    transport: str = "sse"  # "sse" or "sdk"
    max_output_tokens: int = 4_096
    reasoning_effort: str = ""
    reasoning_summary: str = "concise"
    verbosity: str = "medium"
    timeout_seconds: int = 120

    def api_key(self) -> str:
        return os.environ.get(self.api_key_env, "")


@dataclass
class ConversationConfig:
    max_iterations: int = 10
    text_threshold: int = 300
    reasoning_threshold: int = 150
    require_first_tool_call: bool = True
    chain_responses: bool = True
    usage_mode: str = ""  # "", "replace" or "accumulate"
    enable_preambles: bool = True
    enable_markdown: bool = False
    data_tools: list[str] = field(default_factory=lambda: list(DEFAULT_DATA_TOOLS))


@dataclass
class TracingConfig:
    enabled: bool = False
    path: str = "~/.responseloop/traces.jsonl"
    max_size_mb: int = 10
    keep_files: int = 5


@dataclass
class LoopSettings:
    llm: LLMConfig = field(default_factory=LLMConfig)
    conversation: ConversationConfig = field(default_factory=ConversationConfig)
    tracing: TracingConfig = field(default_factory=TracingConfig)
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)

    def usage_mode(self) -> UsageMode | None:
        if not self.conversation.usage_mode:
            return None
        return UsageMode(self.conversation.usage_mode)

    def validate(self) -> None:
        """Raise ``ConfigError`` describing the first invalid value."""
        conv = self.conversation
        for name in ("max_iterations", "text_threshold", "reasoning_threshold"):
            value = getattr(conv, name)
            if value <= 0:
                raise ConfigError(f"conversation.{name} must be positive, got {value}")
        valid_modes = {m.value for m in UsageMode}
        if conv.usage_mode and conv.usage_mode not in valid_modes:
            raise ConfigError(
                f"conversation.usage_mode must be one of {sorted(valid_modes)}, got {conv.usage_mode!r}"
            )
        if self.llm.transport not in ("sse", "sdk"):
            raise ConfigError(f"llm.transport must be 'sse' or 'sdk', got {self.llm.transport!r}")
        if self.llm.max_output_tokens <= 0:
            raise ConfigError("llm.max_output_tokens must be positive")


# env var -> (section, field, type)
ENV_VARS: dict[str, tuple[str, str, type]] = {
    "RLOOP_LLM_MODEL":               ("llm", "model", str),
    "RLOOP_LLM_API_BASE":            ("llm", "api_base", str),
    "RLOOP_LLM_API_KEY_ENV":         ("llm", "api_key_env", str),
    "RLOOP_LLM_ORGANIZATION":        ("llm", "organization", str),
    "RLOOP_LLM_TRANSPORT":           ("llm", "transport", str),
    "RLOOP_LLM_MAX_OUTPUT":          ("llm", "max_output_tokens", int),
    "RLOOP_LLM_REASONING_EFFORT":    ("llm", "reasoning_effort", str),
    "RLOOP_LLM_TIMEOUT":             ("llm", "timeout_seconds", int),
    "RLOOP_MAX_ITERATIONS":          ("conversation", "max_iterations", int),
    "RLOOP_TEXT_THRESHOLD":          ("conversation", "text_threshold", int),
    "RLOOP_REASONING_THRESHOLD":     ("conversation", "reasoning_threshold", int),
    "RLOOP_REQUIRE_FIRST_TOOL_CALL": ("conversation", "require_first_tool_call", bool),
    "RLOOP_CHAIN_RESPONSES":         ("conversation", "chain_responses", bool),
    "RLOOP_USAGE_MODE":              ("conversation", "usage_mode", str),
    "RLOOP_DATA_TOOLS":              ("conversation", "data_tools", list),
    "RLOOP_TRACING_ENABLED":         ("tracing", "enabled", bool),
    "RLOOP_TRACING_PATH":            ("tracing", "path", str),
}

_SECTIONS = {
    "llm": LLMConfig,
    "conversation": ConversationConfig,
    "tracing": TracingConfig,
}


def _overlay(base: dict, top: dict) -> dict:
    out = dict(base)
    for key, value in top.items():
        below = out.get(key)
        out[key] = _overlay(below, value) if isinstance(below, dict) and isinstance(value, dict) else value
    return out


def _parse_env(raw: str, kind: type) -> Any:
    if kind is bool:
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if kind is list:
        return [part.strip() for part in raw.split(",") if part.strip()]
    if kind is int:
        try:
            return int(raw)
        except ValueError as exc:
            raise ConfigError(f"Expected an integer, got {raw!r}") from exc
    return raw


def _read_yaml(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def _set(settings: LoopSettings, dotpath: str, value: Any) -> None:
    section_name, _, key = dotpath.partition(".")
    section = getattr(settings, section_name, None)
    if section is None or not key or not hasattr(section, key):
        raise ConfigError(f"Unknown config key: {dotpath}")
    setattr(section, key, value)


def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> LoopSettings:
    """
    Resolve ``LoopSettings`` from every configuration source.

    *config_path* may point at a missing file, which is treated as empty.
    *profile* names an entry under ``profiles:`` in that file.
    *cli_overrides* maps ``section.field`` to a value; ``None`` values are
    flags the user did not pass and are skipped.
    """
    layered: dict[str, Any] = {}
    if config_path is not None:
        path = Path(config_path).expanduser()
        if path.is_file():
            layered = _read_yaml(path)

    if profile:
        overrides = (layered.get("profiles") or {}).get(profile)
        if overrides is None:
            raise ConfigError(f"Unknown profile: {profile}")
        layered = _overlay(layered, overrides)

    sections = {}
    for name, cls in _SECTIONS.items():
        known = {f.name for f in fields(cls)}
        values = layered.get(name) or {}
        sections[name] = cls(**{k: v for k, v in values.items() if k in known})
    settings = LoopSettings(profiles=layered.get("profiles") or {}, **sections)

    for var, (section, key, kind) in ENV_VARS.items():
        raw = os.environ.get(var)
        if raw is not None:
            _set(settings, f"{section}.{key}", _parse_env(raw, kind))

    for dotpath, value in (cli_overrides or {}).items():
        if value is not None:
            _set(settings, dotpath, value)

    return settings
