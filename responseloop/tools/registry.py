from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

import jsonschema

ToolFn = Callable[[dict], Awaitable[Any]]


def normalize_schema(schema: dict | None) -> dict:
    s = dict(schema or {})
    s.setdefault("type", "object")
    s.setdefault("properties", {})
    return s


@dataclass
class ToolSpec:
    name: str
    fn: ToolFn
    description: str = ""
    parameters: dict = field(default_factory=dict)

    def to_responses_schema(self) -> dict:
        return {
            "type": "function",
            "name": self.name,
            "description": self.description or f"Execute {self.name} operation",
            "parameters": normalize_schema(self.parameters),
        }


class ToolRegistry:
    """
    Name -> async callable mapping, plus the schemas advertised to the model.

    Read-only once a conversation starts; one registry may be shared by
    concurrent conversations as long as the tool functions are reentrant.
    """

    def __init__(self):
        self._tools: dict[str, ToolSpec] = {}

    def register(
        self,
        name: str,
        fn: ToolFn,
        *,
        description: str = "",
        parameters: dict | None = None,
        overwrite: bool = False,
    ) -> None:
        if name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {name}")
        schema = normalize_schema(parameters)
        jsonschema.Draft202012Validator.check_schema(schema)
        self._tools[name] = ToolSpec(
            name=name, fn=fn, description=description, parameters=schema
        )

    def get(self, name: str) -> ToolFn | None:
        spec = self._tools.get(name)
        return spec.fn if spec else None

    def require(self, name: str) -> ToolFn:
        fn = self.get(name)
        if not fn:
            raise KeyError(name)
        return fn

    def names(self) -> list[str]:
        return sorted(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def to_responses_schema(self) -> list[dict]:
        return [self._tools[n].to_responses_schema() for n in self.names()]

    def as_mapping(self) -> dict[str, ToolFn]:
        return {name: spec.fn for name, spec in self._tools.items()}

    @classmethod
    def from_methods(
        cls,
        methods: Mapping[str, Mapping[str, Any]],
        call: Callable[[str, dict], Awaitable[Any]],
    ) -> ToolRegistry:
        """Build a registry from a ``{method: {description, input}}`` schema.

        Every method is routed through the single dispatch coroutine *call*,
        which receives the method name and the parsed arguments.
        """
        reg = cls()
        for method_name, method_schema in methods.items():
            method_schema = method_schema or {}

            async def _invoke(args: dict, _method: str = method_name) -> Any:
                return await call(_method, args)

            reg.register(
                method_name,
                _invoke,
                description=method_schema.get("description") or "",
                parameters=method_schema.get("input"),
            )
        return reg
