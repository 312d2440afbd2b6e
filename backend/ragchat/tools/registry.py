import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolParam:
    name: str
    type: str  # JSON schema type: "string" | "integer" | "number" | "boolean"
    description: str
    required: bool = True


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: tuple[ToolParam, ...] = field(default_factory=tuple)

    def to_openai(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": {
                    "type": "object",
                    "properties": {
                        p.name: {"type": p.type, "description": p.description}
                        for p in self.params
                    },
                    "required": [p.name for p in self.params if p.required],
                },
            },
        }


class ToolRegistry:
    """Name -> (schema, handler) table for model-invoked functions."""

    def __init__(self) -> None:
        self._tools: dict[str, tuple[ToolSpec, Callable[..., str]]] = {}

    def register(self, spec: ToolSpec, handler: Callable[..., str]) -> None:
        if spec.name in self._tools:
            raise ValueError(f"Tool already registered: {spec.name}")
        self._tools[spec.name] = (spec, handler)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def specs(self) -> list[ToolSpec]:
        return [spec for spec, _ in self._tools.values()]

    def schemas(self) -> list[dict[str, Any]]:
        return [spec.to_openai() for spec in self.specs()]

    def dispatch(self, name: str, arguments: str | dict | None) -> str:
        """
        Runs the named tool. Unknown names, malformed arguments and missing
        required parameters come back as error text for the model.
        """
        entry = self._tools.get(name)
        if entry is None:
            logger.warning("Model requested unknown tool: %s", name)
            return f"Error: unknown tool '{name}'"
        spec, handler = entry

        if isinstance(arguments, dict):
            args = arguments
        else:
            try:
                args = json.loads(arguments or "{}")
            except json.JSONDecodeError:
                return f"Error: arguments for '{name}' are not valid JSON"
            if not isinstance(args, dict):
                return f"Error: arguments for '{name}' must be a JSON object"

        known = {p.name for p in spec.params}
        missing = [p.name for p in spec.params if p.required and args.get(p.name) is None]
        if missing:
            return f"Error: missing required argument(s) for '{name}': {', '.join(missing)}"

        kwargs = {k: v for k, v in args.items() if k in known and v is not None}
        logger.info("Invoking tool %s(%s)", name, ", ".join(sorted(kwargs)))
        try:
            return handler(**kwargs)
        except (TypeError, ValueError) as exc:
            logger.warning("Tool %s rejected its arguments: %s", name, exc)
            return f"Error: invalid arguments for '{name}': {exc}"
