"""Base class for persona tools."""

from abc import ABC, abstractmethod
from typing import Any

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


class Tool(ABC):
    """
    A capability a persona can invoke through function calling.

    Subclasses describe themselves with a JSON schema and return a
    JSON-serialisable dict from ``execute``. Failures are raised as
    ``ToolError`` and turned into structured results by the registry.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Exact name the model uses to call the tool."""

    @property
    @abstractmethod
    def description(self) -> str:
        """What the tool does, for the model."""

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON schema for the tool's input."""

    @property
    def toolset(self) -> str:
        return "general"

    def is_available(self) -> bool:
        """Whether the tool's backing services are configured."""
        return True

    @abstractmethod
    async def execute(self, **kwargs: Any) -> dict[str, Any]:
        """Run the tool. ``context`` is passed alongside the model's arguments."""

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Shallow schema check: required keys and primitive types."""
        errors: list[str] = []
        schema = self.parameters
        props = schema.get("properties", {})
        for key in schema.get("required", []):
            if params.get(key) in (None, ""):
                errors.append(f"missing required parameter '{key}'")
        for key, value in params.items():
            prop = props.get(key)
            if prop is None or value is None:
                continue
            expected = _JSON_TYPES.get(prop.get("type", ""))
            if expected is None:
                continue
            # bool is an int subclass; keep them apart.
            if isinstance(value, bool) and bool not in expected:
                errors.append(f"'{key}' should be {prop['type']}")
            elif not isinstance(value, expected):
                errors.append(f"'{key}' should be {prop['type']}")
            elif "enum" in prop and value not in prop["enum"]:
                errors.append(f"'{key}' must be one of {prop['enum']}")
        return errors

    def to_schema(self) -> dict[str, Any]:
        """OpenAI function-calling definition."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
