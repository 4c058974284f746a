"""Base class for agent tools."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# JSON schema type name -> accepted Python types for a decoded argument
JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "number": (int, float),
    "integer": (int,),
    "boolean": (bool,),
    "object": (dict,),
    "array": (list,),
}


def matches_type(value: Any, json_type: str | None) -> bool:
    if json_type not in JSON_TYPES:
        return True
    if json_type in ("number", "integer") and isinstance(value, bool):
        return False
    return isinstance(value, JSON_TYPES[json_type])


def check_field(name: str, value: Any, spec: dict[str, Any]) -> list[str]:
    """Check one decoded argument against its property schema."""
    json_type = spec.get("type")
    if not matches_type(value, json_type):
        return [f"{name} should be {json_type}"]

    problems: list[str] = []
    choices = spec.get("enum")
    if choices is not None and value not in choices:
        problems.append(f"{name} must be one of {choices}")
    if json_type in ("number", "integer"):
        low, high = spec.get("minimum"), spec.get("maximum")
        if low is not None and value < low:
            problems.append(f"{name} must be >= {low}")
        if high is not None and value > high:
            problems.append(f"{name} must be <= {high}")
    elif json_type == "string":
        shortest = spec.get("minLength")
        if shortest is not None and len(value.strip()) < shortest:
            problems.append(f"{name} must not be blank" if shortest == 1 else f"{name} is too short")
    elif json_type == "object" and "properties" in spec:
        problems.extend(check_arguments(spec, value, prefix=f"{name}."))
    return problems


def check_arguments(schema: dict[str, Any], arguments: dict[str, Any], prefix: str = "") -> list[str]:
    """
    Check model-supplied arguments against an object schema.

    Required fields are reported first, then each known field in schema
    order. Arguments the schema does not mention are left alone.
    """
    properties = schema.get("properties") or {}
    problems = [
        f"missing required {prefix}{field}"
        for field in schema.get("required") or []
        if field not in arguments
    ]
    for field, spec in properties.items():
        if field in arguments:
            problems.extend(check_field(f"{prefix}{field}", arguments[field], spec))
    return problems


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Tools are capabilities the model can request, such as listing or
    creating plans through the business API.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Any:
        """
        Execute the tool with given parameters.

        Returns a string or a JSON-serializable value. Raise ToolError to
        report a failure the model should see.
        """

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Return a list of problems with ``params``; empty when they are usable."""
        schema = self.parameters or {}
        if schema.get("type", "object") != "object":
            raise ValueError(f"{self.name} parameters must be an object schema")
        return check_arguments(schema, params)

    async def close(self) -> None:
        """Release resources held by the tool."""

    def to_schema(self) -> dict[str, Any]:
        """Convert tool to OpenAI function schema format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
