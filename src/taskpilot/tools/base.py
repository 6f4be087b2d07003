"""
Tool capability contract.

A tool exposes a ``name``, a ``description`` and a JSON-schema ``parameters`` object, and can be
invoked with keyword arguments.  :meth:`BaseTool.execute` never raises: implementation errors are
rendered as ``"Error: ..."`` text so the agent always receives a string it can put in memory.
"""

import inspect
import json
import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    Any,
    Callable,
    Dict,
    Mapping,
    get_type_hints,
)

logger = logging.getLogger(__name__)

_JSON_TYPES: Dict[type, str] = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    dict: "object",
}


class BaseTool(ABC):
    """Abstract tool; subclasses implement :meth:`run`."""

    name: str = ""
    description: str = ""
    parameters: Dict[str, Any] = {"type": "object", "properties": {}}

    @abstractmethod
    def run(self, **kwargs: Any) -> Any:
        """Do the work.  May raise; :meth:`execute` takes care of rendering errors."""

    def execute(self, args: Mapping[str, Any] | None = None) -> str:
        """Invoke the tool with *args* and return its output as text."""
        try:
            result = self.run(**dict(args or {}))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Tool '%s' failed", self.name)
            return f"Error: {exc}"
        if isinstance(result, str):
            return result
        return json.dumps(result, default=str)

    def to_schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FunctionTool(BaseTool):
    """Adapter exposing a plain function as a tool."""

    def __init__(
        self,
        fn: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
    ):
        self._fn = fn
        self.name = name or fn.__name__
        self.description = description or inspect.getdoc(fn) or ""
        self.parameters = schema_from_signature(fn)

    def run(self, **kwargs: Any) -> Any:
        return self._fn(**kwargs)


def schema_from_signature(fn: Callable[..., Any]) -> Dict[str, Any]:
    """Build a JSON parameter schema from *fn*'s signature and type hints."""
    sig = inspect.signature(fn)
    type_hints = get_type_hints(fn)
    properties: Dict[str, Any] = {}
    required = []
    for param_name, param in sig.parameters.items():
        if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
            continue
        param_type = type_hints.get(param_name, str)
        origin = getattr(param_type, "__origin__", None) or param_type
        properties[param_name] = {"type": _JSON_TYPES.get(origin, "string")}
        if param.default == inspect.Parameter.empty:
            required.append(param_name)
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def function_tool(name: str | None = None, description: str | None = None) -> Callable:
    """
    Turn a function into a :class:`FunctionTool`.

    The decorator can be used like this:
        @function_tool("add")
        def add(a: int, b: int) -> int:
            \"\"\"Add two integers.\"\"\"
            return a + b

    ``add`` is then a tool instance ready for :meth:`ToolRegistry.register`.  The description
    defaults to the function's docstring.
    """

    def wrapper(fn: Callable[..., Any]) -> FunctionTool:
        return FunctionTool(fn, name=name, description=description)

    return wrapper
