"""
Tool registry for taskpilot.

The registry maps tool names to :class:`~taskpilot.tools.base.BaseTool` instances.  Agents look
tools up by name, dispatch calls through :meth:`ToolRegistry.execute` and hand
:meth:`ToolRegistry.export_schemas` to the LLM backend.
"""

import logging
from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
)

from taskpilot.core.errors import ToolNotFoundError
from taskpilot.tools.base import (
    BaseTool,
    FunctionTool,
    function_tool,
)
from taskpilot.tools.terminate import TerminateTool

logger = logging.getLogger(__name__)

__all__ = [
    "BaseTool",
    "FunctionTool",
    "TerminateTool",
    "ToolRegistry",
    "create_default_registry",
    "function_tool",
]


class ToolRegistry:
    """Name-keyed collection of tools, kept in registration order."""

    def __init__(self, tools: Iterable[BaseTool] = ()):
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: BaseTool) -> None:
        """
        Register *tool* under its name.

        A tool with the same name is replaced and a warning is logged.
        """
        if tool.name in self._tools:
            logger.warning("Tool '%s' already registered. Overwriting.", tool.name)
        self._tools[tool.name] = tool
        logger.debug("Registered tool '%s'", tool.name)

    def get(self, name: str) -> BaseTool | None:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[BaseTool]:
        return iter(list(self._tools.values()))

    def execute(self, name: str, args: Mapping[str, Any] | None = None) -> str:
        """
        Look up *name* and invoke it with *args*.

        Parameters
        ----------
        name:
            The registered tool name.
        args:
            Keyword arguments for the tool.  If *None*, an empty dict is assumed.

        Returns
        -------
        str
            The tool output, or ``"Error: ..."`` if the tool failed.

        Raises
        ------
        ToolNotFoundError
            If no tool is registered under *name*.
        """
        tool = self._tools.get(name)
        if tool is None:
            raise ToolNotFoundError(name)

        logger.debug("Executing tool '%s' with args=%s", name, args)
        try:
            return tool.execute(args or {})
        except Exception as exc:  # pylint: disable=broad-except
            # Tools outside the BaseTool hierarchy may still raise
            logger.exception("Unhandled error in tool '%s'", name)
            return f"Error: {exc}"

    def export_schemas(self) -> List[Dict[str, Any]]:
        """Return the function-calling schema of every tool, in registration order."""
        return [{"type": "function", "function": tool.to_schema()} for tool in self._tools.values()]

    def describe(self) -> str:
        """Human-readable ``- name: description`` listing for prompts."""
        return "\n".join(f"- {name}: {tool.description}" for name, tool in self._tools.items())


def create_default_registry(*extra_tools: BaseTool) -> ToolRegistry:
    """Return a registry holding :class:`TerminateTool` followed by *extra_tools*."""
    return ToolRegistry([TerminateTool(), *extra_tools])
