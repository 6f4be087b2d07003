"""Shared fixtures: a scripted backend and a few stub tools."""

from typing import (
    Any,
    Dict,
    List,
    Sequence,
)

import pytest

from taskpilot.core.schema import (
    LLMResponse,
    Message,
    ToolCall,
    ToolChoice,
)
from taskpilot.llm.base import LLMBackend
from taskpilot.tools import (
    ToolRegistry,
    create_default_registry,
    function_tool,
)


class ScriptedBackend(LLMBackend):
    """
    Backend replaying canned replies.

    ``ask_replies`` feeds :meth:`ask`, ``tool_replies`` feeds :meth:`ask_with_tools`.  An exception
    instance in either list is raised instead of returned.  Once a list is exhausted its last entry
    repeats.
    """

    def __init__(self, ask_replies: Sequence[Any] = (), tool_replies: Sequence[Any] = ()):
        super().__init__(model="scripted", max_tokens=100, temperature=0.0)
        self.ask_replies = list(ask_replies)
        self.tool_replies = list(tool_replies)
        self.calls: List[Dict[str, Any]] = []

    @staticmethod
    def _next(replies: List[Any]) -> Any:
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def ask(self, messages, system_messages=None) -> str:
        self.calls.append(
            {"method": "ask", "messages": list(messages), "system": list(system_messages or [])}
        )
        return self._next(self.ask_replies)

    def ask_with_tools(
        self, messages, system_messages=None, tools=None, tool_choice=ToolChoice.AUTO
    ) -> LLMResponse:
        self.calls.append(
            {
                "method": "ask_with_tools",
                "messages": list(messages),
                "system": list(system_messages or []),
                "tools": list(tools or []),
                "tool_choice": tool_choice,
            }
        )
        return self._next(self.tool_replies)


def reply(content: str = "", *calls: ToolCall) -> LLMResponse:
    return LLMResponse(content=content, tool_calls=list(calls))


def call(call_id: str, name: str, arguments: str = "{}") -> ToolCall:
    return ToolCall(id=call_id, function_name=name, arguments=arguments)


@function_tool("add")
def add_tool(a: int, b: int) -> int:
    """Return the sum of two integers."""
    return a + b


@function_tool("explode")
def explode_tool() -> str:
    """Always fails."""
    raise RuntimeError("boom")


@pytest.fixture
def registry() -> ToolRegistry:
    return create_default_registry(add_tool, explode_tool)


@pytest.fixture
def system_message() -> Message:
    return Message.system("be helpful")
