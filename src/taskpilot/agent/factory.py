"""
Factories for the three canonical agent specializations.

* ``react``    - reasoning only (:class:`ReasoningStrategy`)
* ``tool``     - reasoning plus tool dispatch (:class:`ToolCallingStrategy`)
* ``planning`` - tool dispatch directed by a derived plan (:class:`PlanLifecycle`)
"""

import logging
from typing import (
    Any,
    Dict,
    Iterable,
    Mapping,
)

from taskpilot.agent.loop import Agent
from taskpilot.agent.planning import PlanLifecycle
from taskpilot.agent.strategies import (
    ReasoningStrategy,
    ToolCallingStrategy,
)
from taskpilot.config import AgentConfig
from taskpilot.core.schema import (
    Message,
    Role,
)
from taskpilot.llm.base import (
    LLMBackend,
    parse_openai_tool_call,
)
from taskpilot.memory.conversation import ConversationMemory
from taskpilot.tools import (
    ToolRegistry,
    create_default_registry,
)

logger = logging.getLogger(__name__)

AGENT_KINDS = ("react", "tool", "planning")


def create_react_agent(
    llm: LLMBackend,
    name: str = "react_agent",
    memory: ConversationMemory | None = None,
    **config: Any,
) -> Agent:
    return Agent(
        llm,
        ReasoningStrategy(),
        memory=memory,
        config=AgentConfig(name=name, **config),
    )


def create_tool_agent(
    llm: LLMBackend,
    tools: ToolRegistry | None = None,
    name: str = "tool_agent",
    memory: ConversationMemory | None = None,
    **config: Any,
) -> Agent:
    return Agent(
        llm,
        ToolCallingStrategy(),
        memory=memory,
        tools=tools if tools is not None else create_default_registry(),
        config=AgentConfig(name=name, **config),
    )


def create_planning_agent(
    llm: LLMBackend,
    tools: ToolRegistry | None = None,
    name: str = "planning_agent",
    memory: ConversationMemory | None = None,
    plan_required: bool = True,
    **config: Any,
) -> Agent:
    return Agent(
        llm,
        ToolCallingStrategy(),
        memory=memory,
        tools=tools if tools is not None else create_default_registry(),
        config=AgentConfig(name=name, plan_required=plan_required, **config),
        hooks=[PlanLifecycle()],
    )


def message_from_record(record: Mapping[str, Any]) -> Message | None:
    """
    Rebuild a :class:`Message` from a stored ``{role, content, tool_calls?, tool_call_id?, name?}``
    mapping.  Tool calls may be stored either flat or in the chat-completions envelope.

    Returns *None* for tool-role records that lost their call id or tool name.
    """
    data: Dict[str, Any] = dict(record)
    raw_calls = data.get("tool_calls")
    if raw_calls:
        data["tool_calls"] = [
            parse_openai_tool_call(raw) if isinstance(raw, dict) and "function" in raw else raw
            for raw in raw_calls
        ]
    if data.get("role") == Role.TOOL.value and not (data.get("tool_call_id") and data.get("name")):
        logger.warning("Skipping stored tool message without call id or name")
        return None
    return Message.model_validate(data)


def create_agent_from_messages(
    kind: str,
    records: Iterable[Mapping[str, Any]],
    llm: LLMBackend,
    tools: ToolRegistry | None = None,
    name: str | None = None,
    max_messages: int = 100,
    **config: Any,
) -> Agent:
    """Build an agent of *kind* whose memory replays *records* in order."""
    memory = ConversationMemory(max_messages=max_messages)
    for record in records:
        message = message_from_record(record)
        if message is not None:
            memory.add_message(message)

    if kind == "react":
        return create_react_agent(llm, name=name or "react_agent", memory=memory, **config)
    if kind == "tool":
        return create_tool_agent(llm, tools, name=name or "tool_agent", memory=memory, **config)
    if kind == "planning":
        return create_planning_agent(
            llm, tools, name=name or "planning_agent", memory=memory, **config
        )
    raise ValueError(f"Unknown agent type: {kind}")
