"""
Step strategies: the think/act pairs plugged into :class:`~taskpilot.agent.loop.Agent`.

* :class:`ReasoningStrategy` - one plain completion per step; backend failures abort the run.
* :class:`ToolCallingStrategy` - tool-augmented completion followed by dispatch of every requested
  call, each isolated from the others; backend failures degrade to an inert turn.
"""

from __future__ import annotations

import json
import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    List,
)

from taskpilot.agent import prompts
from taskpilot.agent.loop import StepStrategy
from taskpilot.core.errors import (
    BackendError,
    ToolDispatchError,
)
from taskpilot.core.schema import (
    AgentState,
    Message,
    Role,
    ToolCall,
)

if TYPE_CHECKING:
    from taskpilot.agent.loop import Agent

logger = logging.getLogger(__name__)


def _preview(text: str | None, limit: int = 100) -> str:
    text = text or ""
    return text if len(text) <= limit else f"{text[:limit]}..."


class ReasoningStrategy(StepStrategy):
    """Reasoning-only steps: the model's narrative is the step result."""

    def default_system_prompt(self, agent: Agent) -> str | None:
        return prompts.REACT_SYSTEM_PROMPT

    def reason(self, agent: Agent) -> str:
        """Ask the backend for the next thought and record it."""
        agent.consume_next_step_prompt()
        try:
            response = agent.llm.ask(agent.memory.messages, agent.system_messages())
        except BackendError as e:
            logger.error("[%s] Error in think phase: %s", agent.name, str(e))
            raise BackendError(f"Reasoning phase failed: {e}") from e

        agent.update_memory(Role.ASSISTANT, response)
        logger.info("[%s] Thinking: %s", agent.name, _preview(response))
        return response

    def think(self, agent: Agent) -> bool:
        return bool(self.reason(agent))

    def act(self, agent: Agent) -> str:
        return "Action processing is handled by tool-capable agents"

    def step(self, agent: Agent) -> str:
        return self.reason(agent)


class ToolCallingStrategy(StepStrategy):
    """Think with tool schemas, then dispatch the selected calls in order."""

    def default_system_prompt(self, agent: Agent) -> str | None:
        tools = agent.tools.describe() if agent.tools is not None else ""
        return prompts.TOOL_SYSTEM_PROMPT.format(tools=tools)

    # ------------------------------------------------------------------ #
    # Think
    # ------------------------------------------------------------------ #
    def think(self, agent: Agent) -> bool:
        agent.consume_next_step_prompt()
        schemas = agent.tools.export_schemas() if agent.tools is not None else []
        try:
            response = agent.llm.ask_with_tools(
                agent.memory.messages,
                agent.system_messages(),
                schemas,
                agent.config.tool_choice,
            )
        except BackendError as e:
            logger.error("[%s] Error in think phase: %s", agent.name, str(e))
            agent.tool_calls = []
            agent.update_memory(Role.ASSISTANT, f"Error encountered while processing: {e}")
            return False

        agent.tool_calls = list(response.tool_calls)
        logger.info("[%s] Thinking: %s", agent.name, _preview(response.content))
        logger.info("[%s] Selected %d tools to use", agent.name, len(agent.tool_calls))

        agent.memory.add_message(Message.assistant(response.content, agent.tool_calls))
        return bool(agent.tool_calls)

    # ------------------------------------------------------------------ #
    # Act
    # ------------------------------------------------------------------ #
    def act(self, agent: Agent) -> str:
        if not agent.tool_calls:
            return prompts.NO_TOOLS_TO_EXECUTE

        calls = list(agent.tool_calls)
        results: List[str] = []
        for index, call in enumerate(calls):
            name = call.function_name
            try:
                result = self.execute_tool(agent, call)
            except Exception as e:  # pylint: disable=broad-except
                logger.error("[%s] Error executing tool %s: %s", agent.name, name, str(e))
                result = f"Error executing {name}: {e}"

            agent.memory.add_message(Message.tool(result, tool_call_id=call.id, name=name))
            results.append(f"[{name}]: {result}")

            if agent.config.is_terminal(name):
                logger.info(
                    "[%s] Terminal tool '%s' called. Setting state to FINISHED.", agent.name, name
                )
                agent.state = AgentState.FINISHED
                self._skip_remaining(agent, calls[index + 1 :], name)
                break

        return "\n".join(results)

    def execute_tool(self, agent: Agent, call: ToolCall) -> str:
        args = self.decode_arguments(call)
        logger.info("[%s] Executing tool: %s with args: %s", agent.name, call.function_name, args)
        if agent.tools is None:
            raise ToolDispatchError("No tool registry configured")
        return agent.tools.execute(call.function_name, args)

    @staticmethod
    def decode_arguments(call: ToolCall) -> Dict[str, Any]:
        """Decode the JSON argument blob of *call* into keyword arguments."""
        try:
            args = json.loads(call.arguments or "{}")
        except json.JSONDecodeError as e:
            name = call.function_name
            raise ToolDispatchError(f"Invalid arguments for tool '{name}': {e}") from e
        if args is None:
            return {}
        if not isinstance(args, dict):
            raise ToolDispatchError(
                f"Invalid arguments for tool '{call.function_name}': expected an object, "
                f"got {type(args).__name__}"
            )
        return args

    @staticmethod
    def _skip_remaining(agent: Agent, calls: List[ToolCall], terminal_name: str) -> None:
        for call in calls:
            agent.memory.add_message(
                Message.tool(
                    f"Skipped: run terminated by {terminal_name}",
                    tool_call_id=call.id,
                    name=call.function_name,
                )
            )

    # ------------------------------------------------------------------ #
    # Step
    # ------------------------------------------------------------------ #
    def step(self, agent: Agent) -> str:
        if self.think(agent):
            return self.act(agent)
        return prompts.NO_ACTION_NEEDED
