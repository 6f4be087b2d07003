"""Anthropic Claude backend (messages API)."""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Sequence,
    Tuple,
)

import anthropic

from taskpilot.config import settings
from taskpilot.core.errors import BackendError
from taskpilot.core.schema import (
    LLMResponse,
    Message,
    Role,
    ToolCall,
    ToolChoice,
)
from taskpilot.llm.base import (
    LLMBackend,
    register_backend,
)

logger = logging.getLogger(__name__)

_TOOL_CHOICES = {
    ToolChoice.AUTO: {"type": "auto"},
    ToolChoice.REQUIRED: {"type": "any"},
    ToolChoice.NONE: {"type": "none"},
}


def _decode_input(arguments: str) -> Dict[str, Any]:
    try:
        value = json.loads(arguments or "{}")
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def to_anthropic_messages(
    messages: Sequence[Message], system_messages: Sequence[Message] | None = None
) -> Tuple[str, List[Dict[str, Any]]]:
    """
    Split *messages* into Anthropic's ``system`` string and message list.

    System-role entries are hoisted into ``system`` (Anthropic has no system role inside the
    conversation), tool results become ``tool_result`` blocks of a user turn, and consecutive turns
    of the same role are merged.
    """
    system_parts = [m.content for m in (system_messages or []) if m.content]
    turns: List[Dict[str, Any]] = []

    for message in messages:
        if message.role is Role.SYSTEM:
            if message.content:
                system_parts.append(message.content)
            continue

        blocks: List[Dict[str, Any]] = []
        if message.role is Role.TOOL:
            role = "user"
            blocks.append(
                {
                    "type": "tool_result",
                    "tool_use_id": message.tool_call_id,
                    "content": message.content or "",
                }
            )
        else:
            role = message.role.value
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            for call in message.tool_calls or []:
                blocks.append(
                    {
                        "type": "tool_use",
                        "id": call.id,
                        "name": call.function_name,
                        "input": _decode_input(call.arguments),
                    }
                )
        if not blocks:
            continue

        if turns and turns[-1]["role"] == role:
            turns[-1]["content"].extend(blocks)
        else:
            turns.append({"role": role, "content": blocks})

    return "\n\n".join(system_parts), turns


def to_anthropic_tools(tools: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Convert function-calling schemas into Anthropic tool definitions."""
    converted = []
    for tool in tools:
        function = tool.get("function", tool)
        converted.append(
            {
                "name": function["name"],
                "description": function.get("description", ""),
                "input_schema": function.get("parameters") or {"type": "object", "properties": {}},
            }
        )
    return converted


@register_backend("anthropic")
class AnthropicBackend(LLMBackend):
    """Anthropic Claude-based backend."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: Any = None,
    ):
        super().__init__(model or settings.ANTHROPIC_MODEL, max_tokens, temperature)
        self._client = (
            client
            if client is not None
            else anthropic.Anthropic(
                api_key=api_key or settings.ANTHROPIC_API_KEY, timeout=settings.LLM_TIMEOUT
            )
        )
        logger.info("Anthropic backend initialised with model: %s", self.model)

    def _create(self, system: str, turns: List[Dict[str, Any]], **params: Any) -> Any:
        if system:
            params["system"] = system
        try:
            return self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                messages=turns,
                **params,
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Anthropic request error: %s", str(e))
            raise BackendError(f"Failed to get response: {e}") from e

    def ask(
        self, messages: Sequence[Message], system_messages: Sequence[Message] | None = None
    ) -> str:
        system, turns = to_anthropic_messages(messages, system_messages)
        response = self._create(system, turns)
        content, _ = self._split_content(response)
        logger.debug("Anthropic response: %s", content)
        return content

    def ask_with_tools(
        self,
        messages: Sequence[Message],
        system_messages: Sequence[Message] | None = None,
        tools: Sequence[Dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> LLMResponse:
        system, turns = to_anthropic_messages(messages, system_messages)
        params: Dict[str, Any] = {}
        if tools:
            params["tools"] = to_anthropic_tools(tools)
            params["tool_choice"] = _TOOL_CHOICES[ToolChoice(tool_choice)]
        response = self._create(system, turns, **params)

        content, tool_calls = self._split_content(response)
        if ToolChoice(tool_choice) is ToolChoice.NONE:
            tool_calls = []
        logger.debug("Anthropic response: %s (%d tool calls)", content, len(tool_calls))
        return LLMResponse(content=content, tool_calls=tool_calls)

    @staticmethod
    def _split_content(response: Any) -> Tuple[str, List[ToolCall]]:
        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        for block in response.content:
            if block.type == "text":
                texts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block.id, function_name=block.name, arguments=json.dumps(block.input)
                    )
                )
        return "".join(texts), tool_calls
