"""Google Gemini backend (google-genai ``generate_content``)."""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
    Sequence,
    Tuple,
)

from google import genai
from google.genai import types

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

_CALLING_MODES = {
    ToolChoice.AUTO: "AUTO",
    ToolChoice.REQUIRED: "ANY",
    ToolChoice.NONE: "NONE",
}


def _decode_args(arguments: str) -> Dict[str, Any]:
    try:
        value = json.loads(arguments or "{}")
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


def _parts(message: Message) -> List[types.Part]:
    if message.role is Role.TOOL:
        return [
            types.Part(
                function_response=types.FunctionResponse(
                    id=message.tool_call_id,
                    name=message.name,
                    response={"result": message.content or ""},
                )
            )
        ]
    parts = [types.Part(text=message.content)] if message.content else []
    for call in message.tool_calls or []:
        parts.append(
            types.Part(
                function_call=types.FunctionCall(
                    id=call.id, name=call.function_name, args=_decode_args(call.arguments)
                )
            )
        )
    return parts


def to_gemini_contents(
    messages: Sequence[Message], system_messages: Sequence[Message] | None = None
) -> Tuple[str, List[types.Content]]:
    """
    Split *messages* into Gemini's system instruction and ``Content`` list.

    Assistant turns use the ``model`` role, tool results travel as ``function_response`` parts of a
    user turn, and consecutive turns of the same role are merged.
    """
    system_parts = [m.content for m in (system_messages or []) if m.content]
    contents: List[types.Content] = []

    for message in messages:
        if message.role is Role.SYSTEM:
            if message.content:
                system_parts.append(message.content)
            continue
        role = "model" if message.role is Role.ASSISTANT else "user"
        parts = _parts(message)
        if not parts:
            continue
        if contents and contents[-1].role == role:
            contents[-1].parts.extend(parts)
        else:
            contents.append(types.Content(role=role, parts=parts))

    return "\n\n".join(system_parts), contents


def to_gemini_tools(tools: Sequence[Dict[str, Any]]) -> List[types.Tool]:
    """Convert function-calling schemas into one Gemini tool of function declarations."""
    declarations = []
    for tool in tools:
        function = tool.get("function", tool)
        declarations.append(
            types.FunctionDeclaration(
                name=function["name"],
                description=function.get("description", ""),
                parameters_json_schema=function.get("parameters")
                or {"type": "object", "properties": {}},
            )
        )
    return [types.Tool(function_declarations=declarations)]


@register_backend("gemini")
class GeminiBackend(LLMBackend):
    """Gemini-based backend."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: Any = None,
    ):
        super().__init__(model or settings.GEMINI_MODEL, max_tokens, temperature)
        self._client = (
            client
            if client is not None
            else genai.Client(api_key=api_key or settings.GEMINI_API_KEY)
        )
        logger.info("Gemini backend initialised with model: %s", self.model)

    def _generate(self, system: str, contents: List[types.Content], **params: Any) -> Any:
        config = types.GenerateContentConfig(
            system_instruction=system or None,
            max_output_tokens=self.max_tokens,
            temperature=self.temperature,
            **params,
        )
        try:
            return self._client.models.generate_content(
                model=self.model, contents=contents, config=config
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.error("Gemini request error: %s", str(e))
            raise BackendError(f"Failed to get response: {e}") from e

    def ask(
        self, messages: Sequence[Message], system_messages: Sequence[Message] | None = None
    ) -> str:
        system, contents = to_gemini_contents(messages, system_messages)
        content, _ = self._split_parts(self._generate(system, contents))
        logger.debug("Gemini response: %s", content)
        return content

    def ask_with_tools(
        self,
        messages: Sequence[Message],
        system_messages: Sequence[Message] | None = None,
        tools: Sequence[Dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> LLMResponse:
        system, contents = to_gemini_contents(messages, system_messages)
        params: Dict[str, Any] = {}
        if tools:
            params["tools"] = to_gemini_tools(tools)
            params["tool_config"] = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=_CALLING_MODES[ToolChoice(tool_choice)]
                )
            )
        response = self._generate(system, contents, **params)

        content, tool_calls = self._split_parts(response)
        if ToolChoice(tool_choice) is ToolChoice.NONE:
            tool_calls = []
        logger.debug("Gemini response: %s (%d tool calls)", content, len(tool_calls))
        return LLMResponse(content=content, tool_calls=tool_calls)

    @staticmethod
    def _split_parts(response: Any) -> Tuple[str, List[ToolCall]]:
        candidates = response.candidates or []
        if not candidates or candidates[0].content is None:
            return "", []

        texts: List[str] = []
        tool_calls: List[ToolCall] = []
        for part in candidates[0].content.parts or []:
            if part.function_call is not None:
                call = part.function_call
                if not call.name:
                    raise BackendError("Malformed tool call from backend: missing function name")
                tool_calls.append(
                    ToolCall(
                        id=call.id or "",
                        function_name=call.name,
                        arguments=json.dumps(call.args or {}),
                    )
                )
            elif part.text:
                texts.append(part.text)
        return "".join(texts), tool_calls
