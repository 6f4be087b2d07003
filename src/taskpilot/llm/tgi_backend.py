"""Text-Generation-Inference backend using the server's OpenAI-compatible messages route."""

import logging
from typing import (
    Any,
    Dict,
    Sequence,
)

import httpx

from taskpilot.config import settings
from taskpilot.core.errors import BackendError
from taskpilot.core.schema import (
    LLMResponse,
    Message,
    ToolChoice,
)
from taskpilot.llm.base import (
    LLMBackend,
    openai_tool_choice,
    parse_openai_tool_call,
    register_backend,
    to_openai_messages,
)

logger = logging.getLogger(__name__)

_CHAT_ROUTE = "/v1/chat/completions"


@register_backend("tgi")
class TGIBackend(LLMBackend):
    """TGI-based backend with an httpx client."""

    def __init__(
        self,
        model: str | None = None,
        endpoint: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        super().__init__(model or settings.TGI_MODEL, max_tokens, temperature)
        self.endpoint = (endpoint or settings.TGI_ENDPOINT).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.LLM_TIMEOUT
        self._transport = transport

    def _post(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            with httpx.Client(
                base_url=self.endpoint, timeout=self.timeout, transport=self._transport
            ) as client:
                resp = client.post(_CHAT_ROUTE, json=payload)
                resp.raise_for_status()
                return resp.json()["choices"][0]["message"]
        except httpx.HTTPError as e:
            logger.error("TGI request error: %s", str(e))
            raise BackendError(f"Error calling TGI endpoint: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            logger.error("TGI response error: %s", str(e))
            raise BackendError(f"Error processing TGI response: {e}") from e

    def _payload(self, messages: Sequence[Message], system_messages: Sequence[Message] | None):
        return {
            "model": self.model,
            "messages": to_openai_messages(messages, system_messages),
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }

    def ask(
        self, messages: Sequence[Message], system_messages: Sequence[Message] | None = None
    ) -> str:
        message = self._post(self._payload(messages, system_messages))
        content = message.get("content") or ""
        logger.debug("TGI response: %s", content)
        return content

    def ask_with_tools(
        self,
        messages: Sequence[Message],
        system_messages: Sequence[Message] | None = None,
        tools: Sequence[Dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> LLMResponse:
        payload = self._payload(messages, system_messages)
        if tools:
            payload["tools"] = list(tools)
            payload["tool_choice"] = openai_tool_choice(tool_choice)
        message = self._post(payload)

        if ToolChoice(tool_choice) is ToolChoice.NONE:
            tool_calls = []
        else:
            try:
                raw_calls = message.get("tool_calls") or []
                tool_calls = [parse_openai_tool_call(raw) for raw in raw_calls]
            except (AttributeError, ValueError) as e:
                raise BackendError(f"Error processing TGI tool calls: {e}") from e
        return LLMResponse(content=message.get("content") or "", tool_calls=tool_calls)
