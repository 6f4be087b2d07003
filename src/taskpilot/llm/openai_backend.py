"""OpenAI and Azure OpenAI backends (chat completions API)."""

import logging
from typing import (
    Any,
    Dict,
    Sequence,
)

import openai

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


@register_backend("openai")
class OpenAIBackend(LLMBackend):
    """OpenAI chat-completions backend."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        client: Any = None,
    ):
        super().__init__(model or self._default_model(), max_tokens, temperature)
        self._client = client if client is not None else self._make_client(api_key)
        logger.info("%s initialised with model: %s", type(self).__name__, self.model)

    # Hooks overridden by the Azure flavour
    def _default_model(self) -> str:
        return settings.OPENAI_MODEL

    def _make_client(self, api_key: str | None) -> Any:
        return openai.OpenAI(
            api_key=api_key or settings.OPENAI_API_KEY, timeout=settings.LLM_TIMEOUT
        )

    def _complete(self, **params: Any) -> Any:
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                **params,
            )
            return resp.choices[0].message
        except Exception as e:  # pylint: disable=broad-except
            logger.error("OpenAI request error: %s", str(e))
            raise BackendError(f"Failed to get response: {e}") from e

    def ask(
        self, messages: Sequence[Message], system_messages: Sequence[Message] | None = None
    ) -> str:
        message = self._complete(messages=to_openai_messages(messages, system_messages))
        content = message.content or ""
        logger.debug("OpenAI response: %s", content)
        return content

    def ask_with_tools(
        self,
        messages: Sequence[Message],
        system_messages: Sequence[Message] | None = None,
        tools: Sequence[Dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> LLMResponse:
        params: Dict[str, Any] = {"messages": to_openai_messages(messages, system_messages)}
        if tools:
            params["tools"] = list(tools)
            params["tool_choice"] = openai_tool_choice(tool_choice)
        message = self._complete(**params)

        tool_calls = [parse_openai_tool_call(raw) for raw in (message.tool_calls or [])]
        if ToolChoice(tool_choice) is ToolChoice.NONE:
            tool_calls = []
        logger.debug("OpenAI response: %s (%d tool calls)", message.content, len(tool_calls))
        return LLMResponse(content=message.content or "", tool_calls=tool_calls)


@register_backend("azure_openai")
class AzureOpenAIBackend(OpenAIBackend):
    """Azure-hosted OpenAI deployment; ``model`` is the deployment name."""

    def _default_model(self) -> str:
        if not settings.AZURE_OPENAI_DEPLOYMENT:
            raise ValueError("AZURE_OPENAI_DEPLOYMENT must be set for the azure_openai backend")
        return settings.AZURE_OPENAI_DEPLOYMENT

    def _make_client(self, api_key: str | None) -> Any:
        if not settings.AZURE_OPENAI_ENDPOINT:
            raise ValueError("AZURE_OPENAI_ENDPOINT must be set for the azure_openai backend")
        return openai.AzureOpenAI(
            api_key=api_key or settings.AZURE_OPENAI_API_KEY,
            azure_endpoint=settings.AZURE_OPENAI_ENDPOINT,
            api_version=settings.AZURE_OPENAI_API_VERSION,
            timeout=settings.LLM_TIMEOUT,
        )
