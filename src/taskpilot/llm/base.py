"""
Provider-neutral LLM backend interface.

This module is the contract between the agent loop and the language-model providers.  Everything
else (agent loop, tools, memory) stays model-agnostic.

We support these back-ends out of the box:

1. **OpenAI** and **Azure OpenAI** via the ``openai`` SDK.
2. **Anthropic** via the ``anthropic`` SDK.
3. **Google Gemini** via the ``google-genai`` SDK.
4. **Hugging Face Text-Generation-Inference (TGI)** for self-hosted models, through its
   OpenAI-compatible messages route.

Additional providers can be added by subclassing :class:`LLMBackend` and registering via
:func:`register_backend`.
"""

import importlib
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
    List,
    Sequence,
    Type,
)

from pydantic import ValidationError

from taskpilot.config import settings
from taskpilot.core.errors import BackendError
from taskpilot.core.schema import (
    LLMResponse,
    Message,
    ToolCall,
    ToolChoice,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------
_BACKEND_REGISTRY: dict[str, Type["LLMBackend"]] = {}

# Modules whose import registers the built-in providers
_BUILTIN_PROVIDERS: dict[str, str] = {
    "openai": "taskpilot.llm.openai_backend",
    "azure_openai": "taskpilot.llm.openai_backend",
    "anthropic": "taskpilot.llm.anthropic_backend",
    "tgi": "taskpilot.llm.tgi_backend",
    "gemini": "taskpilot.llm.gemini_backend",
}


def register_backend(name: str) -> Callable:
    """Decorator to register a backend class under *name*."""

    def wrapper(cls: Type["LLMBackend"]) -> Type["LLMBackend"]:
        _BACKEND_REGISTRY[name] = cls
        return cls

    return wrapper


def load_backend(name: str | None = None, **kwargs: Any) -> "LLMBackend":
    """
    Factory that returns an instantiated backend.

    Fallback order:
    1. *name* arg
    2. ``settings.LLM_PROVIDER`` env option
    3. default: ``"openai"``

    Extra keyword arguments are passed to the backend constructor.
    """

    target = (name or getattr(settings, "LLM_PROVIDER", None) or "openai").lower()
    if target not in _BACKEND_REGISTRY and target in _BUILTIN_PROVIDERS:
        importlib.import_module(_BUILTIN_PROVIDERS[target])
    cls = _BACKEND_REGISTRY.get(target)
    if cls is None:
        raise ValueError(f"Backend '{target}' is not registered.")
    return cls(**kwargs)


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------
class LLMBackend(ABC):
    """Abstract backend: plain completion and tool-augmented completion."""

    model: str
    max_tokens: int
    temperature: float

    def __init__(
        self,
        model: str,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        self.model = model
        self.max_tokens = max_tokens if max_tokens is not None else settings.LLM_MAX_TOKENS
        self.temperature = temperature if temperature is not None else settings.LLM_TEMPERATURE

    @abstractmethod
    def ask(
        self, messages: Sequence[Message], system_messages: Sequence[Message] | None = None
    ) -> str:
        """
        Return the assistant text for *messages*.

        Raises
        ------
        BackendError
            On any transport or provider failure.
        """

    @abstractmethod
    def ask_with_tools(
        self,
        messages: Sequence[Message],
        system_messages: Sequence[Message] | None = None,
        tools: Sequence[Dict[str, Any]] | None = None,
        tool_choice: ToolChoice = ToolChoice.AUTO,
    ) -> LLMResponse:
        """
        Return the assistant text and the tool calls it requested.

        ``tool_calls`` is empty (never *None*) when the model calls no tools or when
        *tool_choice* is :attr:`ToolChoice.NONE`.

        Raises
        ------
        BackendError
            On any transport or provider failure.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


# ---------------------------------------------------------------------------
# OpenAI chat-format helpers (shared by the OpenAI, Azure and TGI backends)
# ---------------------------------------------------------------------------
def to_openai_message(message: Message) -> Dict[str, Any]:
    """Serialise *message* into the chat-completions wire format."""
    payload: Dict[str, Any] = {"role": message.role.value, "content": message.content or ""}
    if message.tool_calls:
        payload["tool_calls"] = [
            {
                "id": call.id,
                "type": "function",
                "function": {"name": call.function_name, "arguments": call.arguments},
            }
            for call in message.tool_calls
        ]
    if message.tool_call_id:
        payload["tool_call_id"] = message.tool_call_id
    if message.name:
        payload["name"] = message.name
    return payload


def to_openai_messages(
    messages: Sequence[Message], system_messages: Sequence[Message] | None = None
) -> List[Dict[str, Any]]:
    return [to_openai_message(m) for m in [*(system_messages or []), *messages]]


def openai_tool_choice(tool_choice: ToolChoice) -> str:
    return ToolChoice(tool_choice).value


def parse_openai_tool_call(raw: Any) -> ToolCall:
    """Normalise a tool call given either as an SDK object or as a plain dict."""
    if isinstance(raw, dict):
        function = raw.get("function") or {}
        call_id, name, arguments = raw.get("id"), function.get("name"), function.get("arguments")
    else:
        call_id, name, arguments = raw.id, raw.function.name, raw.function.arguments
    if arguments is None:
        arguments = "{}"
    elif not isinstance(arguments, str):
        arguments = json.dumps(arguments)
    try:
        return ToolCall(
            id=str(call_id) if call_id else "", function_name=name or "", arguments=arguments
        )
    except ValidationError as e:
        raise BackendError(f"Malformed tool call from backend: {e}") from e
