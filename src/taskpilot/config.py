"""Configuration settings for the application and for individual agents."""

from typing import FrozenSet

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic_settings import BaseSettings

from taskpilot.core.schema import ToolChoice

DEFAULT_TERMINAL_TOOLS: FrozenSet[str] = frozenset({"terminate"})


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # Define the settings with default values and types
    # These will be loaded from environment variables or a .env file if not provided
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # LLM Configuration
    LLM_PROVIDER: str = "openai"  # Options: openai, azure_openai, anthropic, gemini, tgi
    LLM_MAX_TOKENS: int = 2000
    LLM_TEMPERATURE: float = 0.7
    LLM_TIMEOUT: float = 60.0

    OPENAI_API_KEY: str | None = None
    OPENAI_MODEL: str = "gpt-4o-mini"

    AZURE_OPENAI_API_KEY: str | None = None
    AZURE_OPENAI_ENDPOINT: str | None = None
    AZURE_OPENAI_API_VERSION: str = "2024-06-01"
    AZURE_OPENAI_DEPLOYMENT: str | None = None

    ANTHROPIC_API_KEY: str | None = None
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-latest"

    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    TGI_ENDPOINT: str = "http://tgi:8080"
    TGI_MODEL: str = "tgi"

    # Agent defaults
    AGENT_MAX_STEPS: int = 10
    MEMORY_MAX_MESSAGES: int = 100

    class Config:
        """Configuration for Pydantic settings."""

        # Load environment variables from a .env file
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()


class AgentConfig(BaseModel):
    """
    Explicit per-agent configuration.

    Agents never consult :data:`settings` themselves; callers translate process settings into an
    ``AgentConfig`` (see :mod:`taskpilot.main`).
    """

    model_config = ConfigDict(frozen=True)

    name: str = "agent"
    description: str | None = None
    system_prompt: str | None = None
    next_step_prompt: str | None = None
    max_steps: int = Field(10, ge=1)
    tool_choice: ToolChoice = ToolChoice.AUTO
    terminal_tools: FrozenSet[str] = DEFAULT_TERMINAL_TOOLS
    plan_required: bool = True

    @field_validator("terminal_tools", mode="before")
    @classmethod
    def _normalise_terminal_tools(cls, value: object) -> object:
        if isinstance(value, str):
            value = [value]
        if isinstance(value, (list, tuple, set, frozenset)):
            return frozenset(str(name).lower() for name in value)
        return value

    def is_terminal(self, tool_name: str) -> bool:
        """Return True if invoking *tool_name* ends the run."""
        return tool_name.lower() in self.terminal_tools
