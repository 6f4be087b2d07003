"""Exception hierarchy shared by the agent loop, backends and tools."""


class TaskPilotError(RuntimeError):
    """Base class for every error raised by taskpilot."""


class BackendError(TaskPilotError):
    """Raised when an LLM provider call fails (transport, auth, malformed reply)."""


class ToolDispatchError(TaskPilotError):
    """Raised when a single tool call cannot be dispatched."""


class ToolNotFoundError(ToolDispatchError, KeyError):
    """Raised when a requested tool is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Tool not found: {name}")
        self.name = name

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class PlanDerivationError(TaskPilotError):
    """Raised when a backend reply cannot be turned into a plan."""
