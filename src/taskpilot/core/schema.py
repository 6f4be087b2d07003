"""
Schema definitions for agent <-> backend <-> tool messages.

These data models serve as the contract between the LLM backend, the agent loop, the tool registry
and the plan lifecycle.  We keep them separate from runtime logic so they can be imported anywhere
without side-effects.
"""

from datetime import (
    datetime,
    timezone,
)
from enum import Enum
from uuid import uuid4
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
    field_validator,
    model_validator,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Author of a conversation message."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


class AgentState(str, Enum):
    """Lifecycle state of an agent instance."""

    IDLE = "IDLE"
    RUNNING = "RUNNING"
    FINISHED = "FINISHED"


class ToolChoice(str, Enum):
    """Whether the backend must, may, or must not produce tool calls."""

    AUTO = "auto"
    REQUIRED = "required"
    NONE = "none"


class ToolCall(BaseModel):
    """A call that the backend wants the agent to execute."""

    id: str = Field(
        "", validate_default=True, description="Opaque token linking the call to its tool result"
    )
    function_name: str = Field(..., min_length=1, description="Registered tool name")
    arguments: str = Field("{}", description="JSON-encoded keyword arguments for the tool")

    @field_validator("id", mode="before")
    @classmethod
    def _ensure_id(cls, value: Any) -> Any:
        # Tool results must reference a call id; fill one in when the provider omits it
        if value is None or value == "":
            return f"call_{uuid4().hex[:24]}"
        return value


class Message(BaseModel):
    """One entry of the conversation memory."""

    role: Role
    content: Optional[str] = None
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def _tool_messages_are_tagged(self) -> "Message":
        if self.role is Role.TOOL and (not self.tool_call_id or not self.name):
            raise ValueError("tool messages require both 'tool_call_id' and 'name'")
        return self

    @classmethod
    def system(cls, content: str) -> "Message":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: List[ToolCall] | None = None) -> "Message":
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or None)

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: str) -> "Message":
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id, name=name)


class LLMResponse(BaseModel):
    """Normalised reply of a tool-augmented completion."""

    content: str = ""
    tool_calls: List[ToolCall] = Field(default_factory=list)


class PlanStepStatus(str, Enum):
    """Progress of a single plan step."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanStep(BaseModel):
    """A single step of a :class:`Plan`."""

    id: int = Field(..., gt=0)
    description: str
    status: PlanStepStatus = PlanStepStatus.PENDING
    result: Optional[str] = None


class Plan(BaseModel):
    """Ordered decomposition of a task, tracked across agent steps."""

    id: str
    title: str
    description: str = ""
    steps: List[PlanStep] = Field(default_factory=list)
    current_step_index: int = 0
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def current_step(self) -> PlanStep | None:
        """The active step, or *None* for an empty plan."""
        if not self.steps:
            return None
        return self.steps[self.current_step_index]

    @property
    def is_complete(self) -> bool:
        return bool(self.steps) and all(
            step.status is PlanStepStatus.COMPLETED for step in self.steps
        )

    def touch(self) -> None:
        self.updated_at = _utcnow()

    def summary(self) -> Dict[str, Any]:
        """Compact progress snapshot (used for logging)."""
        completed = sum(1 for step in self.steps if step.status is PlanStepStatus.COMPLETED)
        return {"title": self.title, "completed": completed, "total": len(self.steps)}
