"""
Base agent loop.

An :class:`Agent` is a finite-state step scheduler bound to one memory, one tool registry and one
LLM backend.  What a single step does is delegated to a :class:`StepStrategy`; optional
:class:`RunHook` objects observe the run (the plan lifecycle is one).  States::

    IDLE --run()--> RUNNING --terminal tool / budget--> FINISHED
      ^                |
      +----- error ----+
"""

from __future__ import annotations

import logging
from abc import (
    ABC,
    abstractmethod,
)
from typing import (
    TYPE_CHECKING,
    Iterable,
    List,
)

from taskpilot.agent import prompts
from taskpilot.config import AgentConfig
from taskpilot.core.schema import (
    AgentState,
    Message,
    Plan,
    Role,
    ToolCall,
)
from taskpilot.memory.conversation import ConversationMemory

if TYPE_CHECKING:
    from taskpilot.llm.base import LLMBackend
    from taskpilot.tools import ToolRegistry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Extension points
# ---------------------------------------------------------------------------
class StepStrategy(ABC):
    """The think/act pair that makes up one iteration of the loop."""

    @abstractmethod
    def think(self, agent: Agent) -> bool:
        """Run the reasoning phase; return True if there is something to act on."""

    @abstractmethod
    def act(self, agent: Agent) -> str:
        """Run the action phase and return a summary of what happened."""

    @abstractmethod
    def step(self, agent: Agent) -> str:
        """One full iteration; returns the step summary."""

    def default_system_prompt(self, agent: Agent) -> str | None:  # pylint: disable=unused-argument
        return None


class RunHook:
    """Observer of an agent run.  Every method is a no-op by default."""

    def default_system_prompt(self, agent: Agent) -> str | None:  # pylint: disable=unused-argument
        return None

    def on_request(self, agent: Agent, request: str) -> None:
        """Called once per run, after the user request is recorded."""

    def before_step(self, agent: Agent) -> None:
        """Called before the stuck check of every iteration."""

    def after_step(self, agent: Agent, result: str) -> None:
        """Called with the summary returned by :meth:`StepStrategy.step`."""

    def after_run(self, agent: Agent) -> None:
        """Called once the loop ended normally (terminal tool or budget)."""


# ---------------------------------------------------------------------------
# Agent
# ---------------------------------------------------------------------------
class Agent:
    """Control loop alternating reasoning and action until done or out of budget."""

    duplicate_threshold = 3

    def __init__(
        self,
        llm: LLMBackend,
        strategy: StepStrategy,
        memory: ConversationMemory | None = None,
        tools: ToolRegistry | None = None,
        config: AgentConfig | None = None,
        hooks: Iterable[RunHook] = (),
    ):
        self.config = config or AgentConfig()
        self.llm = llm
        self.strategy = strategy
        self.memory = memory if memory is not None else ConversationMemory()
        self.tools = tools
        self.hooks: List[RunHook] = list(hooks)

        self.name = self.config.name
        self.max_steps = self.config.max_steps
        self.next_step_prompt: str | None = self.config.next_step_prompt
        self.system_prompt = self.config.system_prompt or self._default_system_prompt()

        self.state = AgentState.IDLE
        self.current_step = 0
        self.tool_calls: List[ToolCall] = []
        self.plan: Plan | None = None

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, state={self.state.value}, step={self.current_step})"

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def initialize(self) -> None:
        """Reset counters and seed the system prompt (once)."""
        self.state = AgentState.IDLE
        self.current_step = 0
        if self.system_prompt and not self._has_system_message(self.system_prompt):
            self.memory.add_message(Message.system(self.system_prompt))
        logger.info("Initialized agent: %s", self.name)

    def run(self, request: str | None = None) -> str:
        """
        Drive the loop until a terminal tool fires or the step budget is spent.

        Returns the newline-joined step summaries.  Any error escaping a step resets the agent to
        ``IDLE`` and is re-raised.
        """
        if self.state is AgentState.IDLE:
            self.initialize()

        if request:
            self.update_memory(Role.USER, request)
            for hook in self.hooks:
                hook.on_request(self, request)

        results: List[str] = []
        self.state = AgentState.RUNNING
        try:
            while self.current_step < self.max_steps and self.state is not AgentState.FINISHED:
                self.current_step += 1
                logger.info(
                    "[%s] Executing step %d/%d", self.name, self.current_step, self.max_steps
                )

                for hook in self.hooks:
                    hook.before_step(self)
                if self.is_stuck():
                    self.handle_stuck_state()

                step_result = self.step()
                results.append(step_result)

                for hook in self.hooks:
                    hook.after_step(self, step_result)

            if self.state is not AgentState.FINISHED:
                self.state = AgentState.FINISHED
                results.append(prompts.BUDGET_EXHAUSTED.format(max_steps=self.max_steps))

            for hook in self.hooks:
                hook.after_run(self)
            return "\n".join(results)
        except Exception as e:
            logger.error("[%s] Error during execution: %s", self.name, str(e))
            self.state = AgentState.IDLE
            raise
        finally:
            if self.state is AgentState.RUNNING:
                self.state = AgentState.IDLE

    # ------------------------------------------------------------------ #
    # Step delegation
    # ------------------------------------------------------------------ #
    def step(self) -> str:
        return self.strategy.step(self)

    def think(self) -> bool:
        return self.strategy.think(self)

    def act(self) -> str:
        return self.strategy.act(self)

    # ------------------------------------------------------------------ #
    # Helpers used by strategies and hooks
    # ------------------------------------------------------------------ #
    def update_memory(self, role: Role, content: str) -> None:
        self.memory.add_message(Message(role=role, content=content))

    def system_messages(self) -> List[Message] | None:
        """Backend-level system context for the reasoning phase."""
        if not self.system_prompt:
            return None
        return [Message.system(self.system_prompt)]

    def consume_next_step_prompt(self) -> None:
        """Move a pending next-step directive into memory; it is used exactly once."""
        if self.next_step_prompt:
            self.update_memory(Role.SYSTEM, self.next_step_prompt)
            self.next_step_prompt = None

    def is_stuck(self) -> bool:
        """True iff the last three assistant messages are identical and non-empty."""
        recent = [m.content for m in self.memory.messages if m.role is Role.ASSISTANT]
        recent = recent[-self.duplicate_threshold :]
        if len(recent) < self.duplicate_threshold:
            return False
        return bool(recent[0]) and all(content == recent[0] for content in recent)

    def handle_stuck_state(self) -> None:
        self.update_memory(Role.SYSTEM, prompts.STUCK_PROMPT)
        logger.warning("[%s] Agent detected stuck state. Added stuck prompt.", self.name)

    def _has_system_message(self, content: str) -> bool:
        return any(m.role is Role.SYSTEM and m.content == content for m in self.memory.messages)

    def _default_system_prompt(self) -> str | None:
        for hook in self.hooks:
            prompt = hook.default_system_prompt(self)
            if prompt:
                return prompt
        return self.strategy.default_system_prompt(self)
