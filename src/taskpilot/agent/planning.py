"""
Plan lifecycle for plan-directed agents.

:class:`PlanLifecycle` is a :class:`~taskpilot.agent.loop.RunHook`: on the first user request it
derives a :class:`~taskpilot.core.schema.Plan` (falling back to a fixed three-step plan when the
model's reply is unusable), before every step it queues the plan status as the next-step directive,
and after every step it records the result and advances the active step.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from taskpilot.agent import prompts
from taskpilot.agent.loop import RunHook
from taskpilot.agent.plan_parser import parse_plan_draft
from taskpilot.core.schema import (
    AgentState,
    Message,
    Plan,
    PlanStep,
    PlanStepStatus,
    Role,
)

if TYPE_CHECKING:
    from taskpilot.agent.loop import Agent

logger = logging.getLogger(__name__)

FALLBACK_STEPS = (
    "Analyze the request",
    "Execute the task directly",
    "Verify the result",
)

_MARKERS = {
    PlanStepStatus.COMPLETED: "✓",
    PlanStepStatus.FAILED: "✗",
}
_ACTIVE_MARKER = "→"


# ---------------------------------------------------------------------------
# Plan helpers
# ---------------------------------------------------------------------------
def fallback_plan(request: str) -> Plan:
    """The deterministic plan used whenever derivation fails."""
    return Plan(
        id=uuid.uuid4().hex,
        title="Fallback Plan",
        description=f"Fallback plan for request: {request}",
        steps=[
            PlanStep(id=position, description=description)
            for position, description in enumerate(FALLBACK_STEPS, start=1)
        ],
    )


def format_plan_summary(plan: Plan) -> str:
    steps = "\n".join(f"{step.id}. {step.description}" for step in plan.steps)
    return f"Generated plan: {plan.title}\n{plan.description}\n\nSteps:\n{steps}"


def render_plan_status(plan: Plan | None) -> str:
    """Render title, progress counter and one marked line per step."""
    if plan is None:
        return "No active plan"
    if not plan.steps:
        return "Plan has no steps"

    lines = []
    for index, step in enumerate(plan.steps):
        if index == plan.current_step_index:
            marker = _ACTIVE_MARKER
        else:
            marker = _MARKERS.get(step.status, " ")
        lines.append(f"{marker} {step.id}. {step.description} [{step.status.value}]")

    return (
        f"Current Plan: {plan.title}\n"
        f"Progress: {plan.current_step_index + 1}/{len(plan.steps)}\n\n" + "\n".join(lines)
    )


def advance_plan(plan: Plan, step_result: str) -> bool:
    """
    Complete the active step with *step_result* and move to the next one.

    Returns True if the completed step was the last one.
    """
    current = plan.current_step
    if current is None:
        return False

    current.status = PlanStepStatus.COMPLETED
    current.result = step_result

    was_last = plan.current_step_index >= len(plan.steps) - 1
    if not was_last:
        plan.current_step_index += 1
        plan.steps[plan.current_step_index].status = PlanStepStatus.IN_PROGRESS
    plan.touch()
    return was_last


# ---------------------------------------------------------------------------
# Run hook
# ---------------------------------------------------------------------------
class PlanLifecycle(RunHook):
    """Derives, renders and advances the plan owned by an agent."""

    def default_system_prompt(self, agent: Agent) -> str | None:
        tools = agent.tools.describe() if agent.tools is not None else ""
        return prompts.PLANNING_SYSTEM_PROMPT.format(tools=tools)

    def on_request(self, agent: Agent, request: str) -> None:
        if agent.config.plan_required and agent.plan is None:
            agent.plan = self.derive_plan(agent, request)

    def derive_plan(self, agent: Agent, request: str) -> Plan:
        """Ask the backend for a plan; never raises."""
        plan_prompt = Message.system(prompts.PLAN_REQUEST_PROMPT.format(request=request))
        try:
            response = agent.llm.ask([*agent.memory.messages, plan_prompt], agent.system_messages())
            draft = parse_plan_draft(response)
            plan = Plan(
                id=uuid.uuid4().hex,
                title=draft.title,
                description=draft.description,
                steps=[PlanStep(id=step.id, description=step.description) for step in draft.steps],
            )
            logger.info(
                "[%s] Created plan: %s with %d steps", agent.name, plan.title, len(plan.steps)
            )
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("[%s] Error creating plan, using fallback: %s", agent.name, str(e))
            plan = fallback_plan(request)
            agent.update_memory(
                Role.SYSTEM, f"Error creating detailed plan: {e}. Using fallback plan instead."
            )

        agent.update_memory(Role.ASSISTANT, format_plan_summary(plan))
        return plan

    def before_step(self, agent: Agent) -> None:
        plan = agent.plan
        if plan is None or plan.current_step is None:
            return

        current = plan.current_step
        if current.status is PlanStepStatus.PENDING:
            current.status = PlanStepStatus.IN_PROGRESS
            plan.touch()
        agent.next_step_prompt = prompts.STEP_DIRECTIVE.format(
            status=render_plan_status(plan), description=current.description
        )

    def after_step(self, agent: Agent, result: str) -> None:
        plan = agent.plan
        if plan is None or plan.current_step is None:
            return

        was_last = advance_plan(plan, result)
        summary = plan.summary()
        logger.info(
            "[%s] Plan progress: %d/%d steps completed",
            agent.name,
            summary["completed"],
            summary["total"],
        )
        if was_last and agent.state is not AgentState.FINISHED:
            logger.info("[%s] All steps completed, but terminate wasn't called.", agent.name)
            agent.update_memory(Role.SYSTEM, prompts.ALL_STEPS_DONE_PROMPT)

    def after_run(self, agent: Agent) -> None:
        if agent.plan is not None:
            agent.update_memory(
                Role.SYSTEM, prompts.PLAN_COMPLETED.format(status=render_plan_status(agent.plan))
            )
