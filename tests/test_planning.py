"""Tests for plan derivation, rendering and advancement."""

import json

from conftest import (
    ScriptedBackend,
    call,
    reply,
)

from taskpilot.agent.factory import create_planning_agent
from taskpilot.agent.planning import (
    FALLBACK_STEPS,
    PlanLifecycle,
    advance_plan,
    fallback_plan,
    render_plan_status,
)
from taskpilot.core.errors import BackendError
from taskpilot.core.schema import (
    AgentState,
    Plan,
    PlanStep,
    PlanStepStatus,
    Role,
)

PLAN = {
    "title": "Write report",
    "description": "Collect and summarise",
    "steps": [
        {"id": 1, "description": "Collect data"},
        {"id": 2, "description": "Summarise"},
        {"id": 3, "description": "Review"},
    ],
}
PLAN_REPLY = f"Sure!\n```json\n{json.dumps(PLAN)}\n```"


def _three_step_plan() -> Plan:
    return Plan(
        id="p",
        title="T",
        steps=[PlanStep(id=i, description=f"S{i - 1}") for i in (1, 2, 3)],
    )


def test_plan_derived_from_backend(registry) -> None:
    llm = ScriptedBackend(ask_replies=[PLAN_REPLY], tool_replies=[reply("nothing")])
    agent = create_planning_agent(llm, registry, max_steps=1)

    agent.run("write the report")

    plan = agent.plan
    assert plan.title == "Write report"
    assert [s.description for s in plan.steps] == ["Collect data", "Summarise", "Review"]
    summaries = [
        m.content
        for m in agent.memory.messages
        if m.role is Role.ASSISTANT and m.content.startswith("Generated plan")
    ]
    assert summaries == [
        "Generated plan: Write report\nCollect and summarise\n\n"
        "Steps:\n1. Collect data\n2. Summarise\n3. Review"
    ]
    # The derivation request itself is not kept in memory.
    assert not any("Create a detailed step-by-step plan" in (m.content or "") for m in agent.memory)
    assert "write the report" in llm.calls[0]["messages"][-1].content


def test_unparseable_reply_yields_fallback_plan(registry) -> None:
    """No structured block: exactly three pending fallback steps at index 0."""
    llm = ScriptedBackend(ask_replies=["I cannot produce JSON, sorry."])
    agent = create_planning_agent(llm, registry)

    plan = PlanLifecycle().derive_plan(agent, "do something")

    assert [s.description for s in plan.steps] == list(FALLBACK_STEPS)
    assert [s.description for s in plan.steps] == [
        "Analyze the request",
        "Execute the task directly",
        "Verify the result",
    ]
    assert all(s.status is PlanStepStatus.PENDING for s in plan.steps)
    assert plan.current_step_index == 0
    notes = [m for m in agent.memory.messages if m.role is Role.SYSTEM]
    assert notes[-1].content.startswith("Error creating detailed plan:")


def test_backend_failure_during_derivation_uses_fallback(registry) -> None:
    llm = ScriptedBackend(ask_replies=[BackendError("offline")], tool_replies=[reply()])
    agent = create_planning_agent(llm, registry, max_steps=1)

    agent.run("task")

    assert agent.plan.title == "Fallback Plan"


def test_plan_advances_after_step() -> None:
    plan = _three_step_plan()
    plan.steps[0].status = PlanStepStatus.IN_PROGRESS
    before = plan.updated_at

    was_last = advance_plan(plan, "collected")

    assert was_last is False
    assert plan.steps[0].status is PlanStepStatus.COMPLETED
    assert plan.steps[0].result == "collected"
    assert plan.current_step_index == 1
    assert plan.steps[1].status is PlanStepStatus.IN_PROGRESS
    assert plan.steps[2].status is PlanStepStatus.PENDING
    assert plan.updated_at >= before


def test_advance_stays_on_last_step() -> None:
    plan = _three_step_plan()
    plan.current_step_index = 2
    assert advance_plan(plan, "done") is True
    assert plan.current_step_index == 2
    assert plan.steps[2].status is PlanStepStatus.COMPLETED


def test_render_plan_status_markers() -> None:
    plan = _three_step_plan()
    plan.steps[0].status = PlanStepStatus.COMPLETED
    plan.steps[1].status = PlanStepStatus.IN_PROGRESS
    plan.steps[2].status = PlanStepStatus.FAILED
    plan.current_step_index = 1

    assert render_plan_status(plan) == (
        "Current Plan: T\n"
        "Progress: 2/3\n\n"
        "✓ 1. S0 [completed]\n"
        "→ 2. S1 [in_progress]\n"
        "✗ 3. S2 [failed]"
    )
    assert render_plan_status(None) == "No active plan"


def test_one_step_of_a_planning_run(registry) -> None:
    """After one step S0 is completed with a result and S1 becomes active."""
    llm = ScriptedBackend(
        ask_replies=[PLAN_REPLY],
        tool_replies=[reply("", call("c1", "add", '{"a": 2, "b": 3}'))],
    )
    agent = create_planning_agent(llm, registry, max_steps=1)

    agent.run("write the report")

    steps = agent.plan.steps
    assert steps[0].status is PlanStepStatus.COMPLETED
    assert steps[0].result == "[add]: 5"
    assert agent.plan.current_step_index == 1
    assert steps[1].status is PlanStepStatus.IN_PROGRESS


def test_directive_sent_before_each_think(registry) -> None:
    llm = ScriptedBackend(ask_replies=[PLAN_REPLY], tool_replies=[reply("thinking")])
    agent = create_planning_agent(llm, registry, max_steps=2)

    agent.run("write the report")

    first, second = (c["messages"][-1].content for c in llm.calls[1:3])
    assert first.startswith("Current plan status:\nCurrent Plan: Write report\nProgress: 1/3")
    assert "→ 1. Collect data [in_progress]" in first
    assert first.endswith("Focus on completing the current step: Collect data")
    assert "✓ 1. Collect data [completed]" in second
    assert second.endswith("Focus on completing the current step: Summarise")


def test_reminder_and_completion_message(registry) -> None:
    """Completing the last step without terminating adds a reminder; the run ends with a status."""
    llm = ScriptedBackend(ask_replies=[PLAN_REPLY], tool_replies=[reply("still going")])
    agent = create_planning_agent(llm, registry, max_steps=4)

    result = agent.run("write the report")

    assert result.splitlines()[-1] == "Terminated: Reached max steps (4)"
    assert all(s.status is PlanStepStatus.COMPLETED for s in agent.plan.steps)
    system = [m.content for m in agent.memory.messages if m.role is Role.SYSTEM]
    reminder = "All plan steps are now completed. Use the terminate tool to finish the task."
    assert system.count(reminder) == 2  # after step 3 and step 4
    assert system[-1].startswith("Plan execution completed. Final status:\nCurrent Plan:")


def test_terminate_on_last_step_skips_reminder(registry) -> None:
    one_step = json.dumps({"title": "Quick", "steps": [{"id": 1, "description": "Finish"}]})
    llm = ScriptedBackend(
        ask_replies=[one_step],
        tool_replies=[reply("", call("c1", "terminate", '{"reason": "done"}'))],
    )
    agent = create_planning_agent(llm, registry, max_steps=5)

    agent.run("quick job")

    assert agent.state is AgentState.FINISHED
    system = [m.content for m in agent.memory.messages if m.role is Role.SYSTEM]
    assert not any(content.startswith("All plan steps") for content in system)
    assert system[-1].startswith("Plan execution completed.")
    assert agent.plan.steps[0].status is PlanStepStatus.COMPLETED


def test_plan_not_rederived_on_later_runs(registry) -> None:
    llm = ScriptedBackend(ask_replies=[PLAN_REPLY], tool_replies=[reply("")])
    agent = create_planning_agent(llm, registry, max_steps=1)

    agent.run("first")
    first_plan = agent.plan
    agent.initialize()
    agent.run("second")

    assert agent.plan is first_plan
    assert sum(1 for c in llm.calls if c["method"] == "ask") == 1


def test_plan_not_required(registry) -> None:
    llm = ScriptedBackend(tool_replies=[reply("")])
    agent = create_planning_agent(llm, registry, plan_required=False, max_steps=1)

    agent.run("task")

    assert agent.plan is None
    assert all(c["method"] == "ask_with_tools" for c in llm.calls)


def test_fallback_plan_is_fresh_each_time() -> None:
    first, second = fallback_plan("a"), fallback_plan("b")
    assert first.id != second.id
    assert first.description == "Fallback plan for request: a"
