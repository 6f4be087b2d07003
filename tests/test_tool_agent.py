"""Tests for the tool-calling think/act strategy."""

from conftest import (
    ScriptedBackend,
    call,
    reply,
)

from taskpilot.agent.factory import create_tool_agent
from taskpilot.core.errors import BackendError
from taskpilot.core.schema import (
    AgentState,
    Role,
    ToolChoice,
)


def _tool_messages(agent):
    return [m for m in agent.memory.messages if m.role is Role.TOOL]


def test_success_then_failure_are_isolated(registry) -> None:
    """A failing call is recorded as an error and does not stop the next one."""
    llm = ScriptedBackend(
        tool_replies=[
            reply("working", call("c1", "add", '{"a": 1, "b": 2}'), call("c2", "explode"))
        ]
    )
    agent = create_tool_agent(llm, registry)

    assert agent.think() is True
    result = agent.act()

    tool_msgs = _tool_messages(agent)
    assert [(m.tool_call_id, m.name) for m in tool_msgs] == [("c1", "add"), ("c2", "explode")]
    assert tool_msgs[0].content == "3"
    assert tool_msgs[1].content.startswith("Error")
    assert result.splitlines() == ["[add]: 3", "[explode]: Error: boom"]


def test_unknown_tool_and_bad_arguments_do_not_abort_turn(registry) -> None:
    llm = ScriptedBackend(
        tool_replies=[
            reply(
                "",
                call("c1", "missing"),
                call("c2", "add", "{not json"),
                call("c3", "add", "[1, 2]"),
                call("c4", "add", '{"a": 2, "b": 2}'),
            )
        ]
    )
    agent = create_tool_agent(llm, registry)
    agent.think()
    result = agent.act().splitlines()

    contents = [m.content for m in _tool_messages(agent)]
    assert contents[0] == "Error executing missing: Tool not found: missing"
    assert contents[1].startswith("Error executing add: Invalid arguments for tool 'add'")
    assert contents[2].startswith("Error executing add: Invalid arguments")
    assert contents[3] == "4"
    assert result[-1] == "[add]: 4"


def test_assistant_message_carries_tool_calls(registry) -> None:
    llm = ScriptedBackend(tool_replies=[reply("calling", call("c1", "add", '{"a": 1, "b": 1}'))])
    agent = create_tool_agent(llm, registry, tool_choice=ToolChoice.REQUIRED)
    agent.think()

    assistant = [m for m in agent.memory.messages if m.role is Role.ASSISTANT][-1]
    assert assistant.content == "calling"
    assert [c.id for c in assistant.tool_calls] == ["c1"]
    sent = llm.calls[0]
    assert sent["tool_choice"] is ToolChoice.REQUIRED
    assert [t["function"]["name"] for t in sent["tools"]] == ["terminate", "add", "explode"]


def test_no_calls_means_no_action(registry) -> None:
    llm = ScriptedBackend(tool_replies=[reply("nothing to do")])
    agent = create_tool_agent(llm, registry, max_steps=2)

    result = agent.run("hello")

    assert result.splitlines() == [
        "Thinking complete - no action needed",
        "Thinking complete - no action needed",
        "Terminated: Reached max steps (2)",
    ]
    assert agent.act() == "No tools to execute"


def test_terminal_tool_ends_run_and_skips_rest(registry) -> None:
    """Calls before terminate keep their results; later calls are not executed."""
    llm = ScriptedBackend(
        tool_replies=[
            reply(
                "wrapping up",
                call("c1", "add", '{"a": 1, "b": 1}'),
                call("c2", "terminate", '{"reason": "done"}'),
                call("c3", "add", '{"a": 5, "b": 5}'),
            )
        ]
    )
    agent = create_tool_agent(llm, registry, max_steps=5)

    result = agent.run("finish")

    assert agent.state is AgentState.FINISHED
    assert agent.current_step == 1
    assert result.splitlines() == ["[add]: 2", "[terminate]: Task completed: done"]
    contents = [m.content for m in _tool_messages(agent)]
    assert contents == ["2", "Task completed: done", "Skipped: run terminated by terminate"]


def test_terminal_tool_names_are_configurable(registry) -> None:
    llm = ScriptedBackend(tool_replies=[reply("", call("c1", "add", '{"a": 1, "b": 1}'))])
    agent = create_tool_agent(llm, registry, terminal_tools={"ADD"}, max_steps=3)

    agent.run("go")

    assert agent.current_step == 1
    assert agent.state is AgentState.FINISHED


def test_backend_error_degrades_to_inert_turn(registry) -> None:
    """A provider failure is noted in memory and the run continues."""
    llm = ScriptedBackend(
        tool_replies=[
            BackendError("rate limited"),
            reply("", call("c1", "terminate", '{"reason": "ok"}')),
        ]
    )
    agent = create_tool_agent(llm, registry, max_steps=4)

    result = agent.run("go")

    lines = result.splitlines()
    assert lines[0] == "Thinking complete - no action needed"
    assert lines[1] == "[terminate]: Task completed: ok"
    notes = [m.content for m in agent.memory.messages if m.role is Role.ASSISTANT]
    assert notes[0] == "Error encountered while processing: rate limited"
    assert agent.state is AgentState.FINISHED


def test_tool_calls_replaced_each_think(registry) -> None:
    llm = ScriptedBackend(
        tool_replies=[reply("", call("c1", "add", '{"a": 1, "b": 1}')), reply("no calls")]
    )
    agent = create_tool_agent(llm, registry)

    agent.think()
    assert len(agent.tool_calls) == 1
    assert agent.think() is False
    assert agent.tool_calls == []


def test_default_prompt_lists_tools(registry) -> None:
    agent = create_tool_agent(ScriptedBackend(tool_replies=[reply()]), registry)
    assert "- add: Return the sum of two integers." in agent.system_prompt
    assert "terminate" in agent.system_prompt


def test_call_without_id_is_still_isolated(registry) -> None:
    """A provider call missing its id gets one, and later calls in the turn still run."""
    llm = ScriptedBackend(
        tool_replies=[
            reply("", call("", "add", '{"a": 1, "b": 1}'), call("c2", "add", '{"a": 2, "b": 2}'))
        ]
    )
    agent = create_tool_agent(llm, registry)
    agent.think()
    result = agent.act()

    tool_msgs = _tool_messages(agent)
    assert [m.content for m in tool_msgs] == ["2", "4"]
    assert tool_msgs[0].tool_call_id.startswith("call_")
    assert tool_msgs[0].tool_call_id == agent.tool_calls[0].id
    assert result.splitlines() == ["[add]: 2", "[add]: 4"]
