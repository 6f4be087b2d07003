"""Interactive shell that runs an agent per user message."""

from __future__ import annotations

import logging
from typing import (
    Any,
    Dict,
    List,
    Tuple,
)

from taskpilot.agent.factory import create_agent_from_messages
from taskpilot.common import (
    AnsiColors,
    colored_print,
    print_run_summary,
)
from taskpilot.core.schema import Plan
from taskpilot.llm.base import LLMBackend
from taskpilot.tools import ToolRegistry

logger = logging.getLogger(__name__)


def get_user_message() -> Tuple[str, bool]:
    """
    Get a message from the user via standard input.

    Returns:
        Tuple of (user_input, success_flag)
        The success_flag is False if input couldn't be read (e.g., Ctrl+C)
    """
    import signal  # pylint: disable=import-outside-toplevel

    # Ensure SIGINT breaks out of slow system calls such as read()
    signal.siginterrupt(signal.SIGINT, True)

    try:
        user_input = input().strip()
        return user_input, True
    except (EOFError, KeyboardInterrupt):
        return "", False


class Session:
    """Conversation history kept between runs, as stored records."""

    def __init__(
        self,
        kind: str,
        llm: LLMBackend,
        tools: ToolRegistry | None = None,
        **config: Any,
    ):
        self.kind = kind
        self.llm = llm
        self.tools = tools
        self.config = config
        self.records: List[Dict[str, Any]] = []
        self.last_plan: Plan | None = None

    def ask(self, request: str) -> str:
        """Run a fresh agent replayed from the history and store what it added."""
        agent = create_agent_from_messages(
            self.kind, self.records, self.llm, tools=self.tools, **self.config
        )
        # Held so that ids stay unique even if the run evicts replayed entries
        replayed = agent.memory.messages
        replayed_ids = {id(message) for message in replayed}
        try:
            return agent.run(request)
        finally:
            for message in agent.memory:
                if id(message) not in replayed_ids:
                    self.records.append(message.model_dump(mode="json", exclude_none=True))
            self.last_plan = agent.plan


def run_cli(session: Session) -> None:
    """Read requests from stdin until 'exit', 'quit' or EOF."""
    colored_print(
        "\n🔮 taskpilot shell - type 'exit' or 'quit' (or Ctrl+C) to exit", AnsiColors.GREEN
    )
    while True:
        colored_print("\n🧑 You: ", AnsiColors.BLUE, end="")
        user_msg, ok = get_user_message()
        if not ok:
            break  # Exit if user input couldn't be retrieved (e.g., Ctrl+C)
        if user_msg.lower() in {"exit", "quit"}:
            break
        if not user_msg:
            continue

        try:
            summary = session.ask(user_msg)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Agent run failed")
            colored_print(f"⚠️ {exc}", AnsiColors.RED)
            continue

        print_run_summary(summary, session.last_plan)
