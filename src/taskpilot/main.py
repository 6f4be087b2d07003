"""
taskpilot entry point.

This file handles startup concerns (arg-parsing, logging) and either runs a single request or
launches the interactive shell.
"""

import argparse
import logging
import sys

from taskpilot.agent.factory import AGENT_KINDS
from taskpilot.client.cli import (
    Session,
    run_cli,
)
from taskpilot.common import (
    AnsiColors,
    colored_print,
    print_run_summary,
)
from taskpilot.config import settings
from taskpilot.core.errors import TaskPilotError
from taskpilot.llm.base import load_backend
from taskpilot.tools import create_default_registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _init_logging(level: str) -> None:
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric,
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        stream=sys.stdout,
    )
    # Provider SDKs log every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a taskpilot agent")
    parser.add_argument("request", nargs="?", help="Run this request once and exit")
    parser.add_argument(
        "--agent",
        choices=AGENT_KINDS,
        type=str.lower,
        default="planning",
        help="Agent specialization (default: %(default)s)",
    )
    parser.add_argument(
        "--provider",
        type=str.lower,
        default=settings.LLM_PROVIDER,
        help="LLM backend (default from env: %(default)s)",
    )
    parser.add_argument(
        "--max-steps",
        type=int,
        default=settings.AGENT_MAX_STEPS,
        help="Step budget per run (default from env: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        default=settings.LOG_LEVEL,
        help="Logging level (default from env: %(default)s)",
    )
    return parser


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------
def main(argv: list[str] | None = None) -> int:
    """
    Main entry point for the taskpilot command.

    Returns the process exit code.
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.max_steps < 1:
        parser.error("--max-steps must be at least 1")

    _init_logging(args.log_level)
    logger.info("Starting taskpilot [%s agent, %s backend]", args.agent, args.provider)

    try:
        llm = load_backend(args.provider)
    except ValueError as exc:
        parser.error(str(exc))

    session = Session(
        args.agent,
        llm,
        tools=create_default_registry(),
        max_steps=args.max_steps,
        max_messages=settings.MEMORY_MAX_MESSAGES,
    )

    if args.request is None:
        run_cli(session)
        return 0

    try:
        summary = session.ask(args.request)
    except TaskPilotError as exc:
        colored_print(f"⚠️ {exc}", AnsiColors.RED)
        return 1
    print_run_summary(summary, session.last_plan)
    return 0


if __name__ == "__main__":
    sys.exit(main())
