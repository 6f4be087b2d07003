"""Terminal output helpers shared by the shell and the one-shot command."""

from enum import Enum
from typing import Any

from taskpilot.core.schema import (
    Plan,
    PlanStepStatus,
)

_RESET = "\033[0m"


class AnsiColors(Enum):
    """
    ANSI color codes for terminal output.
    """

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[33m"
    BLUE = "\033[94m"
    GREY = "\033[90m"


def colored_print(text: str, color: AnsiColors, *args: Any, **kwargs: Any) -> None:
    """
    Print text in color.

    Args:
        text: The text to print
        color: The color to use (AnsiColors enum)
        args: Additional positional arguments for print
        kwargs: Additional keyword arguments for print
    """
    print(f"{color.value}{text}{_RESET}", *args, **kwargs)


def summary_line_color(line: str) -> AnsiColors:
    """Pick a color for one line of a run summary."""
    if line.startswith("Terminated:"):
        return AnsiColors.YELLOW
    if "Error" in line or line.startswith("Skipped:"):
        return AnsiColors.RED
    if line.startswith("["):
        return AnsiColors.GREEN
    return AnsiColors.GREY


def print_run_summary(summary: str, plan: Plan | None = None) -> None:
    """Print a run summary line by line, followed by the plan outcome if one was tracked."""
    for line in summary.splitlines():
        colored_print(line, summary_line_color(line))
    if plan is not None:
        done = sum(1 for step in plan.steps if step.status is PlanStepStatus.COMPLETED)
        colored_print(
            f"Plan '{plan.title}': {done}/{len(plan.steps)} steps completed", AnsiColors.BLUE
        )
