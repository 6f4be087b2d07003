"""The sentinel tool that ends an agent run."""

from typing import Any

from taskpilot.tools.base import BaseTool


class TerminateTool(BaseTool):
    """Signals that the task is complete."""

    name = "terminate"
    description = "Terminates the agent execution when the task is complete"
    parameters = {
        "type": "object",
        "properties": {
            "reason": {
                "type": "string",
                "description": "Reason for termination",
            },
        },
        "required": ["reason"],
    }

    def run(self, **kwargs: Any) -> str:
        reason = kwargs.get("reason") or "no reason given"
        return f"Task completed: {reason}"
