"""
Extraction of a structured plan from free-form model output.

Models asked for a JSON plan reply in many shapes: a ```json fenced block, an untagged fence, or an
object embedded in prose.  :func:`extract_json_block` picks the candidate text using that
precedence, :func:`parse_plan_draft` validates it, and :func:`extract_plan_block` wraps both into a
total function returning a :class:`PlanDraft` or *None*.
"""

import json
import logging
import re
from typing import (
    Any,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from taskpilot.core.errors import PlanDerivationError

logger = logging.getLogger(__name__)

_JSON_FENCE = re.compile(r"```json\b[ \t]*\n?(.*?)```", re.DOTALL | re.IGNORECASE)
_ANY_FENCE = re.compile(r"```[\w+.-]*[ \t]*\n?(.*?)```", re.DOTALL)


# ---------------------------------------------------------------------------
# Pydantic models for plan validation
# ---------------------------------------------------------------------------
class DraftStep(BaseModel):
    """A step as proposed by the model."""

    id: Optional[int] = None
    description: str = Field(..., min_length=1)

    @field_validator("description", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class PlanDraft(BaseModel):
    """Validated decomposition returned by the model, before it becomes a :class:`Plan`."""

    title: str = "Untitled Plan"
    description: str = ""
    steps: List[DraftStep] = Field(..., min_length=1)

    @field_validator("title", "description", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _number_steps(self) -> "PlanDraft":
        if not self.title:
            self.title = "Untitled Plan"
        seen = set()
        for position, step in enumerate(self.steps, start=1):
            if step.id is None:
                step.id = position
            if step.id <= 0:
                raise ValueError(f"step id must be positive, got {step.id}")
            if step.id in seen:
                raise ValueError(f"duplicate step id {step.id}")
            seen.add(step.id)
        return self


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------
def _first_brace_span(text: str) -> str | None:
    """Return the first balanced ``{...}`` span, ignoring braces inside JSON strings."""
    open_idx = text.find("{")
    if open_idx < 0:
        return None

    depth = 0
    in_string = False
    escaped = False
    for i in range(open_idx, len(text)):
        ch = text[i]
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                return text[open_idx : i + 1]
    return None


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------
def extract_json_block(text: str) -> str | None:
    """
    Return the structured block embedded in *text*, or *None*.

    Precedence: a fence tagged ``json``, then any fenced block, then the first balanced
    brace-delimited span of the raw text.
    """
    for pattern in (_JSON_FENCE, _ANY_FENCE):
        match = pattern.search(text)
        if match:
            return match.group(1).strip()
    return _first_brace_span(text)


def parse_plan_draft(text: str) -> PlanDraft:
    """
    Parse the first structured block of *text* into a :class:`PlanDraft`.

    Raises
    ------
    PlanDerivationError
        If no block is found, it is not valid JSON, or it lacks usable steps.
    """
    block = extract_json_block(text or "")
    if block is None:
        raise PlanDerivationError("no structured block found in the response")
    try:
        data = json.loads(block)
    except json.JSONDecodeError as exc:
        raise PlanDerivationError(f"invalid JSON in plan block: {exc}") from exc
    if not isinstance(data, dict):
        raise PlanDerivationError("plan block is not a JSON object")
    try:
        return PlanDraft.model_validate(data)
    except ValidationError as exc:
        raise PlanDerivationError(f"plan block failed validation: {exc}") from exc


def extract_plan_block(text: str) -> PlanDraft | None:
    """Total variant of :func:`parse_plan_draft`: returns *None* instead of raising."""
    try:
        return parse_plan_draft(text)
    except PlanDerivationError as exc:
        logger.debug("No usable plan in response: %s", exc)
        return None
