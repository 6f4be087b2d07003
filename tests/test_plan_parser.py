"""Tests for structured plan extraction from model output."""

import pytest

from taskpilot.agent.plan_parser import (
    extract_json_block,
    extract_plan_block,
    parse_plan_draft,
)
from taskpilot.core.errors import PlanDerivationError

PLAN_JSON = '{"title": "T", "description": "D", "steps": [{"id": 1, "description": "one"}]}'


def test_json_fence_wins_over_other_blocks() -> None:
    """A json-tagged fence takes precedence over an earlier untagged fence and raw braces."""
    text = (
        'noise {"title": "raw"}\n'
        "```\n"
        '{"title": "untagged"}\n'
        "```\n"
        "```json\n"
        f"{PLAN_JSON}\n"
        "```"
    )
    assert extract_json_block(text) == PLAN_JSON


def test_untagged_fence_used_when_no_json_fence() -> None:
    text = f'intro {{"title": "raw"}}\n```\n{PLAN_JSON}\n```\n'
    assert extract_json_block(text) == PLAN_JSON


def test_json_dialect_fence_is_not_a_json_fence() -> None:
    """A ```jsonc block is read whole by the untagged-fence tier."""
    text = f"```jsonc\n{PLAN_JSON}\n```"
    assert extract_json_block(text) == PLAN_JSON
    assert extract_plan_block(text).title == "T"


def test_brace_span_used_as_last_resort() -> None:
    """Nested objects and braces inside strings do not cut the span short."""
    text = 'Here you go: {"title": "a {b}", "meta": {"x": 1}, "steps": []} thanks!'
    assert extract_json_block(text) == '{"title": "a {b}", "meta": {"x": 1}, "steps": []}'


def test_no_block() -> None:
    assert extract_json_block("just prose") is None
    assert extract_plan_block("just prose") is None


def test_parse_plan_draft_fills_defaults() -> None:
    """Missing ids are numbered by position; missing title/description get defaults."""
    draft = parse_plan_draft(
        '```json\n{"steps": [{"description": "first"}, {"description": "second"}]}\n```'
    )
    assert draft.title == "Untitled Plan"
    assert draft.description == ""
    assert [(s.id, s.description) for s in draft.steps] == [(1, "first"), (2, "second")]


def test_parse_plan_draft_keeps_sparse_ids() -> None:
    draft = parse_plan_draft('{"title": "T", "steps": [{"id": 3, "description": "a"}, '
                             '{"id": 7, "description": "b"}]}')
    assert [s.id for s in draft.steps] == [3, 7]


@pytest.mark.parametrize(
    "text",
    [
        "```json\n{not json}\n```",
        '{"title": "no steps"}',
        '{"title": "empty", "steps": []}',
        '{"steps": [{"id": 1, "description": "a"}, {"id": 1, "description": "b"}]}',
        '{"steps": [{"id": 0, "description": "a"}]}',
        '{"steps": [{"id": 1}]}',
    ],
)
def test_unusable_plans_raise(text: str) -> None:
    """Malformed JSON, missing/empty steps and bad ids are derivation errors."""
    with pytest.raises(PlanDerivationError):
        parse_plan_draft(text)
    assert extract_plan_block(text) is None


def test_first_match_is_final() -> None:
    """A broken json fence is not rescued by a valid brace span elsewhere."""
    text = f"```json\n{{broken\n```\n{PLAN_JSON}"
    assert extract_plan_block(text) is None
