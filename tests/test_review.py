from __future__ import annotations

import allure
import pytest

from hybrid_agent.orchestrator.review import parse_review_response

pytestmark = [
    allure.epic("Review Loop"),
    allure.feature("Reviewer Contract"),
]


def test_marker_approves_without_artifact() -> None:
    verdict = parse_review_response("Looks good.\nAPPROVED")

    assert verdict.approved is True
    assert verdict.replacement_artifact is None
    assert verdict.feedback == "Looks good.\nAPPROVED"


@pytest.mark.parametrize("line", ["APPROVED", "  APPROVED.", "APPROVED!", "APPROVED  "])
def test_marker_alone_on_a_line_approves(line: str) -> None:
    assert parse_review_response(f"Checked the edge cases.\n{line}\nShip it.").approved is True


def test_missing_marker_is_rejection_with_feedback() -> None:
    verdict = parse_review_response("  There are bugs. Fix them.\n")

    assert verdict.approved is False
    assert verdict.feedback == "There are bugs. Fix them."


def test_artifact_after_marker_replaces_result_verbatim() -> None:
    text = "APPROVED\nMinor polish applied:\n```python\ndef add(a, b):\n    return a + b\n```\n"

    verdict = parse_review_response(text)

    assert verdict.approved is True
    assert verdict.replacement_artifact == "def add(a, b):\n    return a + b"
    assert verdict.feedback == "APPROVED\nMinor polish applied:"


def test_code_block_before_marker_is_not_an_artifact() -> None:
    text = "Your snippet:\n```\nx = 1\n```\nAPPROVED"

    verdict = parse_review_response(text)

    assert verdict.approved is True
    assert verdict.replacement_artifact is None


def test_marker_inside_code_fence_does_not_approve() -> None:
    text = "The draft prints a status:\n```\nprint('APPROVED')\n```\nPlease handle errors."

    assert parse_review_response(text).approved is False


@pytest.mark.parametrize(
    "text",
    [
        "This cannot be APPROVED until the null check is added.",
        "Not yet APPROVED: the loop never terminates.",
        "I would not mark this as APPROVED.",
        "NOT APPROVED: missing tests",
        "NOT APPROVED",
        "Looks good. APPROVED",
        "APPROVED once the typo is fixed",
    ],
)
def test_marker_inside_a_sentence_does_not_approve(text: str) -> None:
    verdict = parse_review_response(text)

    assert verdict.approved is False
    assert verdict.feedback == text


def test_lowercase_and_embedded_markers_do_not_approve() -> None:
    assert parse_review_response("I approved of the idea, but fix the loop.").approved is False
    assert parse_review_response("UNAPPROVED changes").approved is False


def test_custom_marker() -> None:
    assert parse_review_response("Fine by me.\nLGTM", marker="LGTM").approved is True
    with pytest.raises(ValueError, match="must not be empty"):
        parse_review_response("APPROVED", marker=" ")
