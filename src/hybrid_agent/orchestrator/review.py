"""Structured parsing of reviewer responses.

The reviewer answers in free text. Everything the engine needs from that text
is reduced here to a `ReviewVerdict`:

- ``approved``: the approval marker stands alone on a line (optionally followed
  by ``.`` or ``!``), outside fenced code blocks. Inline mentions such as
  ``cannot be APPROVED`` or ``NOT APPROVED`` never count, and a draft echoed
  back inside a code fence cannot approve itself.
- ``replacement_artifact``: body of the first fenced code block that follows the
  marker, stripped. Only meaningful when approved.
- ``feedback``: review text with the artifact block removed; this is what the
  drafting agent receives when corrections are needed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_APPROVAL_MARKER = "APPROVED"

_FENCED_BLOCK = re.compile(r"```[^\n`]*\n?(.*?)```", re.DOTALL)


@dataclass(slots=True, frozen=True)
class ReviewVerdict:
    """Reviewer decision extracted from one review response."""

    approved: bool
    feedback: str
    replacement_artifact: str | None = None


def parse_review_response(text: str, marker: str = DEFAULT_APPROVAL_MARKER) -> ReviewVerdict:
    """Reduce a free-text review to approval, feedback, and optional artifact."""

    if not marker.strip():
        raise ValueError("Approval marker must not be empty.")

    marker_position = _find_marker(text, marker.strip())
    if marker_position is None:
        return ReviewVerdict(approved=False, feedback=text.strip())

    artifact_match = _FENCED_BLOCK.search(text, marker_position)
    if artifact_match is None:
        return ReviewVerdict(approved=True, feedback=text.strip())

    artifact = artifact_match.group(1).strip()
    feedback = (text[: artifact_match.start()] + text[artifact_match.end() :]).strip()
    return ReviewVerdict(
        approved=True,
        feedback=feedback,
        replacement_artifact=artifact or None,
    )


def _find_marker(text: str, marker: str) -> int | None:
    pattern = re.compile(rf"^[ \t]*{re.escape(marker)}[ \t]*[.!]?[ \t]*$", re.MULTILINE)
    fenced_spans = [match.span() for match in _FENCED_BLOCK.finditer(text)]
    for match in pattern.finditer(text):
        start = match.start()
        if any(span_start <= start < span_end for span_start, span_end in fenced_spans):
            continue
        return match.end()
    return None
