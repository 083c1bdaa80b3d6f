"""Keyword/length heuristics that classify a task before routing."""

from __future__ import annotations

import re
from dataclasses import dataclass

from hybrid_agent.orchestrator.models import Complexity, TaskType

CRITICAL_KEYWORDS: tuple[str, ...] = ("complex", "critical", "production", "careful")
TRIVIAL_KEYWORDS: tuple[str, ...] = ("simple", "quick", "brief")

# Priority order matters: the first bucket with a match wins.
TASK_TYPE_KEYWORDS: tuple[tuple[TaskType, tuple[str, ...]], ...] = (
    (
        TaskType.READ_ANALYZE,
        ("read", "analyze", "analyse", "understand", "explain", "summarize", "summarise", "find"),
    ),
    (
        TaskType.DRAFT_CODE,
        ("write", "create", "implement", "build", "generate", "function", "class"),
    ),
    (TaskType.FIX_BUG, ("fix", "debug", "bug", "error", "resolve", "repair")),
    (TaskType.ARCHITECTURE, ("design", "architect", "architecture", "plan", "structure")),
)


@dataclass(slots=True, frozen=True)
class ComplexityThresholds:
    """Upper (exclusive) length boundaries of the lower three tiers."""

    trivial: int = 100
    standard: int = 5_000
    complex: int = 50_000

    def __post_init__(self) -> None:
        if self.trivial <= 0:
            raise ValueError(f"Trivial threshold must be > 0, got {self.trivial}")
        if not self.trivial < self.standard < self.complex:
            raise ValueError(
                "Complexity thresholds must be strictly increasing: "
                f"trivial={self.trivial}, standard={self.standard}, complex={self.complex}",
            )


DEFAULT_THRESHOLDS = ComplexityThresholds()


def classify_complexity(
    text: str,
    length: int,
    thresholds: ComplexityThresholds = DEFAULT_THRESHOLDS,
) -> Complexity:
    """Classify task complexity; keyword hints dominate length thresholds."""

    if length < 0:
        raise ValueError(f"Input length must be >= 0, got {length}")
    if _CRITICAL_PATTERN.search(text):
        return Complexity.CRITICAL
    if _TRIVIAL_PATTERN.search(text):
        return Complexity.TRIVIAL

    if length < thresholds.trivial:
        return Complexity.TRIVIAL
    if length < thresholds.standard:
        return Complexity.STANDARD
    if length < thresholds.complex:
        return Complexity.COMPLEX
    return Complexity.CRITICAL


def classify_task_type(text: str) -> TaskType:
    """Return the first task type whose keyword bucket matches, else `question`."""

    for task_type, pattern in _TASK_TYPE_PATTERNS:
        if pattern.search(text):
            return task_type
    return TaskType.QUESTION


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern[str]:
    alternation = "|".join(re.escape(keyword) for keyword in keywords)
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


_CRITICAL_PATTERN = _keyword_pattern(CRITICAL_KEYWORDS)
_TRIVIAL_PATTERN = _keyword_pattern(TRIVIAL_KEYWORDS)
_TASK_TYPE_PATTERNS = tuple(
    (task_type, _keyword_pattern(keywords)) for task_type, keywords in TASK_TYPE_KEYWORDS
)
