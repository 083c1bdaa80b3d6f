"""Domain models for task routing, sessions, and execution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class TaskType(str, Enum):
    """Functional category of a task."""

    READ_ANALYZE = "read_analyze"
    DRAFT_CODE = "draft_code"
    FIX_BUG = "fix_bug"
    ARCHITECTURE = "architecture"
    QUESTION = "question"


class Complexity(str, Enum):
    """Difficulty tier, ordered from cheapest to most demanding."""

    TRIVIAL = "trivial"
    STANDARD = "standard"
    COMPLEX = "complex"
    CRITICAL = "critical"


class StepRole(str, Enum):
    """Role of one agent round-trip within a session."""

    DRAFT = "draft"
    REVIEW = "review"
    CORRECTION = "correction"


class SessionStatus(str, Enum):
    """Session lifecycle states."""

    RUNNING = "running"
    COMPLETE = "complete"
    ERROR = "error"


class ProgressStage(str, Enum):
    """Stages reported to progress sinks."""

    ROUTING = "routing"
    EXECUTING = "executing"
    REVIEW = "review"
    CORRECTION = "correction"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(slots=True, frozen=True)
class RoutingDecision:
    """Chosen agent, model, and review requirement for one task."""

    agent: str
    model: str
    requires_review: bool
    profile: str
    forced: bool = False

    def to_details(self) -> dict[str, object]:
        """Serialize routing for the routing progress event."""

        return {
            "agent": self.agent,
            "model": self.model,
            "requires_review": self.requires_review,
            "profile": self.profile,
            "forced": self.forced,
        }


@dataclass(slots=True, frozen=True)
class Step:
    """One agent round-trip (draft, review, or correction)."""

    actor: str
    model: str
    role: StepRole
    input_tokens: int
    output_tokens: int
    cost: float
    output: str
    attempt: int = 0


@dataclass(slots=True)
class Session:
    """One orchestrated task execution and its accumulated steps."""

    id: str
    prompt: str
    task_type: TaskType
    complexity: Complexity
    routing: RoutingDecision
    started_at: datetime
    status: SessionStatus = SessionStatus.RUNNING
    steps: list[Step] = field(default_factory=list)
    result: str | None = None
    error: str | None = None
    completed_at: datetime | None = None
    approved: bool = False
    review_iterations: int = 0
    correction_iterations: int = 0

    @property
    def cost(self) -> float:
        return sum(step.cost for step in self.steps)

    def add_step(self, step: Step) -> None:
        if self.status is not SessionStatus.RUNNING:
            raise RuntimeError(
                f"Cannot record a step on session {self.id} with status={self.status.value}",
            )
        self.steps.append(step)

    def mark_complete(self, *, result: str, completed_at: datetime) -> None:
        self._leave_running(SessionStatus.COMPLETE)
        self.result = result
        self.completed_at = completed_at

    def mark_error(self, *, error: str, completed_at: datetime) -> None:
        self._leave_running(SessionStatus.ERROR)
        self.error = error
        self.completed_at = completed_at

    def cost_by_actor(self) -> dict[str, float]:
        """Sum step costs grouped by the agent that performed them."""

        totals: dict[str, float] = {}
        for step in self.steps:
            totals[step.actor] = totals.get(step.actor, 0.0) + step.cost
        return totals

    def models_used(self) -> list[str]:
        seen: list[str] = []
        for step in self.steps:
            if step.model not in seen:
                seen.append(step.model)
        return seen

    def _leave_running(self, target: SessionStatus) -> None:
        if self.status is not SessionStatus.RUNNING:
            raise RuntimeError(
                f"Session {self.id} already finished with status={self.status.value}; "
                f"refusing transition to {target.value}",
            )
        self.status = target


@dataclass(slots=True, frozen=True)
class ProgressEvent:
    """Progress notification delivered to a progress sink."""

    stage: ProgressStage
    message: str
    session_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ExecuteOptions:
    """Per-call options for `Orchestrator.execute`."""

    force_agent: str | None = None
    force_model: str | None = None
    skip_review: bool = False
    context_length: int = 0
    prior_context: str | None = None
    timeout_seconds: float | None = None


@dataclass(slots=True, frozen=True)
class ExecutionSummary:
    """Counters describing how a session was executed."""

    task_type: TaskType
    complexity: Complexity
    steps_count: int
    review_iterations: int
    correction_iterations: int
    approved: bool
    models_used: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class ExecutionResult:
    """Value returned to callers of `Orchestrator.execute`."""

    result: str
    session_id: str
    routing: RoutingDecision
    cost: float
    summary: ExecutionSummary
    steps: tuple[Step, ...] = ()
