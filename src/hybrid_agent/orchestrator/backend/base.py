"""Agent capability interface consumed by the execution engine."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True, frozen=True)
class AgentUsage:
    """Token usage reported (or estimated) for one call."""

    input_tokens: int = 0
    output_tokens: int = 0

    def __post_init__(self) -> None:
        if self.input_tokens < 0 or self.output_tokens < 0:
            raise ValueError(
                "Token usage must be non-negative: "
                f"input={self.input_tokens}, output={self.output_tokens}",
            )


@dataclass(slots=True, frozen=True)
class AgentResponse:
    """Full response text plus usage metadata."""

    text: str
    usage: AgentUsage


class Agent(Protocol):
    """Protocol implemented by every agent backend."""

    name: str

    def spawn(self, session_id: str, *, model: str, work_dir: Path) -> None:
        """Initialize a conversational session; raise `AgentError` on failure."""

    def send_and_wait(
        self,
        session_id: str,
        message: str,
        *,
        timeout_seconds: float,
    ) -> AgentResponse:
        """Send one message and block until the full response is available."""

    def estimate_cost(
        self,
        input_tokens: int,
        output_tokens: int,
        model: str | None = None,
    ) -> float:
        """Price a call; pure, no I/O."""

    def is_available(self) -> bool:
        """Return whether the backend is installed and reachable."""
