"""Controllers for hybrid-agent CLI commands."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path

from hybrid_agent.config import Settings
from hybrid_agent.orchestrator.backend import Agent, build_cli_agents
from hybrid_agent.orchestrator.engine import Orchestrator
from hybrid_agent.orchestrator.models import ExecuteOptions, ExecutionResult, ProgressEvent
from hybrid_agent.orchestrator.progress import CallbackProgressSink, NullProgressSink

COST_SUMMARY_HEADING = "### Cost Summary"

AgentFactory = Callable[[Settings], Mapping[str, Agent]]


@dataclass(slots=True)
class AskCommand:
    """CLI input for one orchestrated task."""

    prompt: str
    work_dir: Path | None
    agent: str | None
    model: str | None
    no_review: bool
    with_context: bool
    timeout_seconds: float | None


@dataclass(slots=True)
class ContextCommand:
    """CLI input for printing the saved synopsis."""

    work_dir: Path | None


@dataclass(slots=True)
class CostsCommand:
    """CLI input for the saved cost summary."""

    work_dir: Path | None


@dataclass(slots=True)
class StatusCommand:
    """CLI input for agent availability report."""

    work_dir: Path | None


class HybridCliController:
    """Translates CLI commands into orchestrator calls and printable lines."""

    def __init__(self, agent_factory: AgentFactory = build_cli_agents) -> None:
        self._agent_factory = agent_factory

    def ask(
        self,
        command: AskCommand,
        *,
        on_progress: Callable[[ProgressEvent], None] | None = None,
    ) -> list[str]:
        settings = Settings.from_env(work_dir=command.work_dir)
        settings.validate()
        orchestrator = Orchestrator(
            agents=self._agent_factory(settings),
            settings=settings,
            progress_sink=(
                CallbackProgressSink(on_progress) if on_progress is not None else NullProgressSink()
            ),
        )
        prior_context = orchestrator.load_context() if command.with_context else None
        outcome = orchestrator.execute(
            command.prompt,
            ExecuteOptions(
                force_agent=command.agent,
                force_model=command.model,
                skip_review=command.no_review,
                context_length=len(prior_context) if prior_context else 0,
                prior_context=prior_context,
                timeout_seconds=command.timeout_seconds,
            ),
        )
        return [outcome.result, "", *_render_execution_summary(outcome)]

    def show_context(self, command: ContextCommand) -> list[str]:
        settings = Settings.from_env(work_dir=command.work_dir)
        context_path = settings.orchestrator.context_path
        if not context_path.exists():
            return [f"No saved context at {context_path}"]
        return context_path.read_text("utf-8").rstrip("\n").splitlines()

    def show_costs(self, command: CostsCommand) -> list[str]:
        settings = Settings.from_env(work_dir=command.work_dir)
        context_path = settings.orchestrator.context_path
        if not context_path.exists():
            return [f"No saved context at {context_path}; no costs recorded yet."]
        lines = context_path.read_text("utf-8").splitlines()
        if COST_SUMMARY_HEADING not in lines:
            return [f"Saved context at {context_path} has no cost summary."]
        start = lines.index(COST_SUMMARY_HEADING)
        return [line for line in lines[start:] if line.strip()]

    def show_status(self, command: StatusCommand) -> list[str]:
        settings = Settings.from_env(work_dir=command.work_dir)
        settings.validate()
        orchestrator_settings = settings.orchestrator
        lines = [
            f"Work dir: {orchestrator_settings.work_dir}",
            f"Context file: {orchestrator_settings.context_path}",
            f"Reviewer: {orchestrator_settings.reviewer_agent}",
            f"Max correction retries: {orchestrator_settings.max_correction_retries}",
        ]
        for name, agent in sorted(self._agent_factory(settings).items()):
            state = "available" if agent.is_available() else "unavailable"
            lines.append(f"{name}: {state}")
        return lines


def _render_execution_summary(outcome: ExecutionResult) -> list[str]:
    summary = outcome.summary
    routing = outcome.routing
    return [
        f"Session: {outcome.session_id}",
        f"Task: type={summary.task_type.value} complexity={summary.complexity.value}",
        f"Routing: agent={routing.agent} model={routing.model} "
        f"review={'yes' if routing.requires_review else 'no'}"
        + (" (forced)" if routing.forced else ""),
        f"Review: approved={'yes' if summary.approved else 'no'} "
        f"reviews={summary.review_iterations} corrections={summary.correction_iterations}",
        f"Models: {', '.join(summary.models_used)}",
        f"Cost: ${outcome.cost:.4f}",
    ]
