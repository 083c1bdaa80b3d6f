"""Execution engine: routing, drafting, and the bounded review/correction loop."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TypeVar
from uuid import uuid4

from hybrid_agent.config import Settings
from hybrid_agent.orchestrator.backend.base import Agent, AgentResponse
from hybrid_agent.orchestrator.classifier import (
    ComplexityThresholds,
    classify_complexity,
    classify_task_type,
)
from hybrid_agent.orchestrator.context_store import ContextStore
from hybrid_agent.orchestrator.errors import AgentTimeoutError, AgentUnavailableError
from hybrid_agent.orchestrator.ledger import CostLedger, CostSnapshot
from hybrid_agent.orchestrator.models import (
    ExecuteOptions,
    ExecutionResult,
    ExecutionSummary,
    ProgressEvent,
    ProgressStage,
    Session,
    Step,
    StepRole,
)
from hybrid_agent.orchestrator.progress import NullProgressSink, ProgressSink
from hybrid_agent.orchestrator.prompts import (
    build_correction_prompt,
    build_review_prompt,
    with_prior_context,
)
from hybrid_agent.orchestrator.review import parse_review_response
from hybrid_agent.orchestrator.routing import RoutingDefaults, normalize_agent, resolve_routing

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Orchestrator:
    """Run tasks through the two-agent draft/review pipeline."""

    def __init__(  # noqa: PLR0913
        self,
        *,
        agents: Mapping[str, Agent],
        settings: Settings | None = None,
        routing_defaults: RoutingDefaults | None = None,
        progress_sink: ProgressSink | None = None,
        ledger: CostLedger | None = None,
        context_store: ContextStore | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.settings.validate()
        orchestrator_settings = self.settings.orchestrator
        self.agents: dict[str, Agent] = {
            normalize_agent(name): agent for name, agent in agents.items()
        }
        self.routing_defaults = routing_defaults or RoutingDefaults.from_settings(self.settings)
        self.thresholds = ComplexityThresholds(
            trivial=orchestrator_settings.complexity_trivial,
            standard=orchestrator_settings.complexity_standard,
            complex=orchestrator_settings.complexity_complex,
        )
        self.progress_sink: ProgressSink = progress_sink or NullProgressSink()
        self.ledger = ledger or CostLedger(agents=tuple(self.agents))
        self.context_store = context_store or ContextStore(orchestrator_settings.context_path)
        self._sessions: dict[str, Session] = {}
        self._sessions_lock = threading.Lock()

    def execute(self, prompt: str, options: ExecuteOptions | None = None) -> ExecutionResult:
        """Classify, route, and run one task to completion."""

        options = options or ExecuteOptions()
        if not prompt.strip():
            raise ValueError("Prompt must not be empty.")
        if options.context_length < 0:
            raise ValueError(f"Context length must be >= 0, got {options.context_length}")
        timeout_seconds = (
            options.timeout_seconds
            if options.timeout_seconds is not None
            else self.settings.orchestrator.call_timeout_seconds
        )
        if timeout_seconds <= 0:
            raise ValueError(f"Timeout must be > 0, got {timeout_seconds}")

        task_type = classify_task_type(prompt)
        complexity = classify_complexity(
            prompt,
            len(prompt) + options.context_length,
            self.thresholds,
        )
        routing = resolve_routing(
            task_type=task_type,
            complexity=complexity,
            defaults=self.routing_defaults,
            agent_override=options.force_agent,
            model_override=options.force_model,
            skip_review=options.skip_review,
        )
        drafter = self._require_available(routing.agent)
        reviewer = (
            self._require_available(self.routing_defaults.reviewer_agent)
            if routing.requires_review
            else None
        )

        session = Session(
            id=str(uuid4()),
            prompt=prompt,
            task_type=task_type,
            complexity=complexity,
            routing=routing,
            started_at=_utc_now(),
        )
        with self._sessions_lock:
            self._sessions[session.id] = session
        logger.info(
            "Session %s routed: task_type=%s complexity=%s agent=%s model=%s review=%s",
            session.id,
            task_type.value,
            complexity.value,
            routing.agent,
            routing.model,
            routing.requires_review,
        )
        self._emit(
            ProgressStage.ROUTING,
            f"Routing to {routing.agent} ({routing.model})",
            session_id=session.id,
            details={
                "task_type": task_type.value,
                "complexity": complexity.value,
                **routing.to_details(),
            },
        )

        try:
            result = self._run(
                session,
                drafter=drafter,
                reviewer=reviewer,
                message=with_prior_context(prompt=prompt, context=options.prior_context),
                timeout_seconds=timeout_seconds,
            )
        except Exception as error:
            session.mark_error(error=str(error) or type(error).__name__, completed_at=_utc_now())
            logger.warning(
                "Session %s failed after %d step(s): %s",
                session.id,
                len(session.steps),
                error,
            )
            self._emit(
                ProgressStage.ERROR,
                f"Execution failed: {error}",
                session_id=session.id,
                details={"error_type": type(error).__name__},
            )
            raise

        self._finalize(session, result)
        return _build_result(session)

    def get_session(self, session_id: str) -> Session | None:
        with self._sessions_lock:
            return self._sessions.get(session_id)

    def get_session_cost(self, session_id: str) -> float | None:
        session = self.get_session(session_id)
        if session is None:
            return None
        return session.cost

    def get_total_costs(self) -> CostSnapshot:
        return self.ledger.snapshot()

    def persist_context(self, session_id: str) -> Path | None:
        """Write the synopsis for a known session; unknown ids return None."""

        session = self.get_session(session_id)
        if session is None:
            return None
        return self.context_store.persist(session, self.ledger.snapshot())

    def load_context(self) -> str | None:
        return self.context_store.load()

    def _run(
        self,
        session: Session,
        *,
        drafter: Agent,
        reviewer: Agent | None,
        message: str,
        timeout_seconds: float,
    ) -> str:
        routing = session.routing
        self._emit(
            ProgressStage.EXECUTING,
            f"{routing.agent} is drafting",
            session_id=session.id,
            details={"agent": routing.agent, "model": routing.model},
        )
        response = self._call_agent(
            drafter,
            agent_name=routing.agent,
            session_id=session.id,
            model=routing.model,
            message=message,
            timeout_seconds=timeout_seconds,
        )
        self._record_step(
            session,
            agent=drafter,
            agent_name=routing.agent,
            model=routing.model,
            role=StepRole.DRAFT,
            response=response,
        )
        result = response.text
        if reviewer is None:
            return result

        marker = self.settings.orchestrator.approval_marker
        max_corrections = self.settings.orchestrator.max_correction_retries
        reviewer_name = self.routing_defaults.reviewer_agent
        reviewer_model = self.routing_defaults.reviewer_model()

        while True:
            session.review_iterations += 1
            review_attempt = session.review_iterations
            self._emit(
                ProgressStage.REVIEW,
                f"{reviewer_name} is reviewing (pass {review_attempt})",
                session_id=session.id,
                details={"agent": reviewer_name, "model": reviewer_model, "attempt": review_attempt},
            )
            response = self._call_agent(
                reviewer,
                agent_name=reviewer_name,
                session_id=f"{session.id}-review-{review_attempt}",
                model=reviewer_model,
                message=build_review_prompt(task=session.prompt, draft=result, marker=marker),
                timeout_seconds=timeout_seconds,
            )
            self._record_step(
                session,
                agent=reviewer,
                agent_name=reviewer_name,
                model=reviewer_model,
                role=StepRole.REVIEW,
                response=response,
                attempt=review_attempt,
            )
            verdict = parse_review_response(response.text, marker)
            if verdict.approved:
                session.approved = True
                if verdict.replacement_artifact is not None:
                    result = verdict.replacement_artifact
                logger.info("Session %s approved on review pass %d", session.id, review_attempt)
                return result
            if session.correction_iterations >= max_corrections:
                logger.info(
                    "Session %s not approved; correction budget of %d spent",
                    session.id,
                    max_corrections,
                )
                return result

            session.correction_iterations += 1
            correction_attempt = session.correction_iterations
            self._emit(
                ProgressStage.CORRECTION,
                f"{routing.agent} is correcting (attempt {correction_attempt}/{max_corrections})",
                session_id=session.id,
                details={"agent": routing.agent, "attempt": correction_attempt},
            )
            response = self._call_agent(
                drafter,
                agent_name=routing.agent,
                session_id=f"{session.id}-correct-{correction_attempt}",
                model=routing.model,
                message=build_correction_prompt(
                    task=session.prompt,
                    draft=result,
                    feedback=verdict.feedback,
                ),
                timeout_seconds=timeout_seconds,
            )
            self._record_step(
                session,
                agent=drafter,
                agent_name=routing.agent,
                model=routing.model,
                role=StepRole.CORRECTION,
                response=response,
                attempt=correction_attempt,
            )
            result = response.text
            if session.correction_iterations >= max_corrections:
                logger.info(
                    "Session %s reached %d correction(s) without approval",
                    session.id,
                    max_corrections,
                )
                return result

    def _finalize(self, session: Session, result: str) -> None:
        session.mark_complete(result=result, completed_at=_utc_now())
        if self.settings.orchestrator.persist_context:
            try:
                self.context_store.persist(session, self.ledger.snapshot())
            except Exception:
                logger.exception("Failed to persist context for session %s", session.id)
        logger.info(
            "Session %s complete: steps=%d cost=$%.4f approved=%s",
            session.id,
            len(session.steps),
            session.cost,
            session.approved,
        )
        self._emit(
            ProgressStage.COMPLETE,
            f"Done (${session.cost:.4f})",
            session_id=session.id,
            details={"cost": session.cost, "approved": session.approved},
        )

    def _require_available(self, agent_name: str) -> Agent:
        agent = self.agents.get(agent_name)
        if agent is None:
            raise AgentUnavailableError(
                f"No adapter registered for agent {agent_name!r}",
                agent=agent_name,
            )
        if not agent.is_available():
            logger.warning("Agent %s is not available", agent_name)
            raise AgentUnavailableError(f"Agent {agent_name!r} is not available", agent=agent_name)
        return agent

    def _call_agent(  # noqa: PLR0913
        self,
        agent: Agent,
        *,
        agent_name: str,
        session_id: str,
        model: str,
        message: str,
        timeout_seconds: float,
    ) -> AgentResponse:
        work_dir = self.settings.orchestrator.work_dir

        def call() -> AgentResponse:
            agent.spawn(session_id, model=model, work_dir=work_dir)
            return agent.send_and_wait(session_id, message, timeout_seconds=timeout_seconds)

        return _run_with_timeout(call, agent_name=agent_name, timeout_seconds=timeout_seconds)

    def _record_step(  # noqa: PLR0913
        self,
        session: Session,
        *,
        agent: Agent,
        agent_name: str,
        model: str,
        role: StepRole,
        response: AgentResponse,
        attempt: int = 0,
    ) -> None:
        usage = response.usage
        cost = agent.estimate_cost(usage.input_tokens, usage.output_tokens, model)
        session.add_step(
            Step(
                actor=agent_name,
                model=model,
                role=role,
                input_tokens=usage.input_tokens,
                output_tokens=usage.output_tokens,
                cost=cost,
                output=response.text,
                attempt=attempt,
            ),
        )
        self.ledger.record(
            agent=agent_name,
            input_tokens=usage.input_tokens,
            output_tokens=usage.output_tokens,
            cost=cost,
        )

    def _emit(
        self,
        stage: ProgressStage,
        message: str,
        *,
        session_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        event = ProgressEvent(
            stage=stage,
            message=message,
            session_id=session_id,
            details=details or {},
        )
        try:
            self.progress_sink.notify(event)
        except Exception:
            logger.exception("Progress sink failed for stage=%s", stage.value)


def _run_with_timeout(
    operation: Callable[[], T],
    *,
    agent_name: str,
    timeout_seconds: float,
) -> T:
    # Daemon thread: an abandoned call must not keep the interpreter alive at exit.
    outcome: dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["value"] = operation()
        except Exception as error:  # noqa: BLE001
            outcome["error"] = error

    worker = threading.Thread(target=_target, name=f"agent-{agent_name}", daemon=True)
    worker.start()
    worker.join(timeout_seconds)
    if worker.is_alive():
        raise AgentTimeoutError(
            f"{agent_name} did not respond within {timeout_seconds}s",
            agent=agent_name,
            timeout_seconds=timeout_seconds,
        )
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]


def _build_result(session: Session) -> ExecutionResult:
    return ExecutionResult(
        result=session.result or "",
        session_id=session.id,
        routing=session.routing,
        cost=session.cost,
        summary=ExecutionSummary(
            task_type=session.task_type,
            complexity=session.complexity,
            steps_count=len(session.steps),
            review_iterations=session.review_iterations,
            correction_iterations=session.correction_iterations,
            approved=session.approved,
            models_used=tuple(session.models_used()),
        ),
        steps=tuple(session.steps),
    )


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)
