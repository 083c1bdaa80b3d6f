"""Table-driven agent and model routing for classified tasks."""

from __future__ import annotations

from dataclasses import dataclass, field

from hybrid_agent.config import Settings
from hybrid_agent.orchestrator.models import Complexity, RoutingDecision, TaskType

SUPERVISOR_AGENT = "claude"
WORKER_AGENT = "gemini"
SUPPORTED_AGENTS = (SUPERVISOR_AGENT, WORKER_AGENT)
SUPPORTED_PROFILES = ("fast", "quality", "max")


@dataclass(slots=True, frozen=True)
class RouteRule:
    """Routing table cell: which agent drafts, with which model profile."""

    agent: str
    profile: str
    requires_review: bool = False


def _build_default_route_table() -> dict[tuple[TaskType, Complexity], RouteRule]:
    table: dict[tuple[TaskType, Complexity], RouteRule] = {}
    for complexity in Complexity:
        # Reading always goes to the fast reader; only the model grows with the tier.
        table[(TaskType.READ_ANALYZE, complexity)] = RouteRule(
            agent=WORKER_AGENT,
            profile="fast" if complexity is Complexity.TRIVIAL else "quality",
        )
        table[(TaskType.ARCHITECTURE, complexity)] = RouteRule(
            agent=SUPERVISOR_AGENT,
            profile="quality",
        )
        table[(TaskType.QUESTION, complexity)] = (
            RouteRule(agent=SUPERVISOR_AGENT, profile="quality")
            if complexity is Complexity.CRITICAL
            else RouteRule(agent=WORKER_AGENT, profile="quality")
        )
        for code_task in (TaskType.DRAFT_CODE, TaskType.FIX_BUG):
            if complexity is Complexity.CRITICAL:
                rule = RouteRule(agent=SUPERVISOR_AGENT, profile="quality")
            elif complexity is Complexity.COMPLEX:
                rule = RouteRule(agent=WORKER_AGENT, profile="max", requires_review=True)
            else:
                rule = RouteRule(agent=WORKER_AGENT, profile="quality", requires_review=True)
            table[(code_task, complexity)] = rule
    return table


DEFAULT_ROUTE_TABLE = _build_default_route_table()

DEFAULT_MODELS: dict[str, dict[str, str]] = {
    SUPERVISOR_AGENT: {
        "fast": "claude-3-haiku-20240307",
        "quality": "claude-sonnet-4-5-20250514",
        "max": "claude-opus-4-5-20250514",
    },
    WORKER_AGENT: {
        "fast": "gemini-2.5-flash",
        "quality": "gemini-2.5-pro",
        "max": "gemini-3-pro-preview",
    },
}


@dataclass(slots=True, frozen=True)
class RoutingDefaults:
    """Read-only routing configuration injected into the router."""

    route_table: dict[tuple[TaskType, Complexity], RouteRule] = field(
        default_factory=lambda: dict(DEFAULT_ROUTE_TABLE),
    )
    models: dict[str, dict[str, str]] = field(
        default_factory=lambda: {agent: dict(models) for agent, models in DEFAULT_MODELS.items()},
    )
    reviewer_agent: str = SUPERVISOR_AGENT
    review_profile: str = "quality"

    @classmethod
    def from_settings(cls, settings: Settings) -> RoutingDefaults:
        """Build validated defaults from agent settings."""

        agents = settings.agents
        defaults = cls(
            models={
                SUPERVISOR_AGENT: {
                    "fast": agents.claude_model_fast,
                    "quality": agents.claude_model_quality,
                    "max": agents.claude_model_max,
                },
                WORKER_AGENT: {
                    "fast": agents.gemini_model_fast,
                    "quality": agents.gemini_model_quality,
                    "max": agents.gemini_model_max,
                },
            },
            reviewer_agent=normalize_agent(settings.orchestrator.reviewer_agent),
        )
        defaults.validate()
        return defaults

    def validate(self) -> None:
        """Raise `ValueError` unless every table cell resolves to a concrete model."""

        _validate_supported_agent(self.reviewer_agent)
        _validate_supported_profile(self.review_profile)
        for task_type in TaskType:
            for complexity in Complexity:
                rule = self.route_table.get((task_type, complexity))
                if rule is None:
                    raise ValueError(
                        "Routing table has no entry for "
                        f"task_type={task_type.value!r}, complexity={complexity.value!r}",
                    )
                _validate_supported_agent(rule.agent)
                _validate_supported_profile(rule.profile)
        for agent in SUPPORTED_AGENTS:
            profile_models = self.models.get(agent, {})
            for profile in SUPPORTED_PROFILES:
                if not profile_models.get(profile, "").strip():
                    raise ValueError(
                        f"Empty model id for agent={agent!r}, profile={profile!r}",
                    )

    def model_for(self, agent: str, profile: str) -> str:
        return self.models[agent][profile].strip()

    def reviewer_model(self) -> str:
        return self.model_for(self.reviewer_agent, self.review_profile)


DEFAULT_ROUTING = RoutingDefaults()


def select_model(
    task_type: TaskType,
    complexity: Complexity,
    defaults: RoutingDefaults = DEFAULT_ROUTING,
) -> RoutingDecision:
    """Look up the routing decision for a classified task."""

    rule = defaults.route_table[(task_type, complexity)]
    return RoutingDecision(
        agent=rule.agent,
        model=defaults.model_for(rule.agent, rule.profile),
        requires_review=rule.requires_review and rule.agent != defaults.reviewer_agent,
        profile=rule.profile,
    )


def resolve_routing(  # noqa: PLR0913
    *,
    task_type: TaskType,
    complexity: Complexity,
    defaults: RoutingDefaults = DEFAULT_ROUTING,
    agent_override: str | None = None,
    model_override: str | None = None,
    skip_review: bool = False,
) -> RoutingDecision:
    """Resolve routing, letting forced agent/model bypass the table."""

    selected = select_model(task_type, complexity, defaults)
    if agent_override is None and model_override is None and not skip_review:
        return selected

    agent = selected.agent
    if agent_override is not None:
        agent = normalize_agent(agent_override)
        _validate_supported_agent(agent)

    if model_override is not None:
        model = model_override.strip()
        if not model:
            raise ValueError("Forced model id must not be empty.")
    else:
        model = defaults.model_for(agent, selected.profile)

    rule = defaults.route_table[(task_type, complexity)]
    requires_review = (
        rule.requires_review and agent != defaults.reviewer_agent and not skip_review
    )
    return RoutingDecision(
        agent=agent,
        model=model,
        requires_review=requires_review,
        profile=selected.profile,
        forced=agent_override is not None or model_override is not None,
    )


def normalize_agent(value: str) -> str:
    return value.strip().lower()


def _validate_supported_agent(agent: str) -> None:
    if agent in SUPPORTED_AGENTS:
        return
    raise ValueError(f"Unsupported agent: {agent!r}. Use claude or gemini.")


def _validate_supported_profile(profile: str) -> None:
    if profile not in SUPPORTED_PROFILES:
        raise ValueError(
            f"Unsupported model profile: {profile!r}. Use one of {SUPPORTED_PROFILES}.",
        )
