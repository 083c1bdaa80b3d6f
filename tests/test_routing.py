from __future__ import annotations

from dataclasses import replace

import allure
import pytest

from hybrid_agent.config import Settings
from hybrid_agent.orchestrator.models import Complexity, TaskType
from hybrid_agent.orchestrator.routing import (
    DEFAULT_ROUTING,
    RouteRule,
    RoutingDefaults,
    resolve_routing,
    select_model,
)

pytestmark = [
    allure.epic("Routing"),
    allure.feature("Agent & Model Selection"),
]


def _defaults() -> RoutingDefaults:
    return RoutingDefaults(
        models={
            "claude": {"fast": "claude-fast", "quality": "claude-quality", "max": "claude-max"},
            "gemini": {"fast": "gemini-fast", "quality": "gemini-quality", "max": "gemini-max"},
        },
    )


def test_select_model_is_total_over_task_types_and_complexities() -> None:
    defaults = _defaults()
    defaults.validate()

    for task_type in TaskType:
        for complexity in Complexity:
            decision = select_model(task_type, complexity, defaults)
            assert decision.agent in {"claude", "gemini"}
            assert decision.model


def test_read_analyze_always_routes_to_gemini() -> None:
    defaults = _defaults()

    models = {
        complexity: select_model(TaskType.READ_ANALYZE, complexity, defaults)
        for complexity in Complexity
    }

    assert {decision.agent for decision in models.values()} == {"gemini"}
    assert models[Complexity.TRIVIAL].model == "gemini-fast"
    assert models[Complexity.CRITICAL].model == "gemini-quality"
    assert not any(decision.requires_review for decision in models.values())


def test_code_tasks_are_drafted_by_gemini_and_reviewed() -> None:
    defaults = _defaults()

    standard = select_model(TaskType.DRAFT_CODE, Complexity.STANDARD, defaults)
    complex_fix = select_model(TaskType.FIX_BUG, Complexity.COMPLEX, defaults)
    critical = select_model(TaskType.DRAFT_CODE, Complexity.CRITICAL, defaults)

    assert (standard.agent, standard.model, standard.requires_review) == (
        "gemini",
        "gemini-quality",
        True,
    )
    assert (complex_fix.model, complex_fix.profile) == ("gemini-max", "max")
    assert (critical.agent, critical.requires_review) == ("claude", False)


def test_architecture_and_critical_questions_go_to_claude() -> None:
    defaults = _defaults()

    assert select_model(TaskType.ARCHITECTURE, Complexity.TRIVIAL, defaults).agent == "claude"
    assert select_model(TaskType.QUESTION, Complexity.CRITICAL, defaults).agent == "claude"
    assert select_model(TaskType.QUESTION, Complexity.STANDARD, defaults).agent == "gemini"


def test_select_model_has_no_side_effects() -> None:
    defaults = _defaults()
    before = dict(defaults.route_table)

    first = select_model(TaskType.FIX_BUG, Complexity.TRIVIAL, defaults)
    second = select_model(TaskType.FIX_BUG, Complexity.TRIVIAL, defaults)

    assert first == second
    assert defaults.route_table == before


def test_review_is_not_required_when_reviewer_drafts() -> None:
    defaults = replace(_defaults(), reviewer_agent="gemini")

    decision = select_model(TaskType.DRAFT_CODE, Complexity.STANDARD, defaults)

    assert decision.agent == "gemini"
    assert decision.requires_review is False


def test_resolve_routing_without_overrides_matches_table() -> None:
    defaults = _defaults()

    assert resolve_routing(
        task_type=TaskType.DRAFT_CODE,
        complexity=Complexity.STANDARD,
        defaults=defaults,
    ) == select_model(TaskType.DRAFT_CODE, Complexity.STANDARD, defaults)


def test_forced_agent_uses_its_model_for_table_profile() -> None:
    decision = resolve_routing(
        task_type=TaskType.DRAFT_CODE,
        complexity=Complexity.COMPLEX,
        defaults=_defaults(),
        agent_override="Claude",
    )

    assert decision.agent == "claude"
    assert decision.model == "claude-max"
    assert decision.forced is True
    assert decision.requires_review is False


def test_forced_model_keeps_table_agent_and_review() -> None:
    decision = resolve_routing(
        task_type=TaskType.FIX_BUG,
        complexity=Complexity.TRIVIAL,
        defaults=_defaults(),
        model_override="gemini-custom",
    )

    assert (decision.agent, decision.model) == ("gemini", "gemini-custom")
    assert decision.requires_review is True


def test_skip_review_clears_review_requirement() -> None:
    decision = resolve_routing(
        task_type=TaskType.DRAFT_CODE,
        complexity=Complexity.STANDARD,
        defaults=_defaults(),
        skip_review=True,
    )

    assert decision.requires_review is False
    assert decision.forced is False


def test_resolve_routing_rejects_unknown_agent_and_empty_model() -> None:
    with pytest.raises(ValueError, match="Unsupported agent"):
        resolve_routing(
            task_type=TaskType.QUESTION,
            complexity=Complexity.TRIVIAL,
            defaults=_defaults(),
            agent_override="codex",
        )
    with pytest.raises(ValueError, match="must not be empty"):
        resolve_routing(
            task_type=TaskType.QUESTION,
            complexity=Complexity.TRIVIAL,
            defaults=_defaults(),
            model_override="  ",
        )


def test_validate_rejects_incomplete_route_table() -> None:
    table = dict(_defaults().route_table)
    del table[(TaskType.QUESTION, Complexity.TRIVIAL)]

    with pytest.raises(ValueError, match="no entry"):
        replace(_defaults(), route_table=table).validate()


def test_validate_rejects_unknown_profile_and_empty_model() -> None:
    table = dict(_defaults().route_table)
    table[(TaskType.QUESTION, Complexity.TRIVIAL)] = RouteRule(agent="gemini", profile="turbo")
    with pytest.raises(ValueError, match="profile"):
        replace(_defaults(), route_table=table).validate()

    models = {"claude": dict(_defaults().models["claude"]), "gemini": {"fast": "", "quality": "q"}}
    with pytest.raises(ValueError, match="Empty model id"):
        replace(_defaults(), models=models).validate()


def test_routing_defaults_from_settings_use_configured_models() -> None:
    settings = Settings()
    settings.agents.gemini_model_max = "gemini-custom-max"
    settings.orchestrator.reviewer_agent = " CLAUDE "

    defaults = RoutingDefaults.from_settings(settings)

    assert defaults.reviewer_agent == "claude"
    assert defaults.model_for("gemini", "max") == "gemini-custom-max"
    assert defaults.reviewer_model() == settings.agents.claude_model_quality


def test_default_routing_is_valid() -> None:
    DEFAULT_ROUTING.validate()
