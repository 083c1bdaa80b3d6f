from __future__ import annotations

import allure

from hybrid_agent.orchestrator.errors import FailureClass
from hybrid_agent.orchestrator.failure_classifier import classify_agent_failure

pytestmark = [
    allure.epic("Agent Backends"),
    allure.feature("Failure Classification"),
]


def test_billing_errors_take_precedence() -> None:
    result = classify_agent_failure(
        agent="gemini",
        exit_code=1,
        stdout="",
        stderr="RESOURCE_EXHAUSTED: quota exceeded, please retry later",
    )

    assert result.failure_class is FailureClass.BILLING_OR_QUOTA
    assert result.reason_code == "gemini_billing_or_quota"
    assert result.transient is False


def test_auth_errors_are_non_retryable() -> None:
    result = classify_agent_failure(
        agent="claude",
        exit_code=1,
        stdout="Invalid API key. Please run /login",
        stderr="",
    )

    assert result.failure_class is FailureClass.ACCESS_OR_AUTH
    assert result.matched_pattern == "invalid api key"


def test_model_not_available() -> None:
    result = classify_agent_failure(
        agent="gemini",
        exit_code=2,
        stdout="",
        stderr="Error: model not found: gemini-9",
    )

    assert result.failure_class is FailureClass.MODEL_NOT_AVAILABLE


def test_rate_limit_is_transient() -> None:
    result = classify_agent_failure(
        agent="claude",
        exit_code=1,
        stdout="",
        stderr="HTTP 429 Too Many Requests",
    )

    assert result.failure_class is FailureClass.BACKEND_TRANSIENT
    assert result.matched_rule == "rate_limit_transient"
    assert result.transient is True


def test_signal_exit_codes_are_transient() -> None:
    result = classify_agent_failure(agent="gemini", exit_code=137, stdout="", stderr="")

    assert result.failure_class is FailureClass.BACKEND_TRANSIENT
    assert result.matched_rule == "transient_exit_code"


def test_network_errors_are_transient() -> None:
    result = classify_agent_failure(
        agent="gemini",
        exit_code=1,
        stdout="",
        stderr="connection reset by peer",
    )

    assert result.matched_rule == "generic_transient"


def test_unknown_failures_are_non_retryable() -> None:
    result = classify_agent_failure(agent="claude", exit_code=1, stdout="boom", stderr="")

    assert result.failure_class is FailureClass.BACKEND_NON_RETRYABLE
    assert result.matched_rule == "fallback_non_retryable"
    assert result.matched_pattern is None
