"""Deterministic classification of failed CLI agent runs."""

from __future__ import annotations

from dataclasses import dataclass

from hybrid_agent.orchestrator.errors import FailureClass

TRANSIENT_EXIT_CODES: tuple[int, ...] = (137, 143)


@dataclass(slots=True, frozen=True)
class _FailureRule:
    failure_class: FailureClass
    name: str
    reason: str
    patterns: tuple[str, ...]


# Checked in order; the first rule with a matching pattern wins.
_PATTERN_RULES: tuple[_FailureRule, ...] = (
    _FailureRule(
        FailureClass.BILLING_OR_QUOTA,
        name="billing_or_quota",
        reason="billing_or_quota",
        patterns=(
            "quota", "resource_exhausted", "insufficient", "billing",
            "payment", "credits", "usage limit", "exceeded",
        ),
    ),
    _FailureRule(
        FailureClass.ACCESS_OR_AUTH,
        name="access_or_auth",
        reason="access_or_auth",
        patterns=(
            "unauthorized", "forbidden", "permission denied", "invalid api key",
            "authentication", "not logged in", "auth",
        ),
    ),
    _FailureRule(
        FailureClass.MODEL_NOT_AVAILABLE,
        name="model_not_available",
        reason="model_not_available",
        patterns=(
            "model not found", "unknown model", "unsupported model", "invalid model",
            "model is not available", "not available in your region",
        ),
    ),
    _FailureRule(
        FailureClass.BACKEND_TRANSIENT,
        name="rate_limit_transient",
        reason="rate_limited",
        patterns=("too many requests", "rate limit", "429", "please retry", "try again later"),
    ),
)
_NETWORK_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "temporarily unavailable", "temporary failure", "connection reset",
    "network error", "could not resolve host", "overloaded",
)


@dataclass(slots=True)
class AgentFailureClassification:
    """Failure class plus the rule and pattern that produced it."""

    failure_class: FailureClass
    reason_code: str
    matched_rule: str
    matched_pattern: str | None

    @property
    def transient(self) -> bool:
        return self.failure_class is FailureClass.BACKEND_TRANSIENT


def classify_agent_failure(
    *,
    agent: str,
    exit_code: int,
    stdout: str,
    stderr: str,
    transient_exit_codes: tuple[int, ...] = TRANSIENT_EXIT_CODES,
) -> AgentFailureClassification:
    """Classify a non-zero exit into a failure class the caller can act on."""

    output = f"{stderr}\n{stdout}".lower()

    for rule in _PATTERN_RULES:
        hit = next((pattern for pattern in rule.patterns if pattern in output), None)
        if hit is not None:
            return AgentFailureClassification(
                failure_class=rule.failure_class,
                reason_code=f"{agent}_{rule.reason}",
                matched_rule=rule.name,
                matched_pattern=hit,
            )

    hit = next((pattern for pattern in _NETWORK_TRANSIENT_PATTERNS if pattern in output), None)
    if hit is not None:
        matched_rule = "generic_transient"
    elif exit_code in transient_exit_codes:
        matched_rule = "transient_exit_code"
    else:
        return AgentFailureClassification(
            failure_class=FailureClass.BACKEND_NON_RETRYABLE,
            reason_code=f"{agent}_backend_non_retryable",
            matched_rule="fallback_non_retryable",
            matched_pattern=None,
        )
    return AgentFailureClassification(
        failure_class=FailureClass.BACKEND_TRANSIENT,
        reason_code=f"{agent}_backend_transient",
        matched_rule=matched_rule,
        matched_pattern=hit,
    )
