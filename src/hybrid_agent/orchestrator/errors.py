"""Error taxonomy for agent calls made by the orchestrator."""

from __future__ import annotations

from enum import Enum


class FailureClass(str, Enum):
    """Normalized failure classes for agent execution errors."""

    TIMEOUT = "timeout"
    BACKEND_TRANSIENT = "backend_transient"
    BACKEND_NON_RETRYABLE = "backend_non_retryable"
    BILLING_OR_QUOTA = "billing_or_quota"
    ACCESS_OR_AUTH = "access_or_auth"
    MODEL_NOT_AVAILABLE = "model_not_available"


class AgentError(RuntimeError):
    """Agent call error with retryability hint for the caller."""

    def __init__(self, message: str, *, agent: str, transient: bool) -> None:
        super().__init__(message)
        self.agent = agent
        self.transient = transient


class AgentUnavailableError(AgentError):
    """Selected agent failed its availability check."""

    def __init__(self, message: str, *, agent: str) -> None:
        super().__init__(message, agent=agent, transient=False)


class AgentExecutionError(AgentError):
    """Agent spawn or send failed."""

    def __init__(
        self,
        message: str,
        *,
        agent: str,
        transient: bool,
        failure_class: FailureClass = FailureClass.BACKEND_NON_RETRYABLE,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message, agent=agent, transient=transient)
        self.failure_class = failure_class
        self.exit_code = exit_code


class AgentTimeoutError(AgentExecutionError):
    """Agent call did not return within its timeout."""

    def __init__(self, message: str, *, agent: str, timeout_seconds: float) -> None:
        super().__init__(
            message,
            agent=agent,
            transient=True,
            failure_class=FailureClass.TIMEOUT,
            exit_code=124,
        )
        self.timeout_seconds = timeout_seconds
