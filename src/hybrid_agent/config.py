"""Runtime configuration for the hybrid agent orchestrator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CLAUDE_COMMAND_TEMPLATE = "claude -p --model {model} --output-format json -- {prompt}"
DEFAULT_GEMINI_COMMAND_TEMPLATE = "gemini --model {model} --output-format json --prompt {prompt}"
SUPPORTED_AUTH_METHODS = ("oauth", "api-key", "vertex")


@dataclass(slots=True)
class OrchestratorSettings:
    """Execution engine settings."""

    work_dir: Path = Path(".")
    context_file: str = "HYBRID_CONTEXT.md"
    max_correction_retries: int = 3
    call_timeout_seconds: float = 600.0
    complexity_trivial: int = 100
    complexity_standard: int = 5_000
    complexity_complex: int = 50_000
    approval_marker: str = "APPROVED"
    reviewer_agent: str = "claude"
    persist_context: bool = True

    @property
    def context_path(self) -> Path:
        return self.work_dir / self.context_file


@dataclass(slots=True)
class AgentSettings:
    """External CLI agent commands, models, and auth channels."""

    claude_command_template: str = DEFAULT_CLAUDE_COMMAND_TEMPLATE
    gemini_command_template: str = DEFAULT_GEMINI_COMMAND_TEMPLATE
    claude_model_fast: str = "claude-3-haiku-20240307"
    claude_model_quality: str = "claude-sonnet-4-5-20250514"
    claude_model_max: str = "claude-opus-4-5-20250514"
    gemini_model_fast: str = "gemini-2.5-flash"
    gemini_model_quality: str = "gemini-2.5-pro"
    gemini_model_max: str = "gemini-3-pro-preview"
    claude_auth_method: str = "api-key"
    gemini_auth_method: str = "oauth"


@dataclass(slots=True)
class PricingSettings:
    """Pricing overrides layered over the built-in tables."""

    overrides: str = ""


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    orchestrator: OrchestratorSettings = field(default_factory=OrchestratorSettings)
    agents: AgentSettings = field(default_factory=AgentSettings)
    pricing: PricingSettings = field(default_factory=PricingSettings)

    @classmethod
    def from_env(cls, work_dir: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local use."""

        return cls(
            orchestrator=OrchestratorSettings(
                work_dir=work_dir or Path(os.getenv("HYBRID_AGENT_WORK_DIR", ".")),
                context_file=os.getenv("HYBRID_AGENT_CONTEXT_FILE", "HYBRID_CONTEXT.md"),
                max_correction_retries=int(
                    os.getenv("HYBRID_AGENT_MAX_CORRECTION_RETRIES", "3"),
                ),
                call_timeout_seconds=float(
                    os.getenv("HYBRID_AGENT_CALL_TIMEOUT_SECONDS", "600"),
                ),
                complexity_trivial=int(os.getenv("HYBRID_AGENT_COMPLEXITY_TRIVIAL", "100")),
                complexity_standard=int(os.getenv("HYBRID_AGENT_COMPLEXITY_STANDARD", "5000")),
                complexity_complex=int(os.getenv("HYBRID_AGENT_COMPLEXITY_COMPLEX", "50000")),
                approval_marker=os.getenv("HYBRID_AGENT_APPROVAL_MARKER", "APPROVED"),
                reviewer_agent=os.getenv("HYBRID_AGENT_REVIEWER_AGENT", "claude"),
                persist_context=_env_bool("HYBRID_AGENT_PERSIST_CONTEXT", default=True),
            ),
            agents=AgentSettings(
                claude_command_template=os.getenv(
                    "HYBRID_AGENT_CLAUDE_COMMAND",
                    DEFAULT_CLAUDE_COMMAND_TEMPLATE,
                ),
                gemini_command_template=os.getenv(
                    "HYBRID_AGENT_GEMINI_COMMAND",
                    DEFAULT_GEMINI_COMMAND_TEMPLATE,
                ),
                claude_model_fast=os.getenv(
                    "HYBRID_AGENT_CLAUDE_MODEL_FAST",
                    "claude-3-haiku-20240307",
                ),
                claude_model_quality=os.getenv(
                    "HYBRID_AGENT_CLAUDE_MODEL_QUALITY",
                    "claude-sonnet-4-5-20250514",
                ),
                claude_model_max=os.getenv(
                    "HYBRID_AGENT_CLAUDE_MODEL_MAX",
                    "claude-opus-4-5-20250514",
                ),
                gemini_model_fast=os.getenv("HYBRID_AGENT_GEMINI_MODEL_FAST", "gemini-2.5-flash"),
                gemini_model_quality=os.getenv(
                    "HYBRID_AGENT_GEMINI_MODEL_QUALITY",
                    "gemini-2.5-pro",
                ),
                gemini_model_max=os.getenv(
                    "HYBRID_AGENT_GEMINI_MODEL_MAX",
                    "gemini-3-pro-preview",
                ),
                claude_auth_method=os.getenv("HYBRID_AGENT_CLAUDE_AUTH_METHOD", "api-key"),
                gemini_auth_method=os.getenv(
                    "HYBRID_AGENT_GEMINI_AUTH_METHOD",
                    _detect_gemini_auth_method(),
                ),
            ),
            pricing=PricingSettings(
                overrides=os.getenv("HYBRID_AGENT_LLM_PRICING", ""),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error on out-of-range values."""

        orchestrator = self.orchestrator
        if orchestrator.max_correction_retries < 0:
            raise ValueError("HYBRID_AGENT_MAX_CORRECTION_RETRIES must be >= 0.")
        if orchestrator.call_timeout_seconds <= 0:
            raise ValueError("HYBRID_AGENT_CALL_TIMEOUT_SECONDS must be > 0.")
        if not orchestrator.context_file.strip():
            raise ValueError("HYBRID_AGENT_CONTEXT_FILE must not be empty.")
        if not orchestrator.approval_marker.strip():
            raise ValueError("HYBRID_AGENT_APPROVAL_MARKER must not be empty.")
        if not (
            0
            < orchestrator.complexity_trivial
            < orchestrator.complexity_standard
            < orchestrator.complexity_complex
        ):
            raise ValueError(
                "Complexity thresholds must be positive and strictly increasing "
                "(TRIVIAL < STANDARD < COMPLEX).",
            )
        for agent, template in (
            ("claude", self.agents.claude_command_template),
            ("gemini", self.agents.gemini_command_template),
        ):
            if "{prompt}" not in template and "{prompt_file}" not in template:
                raise ValueError(
                    f"Command template for agent={agent!r} must include {{prompt}} "
                    "or {prompt_file}.",
                )
        for agent, method in (
            ("claude", self.agents.claude_auth_method),
            ("gemini", self.agents.gemini_auth_method),
        ):
            if method not in SUPPORTED_AUTH_METHODS:
                raise ValueError(
                    f"Unsupported auth method for agent={agent!r}: {method!r}. "
                    f"Use one of {SUPPORTED_AUTH_METHODS}.",
                )


def _detect_gemini_auth_method() -> str:
    if os.getenv("VERTEX_API_KEY"):
        return "vertex"
    if os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"):
        return "api-key"
    return "oauth"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
