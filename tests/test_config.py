from __future__ import annotations

from pathlib import Path

import allure
import pytest

from hybrid_agent.config import Settings

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Environment Settings"),
]

_ENV_NAMES = (
    "HYBRID_AGENT_WORK_DIR",
    "HYBRID_AGENT_CONTEXT_FILE",
    "HYBRID_AGENT_MAX_CORRECTION_RETRIES",
    "HYBRID_AGENT_CALL_TIMEOUT_SECONDS",
    "HYBRID_AGENT_PERSIST_CONTEXT",
    "HYBRID_AGENT_GEMINI_AUTH_METHOD",
    "HYBRID_AGENT_LLM_PRICING",
    "VERTEX_API_KEY",
    "GEMINI_API_KEY",
    "GOOGLE_API_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_valid() -> None:
    settings = Settings.from_env()

    settings.validate()
    assert settings.orchestrator.max_correction_retries == 3
    assert settings.orchestrator.context_path == Path(".") / "HYBRID_CONTEXT.md"
    assert settings.orchestrator.persist_context is True
    assert settings.agents.gemini_auth_method == "oauth"


def test_from_env_reads_overrides(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYBRID_AGENT_WORK_DIR", str(tmp_path))
    monkeypatch.setenv("HYBRID_AGENT_CONTEXT_FILE", "ctx.md")
    monkeypatch.setenv("HYBRID_AGENT_MAX_CORRECTION_RETRIES", "1")
    monkeypatch.setenv("HYBRID_AGENT_CALL_TIMEOUT_SECONDS", "2.5")
    monkeypatch.setenv("HYBRID_AGENT_PERSIST_CONTEXT", "off")
    monkeypatch.setenv("HYBRID_AGENT_LLM_PRICING", "claude:*:1:2")

    settings = Settings.from_env()

    assert settings.orchestrator.context_path == tmp_path / "ctx.md"
    assert settings.orchestrator.max_correction_retries == 1
    assert settings.orchestrator.call_timeout_seconds == 2.5
    assert settings.orchestrator.persist_context is False
    assert settings.pricing.overrides == "claude:*:1:2"


def test_explicit_work_dir_wins_over_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("HYBRID_AGENT_WORK_DIR", "/somewhere/else")

    assert Settings.from_env(work_dir=tmp_path).orchestrator.work_dir == tmp_path


@pytest.mark.parametrize(
    ("env", "expected"),
    [
        ({"VERTEX_API_KEY": "v"}, "vertex"),
        ({"GEMINI_API_KEY": "g"}, "api-key"),
        ({"GOOGLE_API_KEY": "g"}, "api-key"),
        ({}, "oauth"),
    ],
)
def test_gemini_auth_method_detection(monkeypatch, env: dict[str, str], expected: str) -> None:
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    assert Settings.from_env().agents.gemini_auth_method == expected


def test_invalid_boolean_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("HYBRID_AGENT_PERSIST_CONTEXT", "maybe")

    with pytest.raises(ValueError, match="Invalid boolean"):
        Settings.from_env()


def test_validate_rejects_bad_values() -> None:
    settings = Settings()
    settings.orchestrator.max_correction_retries = -1
    with pytest.raises(ValueError, match="MAX_CORRECTION_RETRIES"):
        settings.validate()

    settings = Settings()
    settings.orchestrator.complexity_standard = 50
    with pytest.raises(ValueError, match="strictly increasing"):
        settings.validate()

    settings = Settings()
    settings.agents.gemini_command_template = "gemini --model {model}"
    with pytest.raises(ValueError, match="must include"):
        settings.validate()

    settings = Settings()
    settings.agents.claude_auth_method = "password"
    with pytest.raises(ValueError, match="Unsupported auth method"):
        settings.validate()
