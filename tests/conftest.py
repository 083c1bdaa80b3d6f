"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from hybrid_agent.config import OrchestratorSettings, Settings
from tests.fakes import ECHO_AGENT_COMMAND_TEMPLATE


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(orchestrator=OrchestratorSettings(work_dir=tmp_path))


@pytest.fixture()
def echo_agent_env(monkeypatch, tmp_path: Path) -> Path:
    """Point both CLI agents at the local echo agent and a temp work dir."""

    monkeypatch.setenv("HYBRID_AGENT_WORK_DIR", str(tmp_path))
    monkeypatch.setenv("HYBRID_AGENT_CLAUDE_COMMAND", ECHO_AGENT_COMMAND_TEMPLATE)
    monkeypatch.setenv("HYBRID_AGENT_GEMINI_COMMAND", ECHO_AGENT_COMMAND_TEMPLATE)
    monkeypatch.setenv("HYBRID_AGENT_CLAUDE_AUTH_METHOD", "api-key")
    monkeypatch.setenv("HYBRID_AGENT_GEMINI_AUTH_METHOD", "api-key")
    for name in (
        "HYBRID_AGENT_LLM_PRICING",
        "HYBRID_AGENT_ECHO_VERDICT",
        "HYBRID_AGENT_ECHO_EXIT_CODE",
        "HYBRID_AGENT_CONTEXT_FILE",
        "HYBRID_AGENT_PERSIST_CONTEXT",
        "HYBRID_AGENT_MAX_CORRECTION_RETRIES",
    ):
        monkeypatch.delenv(name, raising=False)
    return tmp_path
