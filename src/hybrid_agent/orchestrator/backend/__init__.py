"""Agent backend implementations."""

from hybrid_agent.orchestrator.backend.base import Agent, AgentResponse, AgentUsage
from hybrid_agent.orchestrator.backend.cli_backend import CliAgent, build_cli_agents

__all__ = [
    "Agent",
    "AgentResponse",
    "AgentUsage",
    "CliAgent",
    "build_cli_agents",
]
