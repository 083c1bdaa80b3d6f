"""Hybrid claude/gemini agent orchestrator."""

__version__ = "0.1.0"
