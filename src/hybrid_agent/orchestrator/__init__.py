"""Hybrid two-agent orchestration.

A task is classified by a keyword/length heuristic, routed to either the
supervisor agent (claude) or the fast reader/drafter (gemini), and optionally
passed through a bounded draft -> review -> correction loop in which the
supervisor reviews the drafter's output. Token cost is accumulated per agent
for the lifetime of the process, and the last session is written to a
Markdown synopsis so a later invocation can pick up where this one stopped.

The agents themselves are external CLI programs; this package only speaks to
them through the small `Agent` protocol in ``backend.base``.
"""
