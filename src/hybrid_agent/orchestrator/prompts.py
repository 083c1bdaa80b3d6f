"""Prompt builders for the review and correction passes."""

from __future__ import annotations

REVIEW_PROMPT_TEMPLATE = """\
You are reviewing work produced by another engineer.

ORIGINAL TASK:
{task}

PROPOSED SOLUTION:
{draft}

Your job:
1. Check for bugs, security issues, or logic errors.
2. Verify it meets the requirements.
3. Check code style and best practices.

If the solution is GOOD:
- Reply with {marker} on its own line.
- Optionally follow it with one fenced code block holding a polished version.

If the solution has ISSUES:
- Do not write {marker}.
- List the specific problems so the author can fix them.

Be concise. Focus on what matters.
"""

CORRECTION_PROMPT_TEMPLATE = """\
A senior engineer reviewed your work and found issues:

{feedback}

Original task: {task}

Your previous version:
{draft}

Please provide a corrected version addressing ALL the feedback.
"""

PRIOR_CONTEXT_TEMPLATE = """\
Prior context from the previous session (for continuity, may be outdated):

{context}

---

{prompt}"""


def build_review_prompt(*, task: str, draft: str, marker: str) -> str:
    return REVIEW_PROMPT_TEMPLATE.format(task=task, draft=draft, marker=marker)


def build_correction_prompt(*, task: str, draft: str, feedback: str) -> str:
    return CORRECTION_PROMPT_TEMPLATE.format(task=task, draft=draft, feedback=feedback)


def with_prior_context(*, prompt: str, context: str | None) -> str:
    """Stitch a previously persisted synopsis in front of a new prompt."""

    if context is None or not context.strip():
        return prompt
    return PRIOR_CONTEXT_TEMPLATE.format(context=context.strip(), prompt=prompt)
