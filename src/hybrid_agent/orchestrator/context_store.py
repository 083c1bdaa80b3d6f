"""Single-slot, human-readable session synopsis persisted between invocations."""

from __future__ import annotations

import os
import tempfile
import threading
from pathlib import Path

from hybrid_agent.orchestrator.ledger import CostSnapshot
from hybrid_agent.orchestrator.models import Session

RESULT_PREVIEW_CHARS = 2_000


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates 0600 files; the synopsis gets the mode a plain open() would give it.
_SYNOPSIS_FILE_MODE = 0o666 & ~_current_umask()


class ContextStore:
    """Writes and reads the synopsis file at a fixed path."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = threading.Lock()

    def persist(self, session: Session, totals: CostSnapshot) -> Path:
        """Overwrite the synopsis with this session; readers never see a partial file."""

        content = render_synopsis(session, totals)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock:
            descriptor, temp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.",
                suffix=".tmp",
                dir=self.path.parent,
            )
            try:
                with os.fdopen(descriptor, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.chmod(temp_name, _SYNOPSIS_FILE_MODE)
                os.replace(temp_name, self.path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        return self.path

    def load(self) -> str | None:
        """Return raw synopsis text, or None when nothing was persisted yet."""

        if not self.path.exists():
            return None
        return self.path.read_text("utf-8")


def render_synopsis(session: Session, totals: CostSnapshot) -> str:
    lines = [
        "# Hybrid Agent Context",
        "<!-- Recovery header: the previous hybrid task is summarized below. -->",
        "",
        f"## Current Session: {session.id}",
        "",
        f"**Status:** {session.status.value}",
        f"**Task Type:** {session.task_type.value}",
        f"**Complexity:** {session.complexity.value}",
        f"**Routing:** {session.routing.agent} ({session.routing.model}), "
        f"review={'yes' if session.routing.requires_review else 'no'}",
        f"**Approved:** {'yes' if session.approved else 'no'}",
        f"**Started:** {session.started_at.isoformat()}",
    ]
    if session.completed_at is not None:
        lines.append(f"**Completed:** {session.completed_at.isoformat()}")
    if session.error:
        lines.append(f"**Error:** {session.error}")

    lines.extend(["", "### Original Task", "```", session.prompt, "```", "", "### Execution Steps"])
    for index, step in enumerate(session.steps, start=1):
        attempt = f" #{step.attempt}" if step.attempt else ""
        lines.append(
            f"{index}. **{step.actor}** ({step.model}) - {step.role.value}{attempt}: "
            f"{step.input_tokens} in / {step.output_tokens} out, ${step.cost:.4f}",
        )
    if not session.steps:
        lines.append("(none)")

    lines.extend(["", "### Result"])
    if session.result is None:
        lines.append("In progress...")
    else:
        preview = session.result[:RESULT_PREVIEW_CHARS]
        if len(session.result) > RESULT_PREVIEW_CHARS:
            preview += "\n...(truncated)"
        lines.extend(["```", preview, "```"])

    lines.extend(["", "### Cost Summary", f"- This session: ${session.cost:.4f}"])
    for agent, amount in sorted(session.cost_by_actor().items()):
        lines.append(f"  - {agent}: ${amount:.4f}")
    for agent, entry in sorted(totals.entries.items()):
        lines.append(
            f"- {agent} (process total): ${entry.cost:.4f} "
            f"({entry.input_tokens} in / {entry.output_tokens} out)",
        )
    lines.append(f"- Total: ${totals.total:.4f}")
    return "\n".join(lines) + "\n"
