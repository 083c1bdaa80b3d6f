"""Process-wide per-agent token and cost accumulator."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field


@dataclass(slots=True)
class LedgerEntry:
    """Running totals for one agent."""

    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0


@dataclass(slots=True, frozen=True)
class CostSnapshot:
    """Point-in-time copy of all ledger entries plus the grand total."""

    entries: dict[str, LedgerEntry] = field(default_factory=dict)
    total: float = 0.0

    def entry(self, agent: str) -> LedgerEntry:
        return self.entries.get(agent, LedgerEntry())


class CostLedger:
    """Lock-protected accumulator; totals only ever grow."""

    def __init__(self, agents: tuple[str, ...] = ()) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, LedgerEntry] = {agent: LedgerEntry() for agent in agents}

    def record(self, *, agent: str, input_tokens: int, output_tokens: int, cost: float) -> None:
        if input_tokens < 0 or output_tokens < 0 or cost < 0:
            raise ValueError(
                "Ledger increments must be non-negative: "
                f"agent={agent!r} input={input_tokens} output={output_tokens} cost={cost}",
            )
        with self._lock:
            entry = self._entries.setdefault(agent, LedgerEntry())
            entry.input_tokens += input_tokens
            entry.output_tokens += output_tokens
            entry.cost += cost

    def snapshot(self) -> CostSnapshot:
        with self._lock:
            entries = {
                agent: LedgerEntry(
                    input_tokens=entry.input_tokens,
                    output_tokens=entry.output_tokens,
                    cost=entry.cost,
                )
                for agent, entry in self._entries.items()
            }
        return CostSnapshot(entries=entries, total=sum(entry.cost for entry in entries.values()))
