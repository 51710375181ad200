"""Iteration trace recording for the borrowing power solver."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List

from borrowpower.models import IterationResult


@dataclass
class TraceEntry:
    iteration: int
    lvr: float
    rate: float
    max_loan: float
    timestamp: datetime


class IterationRecorder:
    """In-memory observer for ``calculate_borrowing_power_iterative``.

    Pass an instance as ``observer``; it is called once per solver round.
    """

    def __init__(self) -> None:
        self.entries: List[TraceEntry] = []

    def __call__(self, step: IterationResult) -> None:
        self.record(step)

    def record(self, step: IterationResult) -> None:
        """Record one solver round with the time it was observed."""
        self.entries.append(
            TraceEntry(
                iteration=step.iteration,
                lvr=step.lvr,
                rate=step.rate,
                max_loan=step.max_loan,
                timestamp=datetime.now(timezone.utc),
            )
        )

    def as_dict(self) -> List[dict]:
        """Return entries as dictionaries for persistence or inspection."""
        return [
            {
                "iteration": e.iteration,
                "lvr": e.lvr,
                "rate": e.rate,
                "max_loan": e.max_loan,
                "timestamp": e.timestamp.isoformat(),
            }
            for e in self.entries
        ]
