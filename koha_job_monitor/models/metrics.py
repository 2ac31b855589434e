"""Job queue metrics dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SummaryRow:
    type: str
    status: str
    count: int


@dataclass(frozen=True)
class StuckJob:
    id: int
    type: str
    age_minutes: int


@dataclass
class Metrics:
    new_count: int = 0
    rate: int = 0
    summary: list[SummaryRow] = field(default_factory=list)
    stuck_jobs: list[StuckJob] = field(default_factory=list)

    @property
    def stuck_count(self) -> int:
        return len(self.stuck_jobs)
