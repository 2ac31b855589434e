"""Alert snapshot/condition dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

NEW_COUNT_KEY = "new_count"
RATE_KEY = "rate"
STUCK_RUNNING_KEY = "stuck_running"

ALERT_KEYS: tuple[str, ...] = (NEW_COUNT_KEY, RATE_KEY, STUCK_RUNNING_KEY)


class AlertPolicy(str, Enum):
    """When an active condition produces a message.

    REPEAT sends the activate message on every run while the condition holds.
    EDGE sends it only on the run where the condition becomes active.
    """

    REPEAT = "repeat"
    EDGE = "edge"


@dataclass(frozen=True)
class Thresholds:
    max_new_jobs: int = 100
    max_rate: int = 200
    rate_window_minutes: int = 1
    max_running_age_minutes: int = 0  # 0 disables the stuck check

    @property
    def stuck_check_enabled(self) -> bool:
        return self.max_running_age_minutes > 0


@dataclass(frozen=True)
class AlertCondition:
    key: str
    is_active: bool
    was_active: bool
    activate_message: str
    recover_message: str


@dataclass
class AlertSnapshot:
    """Which alert conditions were active as of the last run."""

    states: dict[str, bool] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "AlertSnapshot":
        states: dict[str, bool] = {}
        for key in ALERT_KEYS:
            if key in data:
                states[key] = _coerce_flag(data[key])
        return cls(states=states)

    def is_active(self, key: str) -> bool:
        return self.states.get(key, False)

    def with_state(self, key: str, active: bool) -> "AlertSnapshot":
        states = dict(self.states)
        states[key] = bool(active)
        return AlertSnapshot(states=states)

    def to_dict(self) -> dict[str, int]:
        return {key: int(self.is_active(key)) for key in ALERT_KEYS}


def _coerce_flag(value: object) -> bool:
    if isinstance(value, str):
        text = value.strip()
        try:
            return bool(int(text))
        except ValueError:
            return text.lower() in {"true", "yes", "on"}
    try:
        return bool(int(value))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return bool(value)


@dataclass
class EvaluationResult:
    snapshot: AlertSnapshot
    alerted: bool = False
    messages: list[str] = field(default_factory=list)
