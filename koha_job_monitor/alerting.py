"""Alert conditions for the background job queue and their state transitions."""

from __future__ import annotations

import logging
from typing import Protocol

from . import view
from .errors import NotificationError
from .models.alerts import (
    NEW_COUNT_KEY,
    RATE_KEY,
    STUCK_RUNNING_KEY,
    AlertCondition,
    AlertPolicy,
    AlertSnapshot,
    EvaluationResult,
    Thresholds,
)
from .models.metrics import Metrics

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def send(self, text: str) -> None: ...


def build_conditions(
    metrics: Metrics,
    snapshot: AlertSnapshot,
    thresholds: Thresholds,
    instance: str,
) -> list[AlertCondition]:
    """Return the backlog, rate and stuck conditions in evaluation order."""
    stuck_jobs = metrics.stuck_jobs if thresholds.stuck_check_enabled else []
    max_age = thresholds.max_running_age_minutes

    return [
        AlertCondition(
            key=NEW_COUNT_KEY,
            is_active=metrics.new_count > thresholds.max_new_jobs,
            was_active=snapshot.is_active(NEW_COUNT_KEY),
            activate_message=view.backlog_alert(
                instance, metrics.new_count, thresholds.max_new_jobs
            ),
            recover_message=view.backlog_recovered(instance, metrics.new_count),
        ),
        AlertCondition(
            key=RATE_KEY,
            is_active=metrics.rate > thresholds.max_rate,
            was_active=snapshot.is_active(RATE_KEY),
            activate_message=view.rate_alert(
                instance,
                metrics.rate,
                thresholds.rate_window_minutes,
                thresholds.max_rate,
            ),
            recover_message=view.rate_recovered(instance, metrics.rate),
        ),
        AlertCondition(
            key=STUCK_RUNNING_KEY,
            is_active=len(stuck_jobs) > 0,
            was_active=snapshot.is_active(STUCK_RUNNING_KEY),
            activate_message=view.stuck_jobs_alert(stuck_jobs, max_age),
            recover_message=view.stuck_jobs_recovered(max_age),
        ),
    ]


def transition(
    condition: AlertCondition, policy: AlertPolicy = AlertPolicy.REPEAT
) -> tuple[str | None, bool]:
    """Return (message to emit or None, new active state) for one condition."""
    if condition.is_active:
        if policy is AlertPolicy.EDGE and condition.was_active:
            return None, True
        return condition.activate_message, True
    if condition.was_active:
        return condition.recover_message, False
    return None, False


def deliver(sink: NotificationSink | None, text: str) -> bool:
    """Send text through the sink; failures are logged and reported as False."""
    if sink is None:
        return False
    try:
        sink.send(text)
    except NotificationError as e:
        logger.warning("Failed to deliver notification: %s", e)
        return False
    return True


def evaluate(
    metrics: Metrics,
    snapshot: AlertSnapshot,
    thresholds: Thresholds,
    sink: NotificationSink | None,
    instance: str,
    policy: AlertPolicy = AlertPolicy.REPEAT,
) -> EvaluationResult:
    """Evaluate every alert condition against the previous snapshot.

    Emitted messages are sent through ``sink`` in evaluation order. The input
    snapshot is left untouched; the returned result carries the snapshot to
    persist, which always holds all alert keys whether or not anything fired.
    """
    result = EvaluationResult(snapshot=AlertSnapshot())

    for condition in build_conditions(metrics, snapshot, thresholds, instance):
        message, active = transition(condition, policy)
        logger.debug(
            "Condition %s: active=%s was_active=%s emit=%s",
            condition.key,
            condition.is_active,
            condition.was_active,
            message is not None,
        )
        result.snapshot = result.snapshot.with_state(condition.key, active)
        if message is None:
            continue
        result.alerted = True
        result.messages.append(message)
        deliver(sink, message)

    return result
