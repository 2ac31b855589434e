"""Metrics for Koha's ``background_jobs`` table, read through SQLAlchemy.

All values that come from the command line (queue, window, age) are passed as
bound parameters. The current time is read from the database, and the window
and age cutoffs are computed in Python from it, so the same statements run on
MySQL/MariaDB in production and SQLite in tests.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from sqlalchemy import DateTime, Integer, String, bindparam, func, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .errors import MetricsError
from .models.metrics import Metrics, StuckJob, SummaryRow

logger = logging.getLogger(__name__)

_DB_NOW_SQL = select(func.now())

_NEW_COUNT_SQL = text(
    "SELECT COUNT(*) FROM background_jobs WHERE status = 'new' AND queue = :queue"
)

_RATE_SQL = text(
    """
    SELECT COUNT(*)
      FROM background_jobs
     WHERE status = 'new'
       AND queue = :queue
       AND enqueued_on > :since
    """
).bindparams(bindparam("since", type_=DateTime()))

_STUCK_SQL = (
    text(
        """
        SELECT id, type, started_on
          FROM background_jobs
         WHERE status = 'running'
           AND queue = :queue
           AND started_on IS NOT NULL
           AND started_on <= :cutoff
         ORDER BY id
        """
    )
    .bindparams(bindparam("cutoff", type_=DateTime()))
    .columns(id=Integer(), type=String(), started_on=DateTime())
)

_SUMMARY_SQL = text(
    """
    SELECT type, status, COUNT(*) AS c
      FROM background_jobs
     WHERE queue = :queue
  GROUP BY type, status
  ORDER BY type, status
    """
)


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


class JobMetricsSource:
    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def get_metrics(
        self,
        queue: str,
        rate_window_minutes: int,
        max_running_age_minutes: int,
        now: datetime | None = None,
    ) -> Metrics:
        """Return current queue metrics; zero counts when nothing matches.

        Stuck jobs are only queried when ``max_running_age_minutes`` is
        positive. A job is stuck when the whole minutes elapsed since
        ``started_on`` exceed the limit.

        ``now`` defaults to the database clock, the one Koha stamps
        ``enqueued_on`` and ``started_on`` with.
        """
        try:
            with self.engine.connect() as conn:
                if now is None:
                    now = conn.execute(_DB_NOW_SQL).scalar()
                since = now - timedelta(minutes=rate_window_minutes)
                cutoff = now - timedelta(minutes=max_running_age_minutes + 1)

                new_count = conn.execute(_NEW_COUNT_SQL, {"queue": queue}).scalar()
                rate = conn.execute(_RATE_SQL, {"queue": queue, "since": since}).scalar()

                stuck_jobs: list[StuckJob] = []
                if max_running_age_minutes > 0:
                    for row in conn.execute(
                        _STUCK_SQL, {"queue": queue, "cutoff": cutoff}
                    ):
                        stuck_jobs.append(
                            StuckJob(
                                id=int(row.id),
                                type=str(row.type),
                                age_minutes=_whole_minutes(now - row.started_on),
                            )
                        )

                summary = [
                    SummaryRow(type=str(row.type), status=str(row.status), count=int(row.c))
                    for row in conn.execute(_SUMMARY_SQL, {"queue": queue})
                ]
        except SQLAlchemyError as e:
            raise MetricsError(f"Failed to query background_jobs: {e}") from e

        metrics = Metrics(
            new_count=int(new_count or 0),
            rate=int(rate or 0),
            summary=summary,
            stuck_jobs=stuck_jobs,
        )
        logger.info(
            "Queue %s: new=%d rate=%d stuck=%d",
            queue,
            metrics.new_count,
            metrics.rate,
            metrics.stuck_count,
        )
        return metrics


__all__ = ["JobMetricsSource"]
