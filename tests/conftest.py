"""Shared test fixtures and dummy classes."""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table

from koha_job_monitor.errors import NotificationError
from koha_job_monitor.models.alerts import AlertSnapshot
from koha_job_monitor.models.metrics import Metrics

# Subset of Koha's background_jobs schema used by the queries.
metadata = MetaData()
background_jobs = Table(
    "background_jobs",
    metadata,
    Column("id", Integer, primary_key=True),
    Column("status", String(32)),
    Column("type", String(64)),
    Column("queue", String(191)),
    Column("enqueued_on", DateTime),
    Column("started_on", DateTime, nullable=True),
)


class DummySink:
    """Records every message it is asked to send."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, text: str) -> None:
        self.sent.append(text)


class FailingSink:
    """Sink whose delivery always fails."""

    def __init__(self) -> None:
        self.attempts = 0

    def send(self, text: str) -> None:
        self.attempts += 1
        raise NotificationError("webhook down")


class DummySource:
    """Metrics source returning canned metrics."""

    def __init__(self, metrics: Metrics | None = None, error: Exception | None = None):
        self.metrics = metrics or Metrics()
        self.error = error
        self.calls: list[tuple[str, int, int]] = []

    def get_metrics(self, queue: str, window: int, max_age: int) -> Metrics:
        self.calls.append((queue, window, max_age))
        if self.error:
            raise self.error
        return self.metrics


class DummyStore:
    """In-memory state store."""

    def __init__(self, snapshot: AlertSnapshot | None = None) -> None:
        self.snapshot = snapshot or AlertSnapshot()
        self.saved: list[AlertSnapshot] = []

    def load(self) -> AlertSnapshot:
        return self.snapshot

    def save(self, snapshot: AlertSnapshot) -> None:
        self.saved.append(snapshot)
        self.snapshot = snapshot


class DummyResponse:
    """Dummy HTTP response for testing."""

    def __init__(self, data: object = None, status: int = 200, text: str = "") -> None:
        self._data = data
        self.status_code = status
        self.text = text or str(data)
        self.ok = 200 <= status < 300

    def json(self) -> object:
        return self._data
