"""Exception hierarchy for koha_job_monitor."""

from __future__ import annotations


class MonitorError(Exception):
    """Base class for all monitor failures."""


class ConfigError(MonitorError):
    """Configuration is missing or unusable."""


class MetricsError(MonitorError):
    """The job table could not be queried."""


class NotificationError(MonitorError):
    """A notification could not be delivered."""


class StateStoreError(MonitorError):
    """The alert snapshot could not be written."""


__all__ = [
    "ConfigError",
    "MetricsError",
    "MonitorError",
    "NotificationError",
    "StateStoreError",
]
