"""Central configuration for koha_job_monitor."""

from __future__ import annotations

import logging
import os
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import quote

from .errors import ConfigError

logger = logging.getLogger(__name__)

STATE_FILE_NAME = "koha_job_monitor_state.json"

_INSTANCE_RE = re.compile(r"/sites/([^/]+)/")


def _env_int(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s: %r, using %d", name, raw, default)
        return default
    if value < 0:
        logger.warning("Negative value for %s: %d, using %d", name, value, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, str(default)) or default)
    except ValueError:
        return default


def default_state_file() -> Path:
    """Return the state file path under XDG_DATA_HOME or ~/.local/share."""
    data_home = os.environ.get("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / STATE_FILE_NAME
    home = os.environ.get("HOME") or str(Path.home())
    return Path(home) / ".local" / "share" / STATE_FILE_NAME


def instance_from_conf(conf_path: str | None) -> str:
    """Extract the Koha instance name from a KOHA_CONF path.

    Args:
        conf_path: Path like ``/etc/koha/sites/library/koha-conf.xml``.

    Returns:
        The path segment following ``/sites/`` (``library`` above).

    Raises:
        ConfigError: If the path is empty or has no ``/sites/<name>/`` part.
    """
    match = _INSTANCE_RE.search(conf_path or "")
    if not match:
        raise ConfigError(
            f"Unable to extract instance name from KOHA_CONF: {conf_path or ''}"
        )
    return match.group(1)


def db_url_from_conf(conf_path: str | Path) -> str:
    """Build a SQLAlchemy URL from the ``<config>`` block of koha-conf.xml."""
    try:
        root = ET.parse(str(conf_path)).getroot()
    except (OSError, ET.ParseError) as e:
        raise ConfigError(f"Cannot read Koha config {conf_path}: {e}") from e

    config = root.find("config")
    if config is None:
        raise ConfigError(f"No <config> section in {conf_path}")

    def value(tag: str, default: str = "") -> str:
        return (config.findtext(tag) or default).strip()

    database = value("database")
    if not database:
        raise ConfigError(f"No <database> configured in {conf_path}")

    scheme = value("db_scheme", "mysql")
    if scheme not in {"mysql", "mariadb"}:
        raise ConfigError(f"Unsupported db_scheme {scheme!r} in {conf_path}")

    user = quote(value("user"), safe="")
    password = quote(value("pass"), safe="")
    host = value("hostname", "localhost")
    port = value("port")
    netloc = f"{user}:{password}@{host}" if password else f"{user}@{host}"
    if port:
        netloc = f"{netloc}:{port}"
    return f"mysql+pymysql://{netloc}/{database}?charset=utf8mb4"


@dataclass
class Settings:
    """Configuration settings for koha_job_monitor.

    All settings are loaded from environment variables with sensible defaults;
    command line flags override the threshold and path defaults.
    """

    KOHA_CONF: str | None
    INSTANCE: str | None
    DB_URL: str | None
    SLACK_WEBHOOK: str | None
    TELEGRAM_TOKEN: str | None
    TELEGRAM_CHAT_ID: str | None
    HTTP_TIMEOUT_S: float
    MAX_NEW_JOBS: int
    MAX_RATE: int
    RATE_WINDOW_MINUTES: int
    MAX_RUNNING_AGE_MINUTES: int
    QUEUE: str
    STATE_FILE: Path


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Note:
        Invalid numeric values fall back to the defaults.
    """
    return Settings(
        KOHA_CONF=os.environ.get("KOHA_CONF") or None,
        INSTANCE=os.environ.get("KOHA_INSTANCE") or None,
        DB_URL=os.environ.get("KOHA_JOB_MONITOR_DB_URL") or None,
        SLACK_WEBHOOK=os.environ.get("KOHA_JOB_MONITOR_SLACK_WEBHOOK") or None,
        TELEGRAM_TOKEN=os.environ.get("KOHA_JOB_MONITOR_TELEGRAM_TOKEN") or None,
        TELEGRAM_CHAT_ID=os.environ.get("KOHA_JOB_MONITOR_TELEGRAM_CHAT_ID") or None,
        HTTP_TIMEOUT_S=_env_float("KOHA_JOB_MONITOR_HTTP_TIMEOUT_S", 10.0),
        MAX_NEW_JOBS=_env_int("KOHA_JOB_MONITOR_MAX_NEW_JOBS", 100),
        MAX_RATE=_env_int("KOHA_JOB_MONITOR_MAX_RATE", 200),
        RATE_WINDOW_MINUTES=_env_int("KOHA_JOB_MONITOR_WINDOW", 1),
        MAX_RUNNING_AGE_MINUTES=_env_int("KOHA_JOB_MONITOR_MAX_RUNNING_AGE", 0),
        QUEUE=os.environ.get("KOHA_JOB_MONITOR_QUEUE") or "default",
        STATE_FILE=default_state_file(),
    )


def resolve_instance(settings: Settings) -> str:
    if settings.INSTANCE:
        return settings.INSTANCE
    return instance_from_conf(settings.KOHA_CONF)


def resolve_db_url(settings: Settings, override: str | None = None) -> str:
    if override:
        return override
    if settings.DB_URL:
        return settings.DB_URL
    if settings.KOHA_CONF:
        return db_url_from_conf(settings.KOHA_CONF)
    raise ConfigError(
        "No database configured: set KOHA_CONF, KOHA_JOB_MONITOR_DB_URL or --db-url"
    )


def validate_settings(settings: Settings) -> None:
    """Log warnings for configuration that makes alerts go nowhere useful."""
    if not settings.SLACK_WEBHOOK and not settings.TELEGRAM_TOKEN:
        logger.warning("No webhook or Telegram bot configured; alerts go to stdout")
    if settings.KOHA_CONF is None and settings.INSTANCE is None:
        logger.warning("KOHA_CONF is not set; instance name is unknown")
