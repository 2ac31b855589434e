"""Entrypoint for one monitoring run.

Reads metrics, evaluates alerts against the stored snapshot, notifies and
persists the new snapshot. Meant to be invoked by cron every ``--window``
minutes.
"""

from __future__ import annotations

import dataclasses
import logging
import sys
from typing import IO

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError

from . import alerting, cli, config, view
from .errors import ConfigError, MetricsError, StateStoreError
from .logger import setup_logging
from .metrics_source import JobMetricsSource
from .notify import ConsoleSink, FanoutSink, build_remote_sinks
from .state_store import JsonStateStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_STATE_WRITE = 1
EXIT_METRICS = 3
EXIT_CONFIG = 4


def monitor(
    options: cli.Options,
    instance: str,
    source,
    store,
    sink: alerting.NotificationSink | None,
    summary_sink: alerting.NotificationSink | None = None,
    out: IO[str] | None = None,
) -> int:
    """Run one poll/evaluate/notify/persist cycle.

    Raises MetricsError or StateStoreError; notification failures are only
    logged.
    """
    out = out or sys.stdout
    thresholds = options.thresholds
    metrics = source.get_metrics(
        options.queue,
        thresholds.rate_window_minutes,
        thresholds.max_running_age_minutes,
    )

    if options.one_shot or options.verbose:
        print(
            view.render_status_report(metrics, thresholds, options.queue, instance),
            file=out,
        )
        if options.one_shot:
            return EXIT_OK

    previous = store.load()
    logger.info("Previous state: %s", previous.to_dict())

    result = alerting.evaluate(
        metrics, previous, thresholds, sink, instance, options.policy
    )
    if result.alerted and summary_sink is not None:
        alerting.deliver(summary_sink, view.summary_message(metrics.summary, options.queue))

    store.save(result.snapshot)
    logger.info("Saved state: %s", result.snapshot.to_dict())
    return EXIT_OK


def run(argv: list[str] | None = None) -> int:
    settings = config._read_settings()
    options = cli.parse_args(settings, argv)
    setup_logging(options.verbose)

    settings = dataclasses.replace(settings, SLACK_WEBHOOK=options.slack_webhook)
    config.validate_settings(settings)

    try:
        instance = config.resolve_instance(settings)
        db_url = config.resolve_db_url(settings, options.db_url)
    except ConfigError as e:
        logger.error("%s", e)
        return EXIT_CONFIG

    remote = build_remote_sinks(
        settings.SLACK_WEBHOOK,
        settings.TELEGRAM_TOKEN,
        settings.TELEGRAM_CHAT_ID,
        timeout=settings.HTTP_TIMEOUT_S,
    )
    sinks = list(remote)
    if options.verbose or not remote:
        sinks.append(ConsoleSink())

    try:
        engine = create_engine(db_url)
    except SQLAlchemyError as e:
        logger.error("Invalid database URL: %s", e)
        return EXIT_CONFIG

    try:
        return monitor(
            options,
            instance,
            JobMetricsSource(engine),
            JsonStateStore(options.state_file),
            FanoutSink(sinks),
            FanoutSink(remote) if remote else None,
        )
    except MetricsError as e:
        logger.error("%s", e)
        return EXIT_METRICS
    except StateStoreError as e:
        logger.error("%s", e)
        return EXIT_STATE_WRITE
    finally:
        engine.dispose()


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()
