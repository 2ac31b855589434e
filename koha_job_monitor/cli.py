"""Command line parsing for the job monitor.

Flag defaults come from :mod:`koha_job_monitor.config`, so environment
variables set the baseline and flags override it for one invocation.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass
from pathlib import Path

from .config import Settings
from .models.alerts import AlertPolicy, Thresholds


@dataclass(frozen=True)
class Options:
    slack_webhook: str | None
    thresholds: Thresholds
    queue: str
    state_file: Path
    db_url: str | None
    policy: AlertPolicy
    one_shot: bool
    verbose: bool


def _non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {raw!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0: {value}")
    return value


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="koha-job-monitor",
        description="Alert on Koha background job backlog, creation rate and stuck jobs.",
    )
    parser.add_argument(
        "-s", "--slack-webhook", default=settings.SLACK_WEBHOOK,
        help="Slack incoming webhook URL",
    )
    parser.add_argument(
        "-n", "--max-new-jobs", type=_non_negative_int, default=settings.MAX_NEW_JOBS,
        help="Threshold: number of 'new' jobs (default: %(default)s)",
    )
    parser.add_argument(
        "-r", "--max-rate", type=_non_negative_int, default=settings.MAX_RATE,
        help="Threshold: number of new jobs created (default: %(default)s)",
    )
    parser.add_argument(
        "-w", "--window", type=_non_negative_int, default=settings.RATE_WINDOW_MINUTES,
        help="Rate window in minutes, set to the cronjob frequency (default: %(default)s)",
    )
    parser.add_argument(
        "-q", "--queue", default=settings.QUEUE,
        help="Queue to work on (default: %(default)s)",
    )
    parser.add_argument(
        "-a", "--max-running-age", type=_non_negative_int,
        default=settings.MAX_RUNNING_AGE_MINUTES,
        help="Max allowed age (minutes) for 'running', 0 disables (default: %(default)s)",
    )
    parser.add_argument(
        "-f", "--state-file", type=Path, default=settings.STATE_FILE,
        help="Path to state file (default: %(default)s)",
    )
    parser.add_argument(
        "--db-url", default=None,
        help="SQLAlchemy database URL (default: from KOHA_CONF)",
    )
    parser.add_argument(
        "--alert-policy", choices=[p.value for p in AlertPolicy],
        default=AlertPolicy.REPEAT.value,
        help="repeat: alert every run while active; edge: only when it starts",
    )
    parser.add_argument(
        "-o", "--one-shot", action="store_true",
        help="Output current metrics and exit, does not affect state file",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    return parser


def parse_args(settings: Settings, argv: list[str] | None = None) -> Options:
    args = build_parser(settings).parse_args(argv)
    return Options(
        slack_webhook=args.slack_webhook or None,
        thresholds=Thresholds(
            max_new_jobs=args.max_new_jobs,
            max_rate=args.max_rate,
            rate_window_minutes=args.window,
            max_running_age_minutes=args.max_running_age,
        ),
        queue=args.queue,
        state_file=args.state_file,
        db_url=args.db_url,
        policy=AlertPolicy(args.alert_policy),
        one_shot=args.one_shot,
        verbose=args.verbose,
    )
