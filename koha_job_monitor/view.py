"""View layer for formatting alert messages and console reports."""

from __future__ import annotations

from .models.alerts import Thresholds
from .models.metrics import Metrics, StuckJob, SummaryRow


def _group_summary(rows: list[SummaryRow]) -> dict[str, dict[str, int]]:
    grouped: dict[str, dict[str, int]] = {}
    for row in rows:
        grouped.setdefault(row.type, {})[row.status] = row.count
    return grouped


def _summary_parts(statuses: dict[str, int]) -> str:
    return ", ".join(f"{status}={statuses[status]}" for status in sorted(statuses))


def summary_lines(rows: list[SummaryRow], bold: bool = False) -> str:
    """One `Type: status=count, ...` line per job type, types and statuses sorted.

    With ``bold`` the type is wrapped in Slack `*...*` markup.
    """
    grouped = _group_summary(rows)
    mark = "*" if bold else ""
    return "".join(
        f"{mark}{job_type}{mark}: {_summary_parts(grouped[job_type])}\n"
        for job_type in sorted(grouped)
    )


def summary_message(rows: list[SummaryRow], queue: str) -> str:
    return f"*Koha Job Summary (queue='{queue}'):*\n" + summary_lines(rows, bold=True)


def render_summary_table(rows: list[SummaryRow]) -> str:
    w_type = max([len("type"), *(len(r.type) for r in rows)])
    w_status = max([len("status"), *(len(r.status) for r in rows)])
    w_count = max([len("count"), *(len(str(r.count)) for r in rows)])

    lines = [
        f"{'type':<{w_type}}  {'status':<{w_status}}  {'count':>{w_count}}",
        "-" * (w_type + w_status + w_count + 4),
    ]
    for r in rows:
        lines.append(f"{r.type:<{w_type}}  {r.status:<{w_status}}  {r.count:>{w_count}d}")
    return "\n".join(lines) + "\n"


def render_status_report(
    metrics: Metrics, thresholds: Thresholds, queue: str, instance: str
) -> str:
    stuck_count = metrics.stuck_count if thresholds.stuck_check_enabled else 0
    counts = [
        ("Current new jobs:", metrics.new_count),
        (f"New jobs in last {thresholds.rate_window_minutes} minutes:", metrics.rate),
        (
            f"Jobs running for more than {thresholds.max_running_age_minutes} minutes:",
            stuck_count,
        ),
    ]
    width = max(len(str(value)) for _, value in counts)

    lines = [f"=== Koha Background Job Status (queue='{queue}') For {instance} ===", ""]
    lines.extend(f"{label:<40} {value:>{width}d}" for label, value in counts)
    lines.extend(["", "--- Job Summary ---"])
    return "\n".join(lines) + "\n" + render_summary_table(metrics.summary)


# Alert messages (Slack mrkdwn)


def backlog_alert(instance: str, new_count: int, threshold: int) -> str:
    return (
        f":warning: [{instance}] *Koha job backlog alert*: "
        f"{new_count} new jobs (threshold {threshold})"
    )


def backlog_recovered(instance: str, new_count: int) -> str:
    return (
        f":white_check_mark: [{instance}] Koha job backlog recovered: "
        f"{new_count} new jobs."
    )


def rate_alert(instance: str, rate: int, window_minutes: int, threshold: int) -> str:
    return (
        f":warning: [{instance}] *Koha job creation rate alert*: "
        f"{rate} in last {window_minutes} minutes (threshold {threshold})"
    )


def rate_recovered(instance: str, rate: int) -> str:
    return f":white_check_mark: [{instance}] Koha job creation rate recovered to {rate}."


def stuck_jobs_alert(jobs: list[StuckJob], max_age_minutes: int) -> str:
    msg = (
        f":warning: *Koha jobs stuck in 'running' for more than "
        f"{max_age_minutes} minutes:*\n"
    )
    for job in jobs:
        msg += f"• Job {job.id} ({job.type}) – running for {job.age_minutes} minutes\n"
    return msg


def stuck_jobs_recovered(max_age_minutes: int) -> str:
    return f":white_check_mark: All running jobs are now under {max_age_minutes} minutes."
