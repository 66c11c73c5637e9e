"""Terminal summary of the session report, written through logging."""

import logging
from pathlib import Path

from flakehunt.models.report import Report
from flakehunt.reporting.formatting import format_duration, format_run_indices
from flakehunt.signatures import truncate_excerpt

DEFAULT_SUMMARY_TOP = 5


def log_report_summary(
    log: logging.Logger,
    report: Report,
    artifact_path: Path,
    top_n: int = DEFAULT_SUMMARY_TOP,
) -> None:
    """Log a formatted summary of the report."""
    log.info("=" * 80)
    log.info("Flakehunt Report")
    log.info("=" * 80)
    log.info("Tool:   %s", report.tool)
    log.info("Target: %s", report.target)
    log.info("Runs Executed: %d", report.runs_executed)
    log.info("Test Counts:")
    log.info("  Flaky:              %d", report.flaky_count)
    log.info("  Deterministic Fail: %d", report.deterministic_fail_count)
    log.info("  Stable:             %d", report.stable_count)

    if report.top_flakes:
        log.info("Top Flakes (by wasted time):")
        for position, flake in enumerate(report.top_flakes[:top_n], start=1):
            log.info("  %d. %s", position, flake.test_id)
            log.info(
                "     Flake Rate: %.1f%% (%d/%d failed)",
                flake.flake_rate * 100,
                flake.fail_count,
                flake.total_runs,
            )
            log.info("     Wasted Time: %s", format_duration(flake.wasted_time))
            if flake.failure_evidence:
                log.info(
                    "     Failed Runs: %s",
                    format_run_indices([ev.run_index for ev in flake.failure_evidence]),
                )
                if excerpt := flake.failure_evidence[0].excerpt:
                    log.info("     Excerpt: %s", truncate_excerpt(excerpt, 80))
    else:
        log.info("No flaky tests detected.")

    if report.signature_summary:
        log.info("Failure Signatures:")
        for name, count in report.signature_summary.items():
            log.info("  %s: %d", name, count)

    log.info("Artifacts: %s", artifact_path)
