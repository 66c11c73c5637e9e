"""Markdown rendering of the session report."""

from collections.abc import Mapping
from pathlib import Path

from flakehunt.models.outcome import Classification
from flakehunt.models.report import AggregatedTest, Report
from flakehunt.reporting.formatting import format_duration
from flakehunt.signatures import truncate_excerpt

MARKDOWN_REPORT_FILENAME = "report.md"

CLASSIFICATION_ORDER: Mapping[Classification, int] = {
    "flaky": 0,
    "deterministic_fail": 1,
    "stable": 2,
}


def write_markdown_report(out_dir: Path, report: Report) -> Path:
    """Write ``report.md`` into ``out_dir`` and return its path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / MARKDOWN_REPORT_FILENAME
    path.write_text(render_markdown(report), encoding="utf-8")
    return path


def render_markdown(report: Report) -> str:
    """Render the report as a Markdown document."""
    lines = [
        "# Flakehunt Report",
        "",
        "## Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Tool | {report.tool} |",
        f"| Target | {escape_markdown(report.target)} |",
        f"| Runs Executed | {report.runs_executed} |",
        f"| Flaky Tests | {report.flaky_count} |",
        f"| Deterministic Failures | {report.deterministic_fail_count} |",
        f"| Stable Tests | {report.stable_count} |",
        "",
        "## Top Flakes",
        "",
    ]

    if report.top_flakes:
        lines += ["Ranked by wasted time (flakeRate x avgDuration x runs).", ""]
        for position, flake in enumerate(report.top_flakes, start=1):
            lines += _render_flake(position, flake)
    else:
        lines += ["No flaky tests detected.", ""]

    if report.signature_summary:
        lines += [
            "## Failure Signatures",
            "",
            "| Signature | Count |",
            "|-----------|-------|",
        ]
        lines += [
            f"| {name} | {count} |" for name, count in report.signature_summary.items()
        ]
        lines.append("")

    if report.tests:
        lines += [
            "## All Tests",
            "",
            "| Test ID | Classification | Flake Rate | Pass | Fail | Skip |",
            "|---------|----------------|------------|------|------|------|",
        ]
        ordered = sorted(
            report.tests,
            key=lambda t: (CLASSIFICATION_ORDER[t.classification], t.test_id),
        )
        for test in ordered:
            flake_rate = "-"
            if test.classification == "flaky":
                flake_rate = f"{test.flake_rate * 100:.1f}%"
            lines.append(
                f"| {escape_markdown(test.test_id)} | {test.classification} "
                f"| {flake_rate} | {test.pass_count} | {test.fail_count} "
                f"| {test.skip_count} |"
            )
        lines.append("")

    return "\n".join(lines) + "\n"


def _render_flake(position: int, flake: AggregatedTest) -> list[str]:
    lines = [
        f"### {position}. {escape_markdown(flake.test_id)}",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Flake Rate | {flake.flake_rate * 100:.1f}% |",
        f"| Pass Count | {flake.pass_count} |",
        f"| Fail Count | {flake.fail_count} |",
        f"| Skip Count | {flake.skip_count} |",
        f"| Average Duration | {format_duration(flake.avg_duration)} |",
        f"| Wasted Time | {format_duration(flake.wasted_time)} |",
        "",
    ]

    if flake.failure_evidence:
        lines += ["**Failed Runs:**", ""]
        for evidence in flake.failure_evidence:
            lines.append(f"- **Run {evidence.run_index}** [{evidence.signature}]")
            if evidence.excerpt:
                excerpt = truncate_excerpt(evidence.excerpt)
                lines += ["  ```", f"  {excerpt}", "  ```"]
        lines.append("")

    return lines


def escape_markdown(text: str) -> str:
    """Escape pipe characters, which would break table rows."""
    return text.replace("|", "\\|")
