"""JSON rendering of the session report."""

from pathlib import Path

from flakehunt.models.report import Report

JSON_REPORT_FILENAME = "report.json"


def render_json(report: Report) -> str:
    """Serialise the report with camelCase keys."""
    return report.model_dump_json(by_alias=True, indent=2)


def write_json_report(out_dir: Path, report: Report) -> Path:
    """Write ``report.json`` into ``out_dir`` and return its path."""
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / JSON_REPORT_FILENAME
    path.write_text(render_json(report) + "\n", encoding="utf-8")
    return path
