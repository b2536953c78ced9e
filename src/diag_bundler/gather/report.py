"""Run report persistence and rendering."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from diag_bundler.gather.models import RunReport

REPORT_FILE_NAME = "gather_report.json"


def report_payload(report: RunReport) -> dict[str, Any]:
    return {
        "groups": [
            {
                "name": group.name,
                "artifacts": [str(path) for path in group.artifacts],
            }
            for group in sorted(report.groups, key=lambda group: group.name)
        ],
        "failures": [
            {
                "group": failure.group,
                "source": failure.source,
                "kind": failure.kind.value,
                "message": failure.message,
            }
            for failure in sorted(
                report.failures,
                key=lambda failure: (failure.group, failure.source, failure.message),
            )
        ],
    }


def write_run_report(path: Path, report: RunReport) -> None:
    """Persist the report as deterministic JSON for the bundle packager."""

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(report_payload(report), ensure_ascii=False, indent=2, sort_keys=True),
        "utf-8",
    )


def render_report_lines(report: RunReport) -> list[str]:
    lines = [f"Groups: {len(report.groups)}"]
    for group in sorted(report.groups, key=lambda group: group.name):
        lines.append(f"- {group.name}: {len(group.artifacts)} artifacts")
    if report.failures:
        lines.append(f"Failures: {len(report.failures)}")
        for failure in report.failures:
            lines.append(f"- [{failure.group}] {failure.kind.value}: {failure.message}")
    else:
        lines.append("Failures: 0")
    return lines
