from __future__ import annotations

import json
from pathlib import Path

import allure

from diag_bundler.gather.models import FailureKind, GroupResult, RunReport, TaskFailure
from diag_bundler.gather.report import render_report_lines, report_payload, write_run_report

pytestmark = [
    allure.epic("Gathering"),
    allure.feature("Run Report"),
]


def _report(tmp_path: Path) -> RunReport:
    return RunReport(
        groups=[
            GroupResult("Network", [tmp_path / "ipconfig.txt"]),
            GroupResult("Disk", []),
        ],
        failures=[
            TaskFailure("Disk", "MSFT_Disk (root)", FailureKind.QUERY, "MSFT_Disk (root): down"),
        ],
    )


def test_payload_is_sorted_by_group_name(tmp_path: Path) -> None:
    payload = report_payload(_report(tmp_path))

    assert [group["name"] for group in payload["groups"]] == ["Disk", "Network"]
    assert payload["failures"] == [
        {
            "group": "Disk",
            "source": "MSFT_Disk (root)",
            "kind": "query",
            "message": "MSFT_Disk (root): down",
        },
    ]


def test_write_run_report_is_deterministic(tmp_path: Path) -> None:
    first = tmp_path / "first.json"
    second = tmp_path / "second.json"

    write_run_report(first, _report(tmp_path))
    write_run_report(second, _report(tmp_path))

    assert first.read_bytes() == second.read_bytes()
    assert json.loads(first.read_text("utf-8"))["groups"][1]["artifacts"] == [
        str(tmp_path / "ipconfig.txt"),
    ]


def test_render_report_lines(tmp_path: Path) -> None:
    lines = render_report_lines(_report(tmp_path))

    assert lines == [
        "Groups: 2",
        "- Disk: 0 artifacts",
        "- Network: 1 artifacts",
        "Failures: 1",
        "- [Disk] query: MSFT_Disk (root): down",
    ]
