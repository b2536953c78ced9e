from __future__ import annotations

import json
import sys
from pathlib import Path

import allure
import pytest
from click.testing import CliRunner

from diag_bundler.main import diag_bundler

pytestmark = [
    allure.epic("Gathering"),
    allure.feature("CLI"),
]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in (
        "DIAG_BUNDLER_STAGING_DIR",
        "DIAG_BUNDLER_CATALOG_PATH",
        "DIAG_BUNDLER_INCLUDE_TRACE",
        "DIAG_BUNDLER_TRACE_DWELL_SECONDS",
    ):
        monkeypatch.delenv(name, raising=False)


def _write_catalog(tmp_path: Path, python_script) -> Path:
    ok = python_script("ok.py", "print('all good')\n")
    broken = python_script("broken.py", "import sys\nsys.exit(4)\n")
    writer = python_script(
        "writer.py",
        """
        import sys
        with open(sys.argv[1], "w", encoding="utf-8") as handle:
            handle.write("etl")
        """,
    )
    logs = tmp_path / "logs"
    logs.mkdir()
    (logs / "event.evtx").write_bytes(b"evtx")
    catalog = {
        "groups": [
            {
                "name": "System",
                "tasks": [
                    {
                        "type": "process",
                        "executable": sys.executable,
                        "args": str(ok),
                        "output": "ok.txt",
                    },
                    {
                        "type": "process",
                        "executable": sys.executable,
                        "args": str(broken),
                        "output": "broken.txt",
                    },
                ],
            },
            {"name": "Event", "roots": [str(logs)]},
            {
                "name": "Trace",
                "trace": True,
                "tasks": [
                    {
                        "type": "capture",
                        "start": {"executable": sys.executable, "args": str(ok), "output": "t.etl"},
                        "stop": {
                            "executable": sys.executable,
                            "args": f"{writer} t.etl",
                            "output": "t.etl",
                        },
                        "dwell_seconds": 600,
                    },
                ],
            },
        ],
    }
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps(catalog), "utf-8")
    return path


def test_gather_writes_artifacts_and_report(tmp_path: Path, python_script) -> None:
    catalog = _write_catalog(tmp_path, python_script)
    staging = tmp_path / "bundle"

    result = CliRunner().invoke(
        diag_bundler,
        ["gather", "--catalog", str(catalog), "--staging-dir", str(staging)],
    )

    assert result.exit_code == 0, result.output
    assert "- System: 1 artifacts" in result.output
    assert "- Event: 1 artifacts" in result.output
    assert "Trace" not in result.output
    assert "exit status 4" in result.output
    assert (staging / "ok.txt").read_text("utf-8").strip() == "all good"
    report = json.loads((staging / "gather_report.json").read_text("utf-8"))
    assert [group["name"] for group in report["groups"]] == ["Event", "System"]


def test_gather_strict_fails_on_task_failure(tmp_path: Path, python_script) -> None:
    catalog = _write_catalog(tmp_path, python_script)

    result = CliRunner().invoke(
        diag_bundler,
        ["gather", "--catalog", str(catalog), "--staging-dir", str(tmp_path / "b"), "--strict"],
    )

    assert result.exit_code == 1
    assert "Gathering finished with failures." in result.output


def test_gather_with_trace_uses_dwell_override(tmp_path: Path, python_script) -> None:
    catalog = _write_catalog(tmp_path, python_script)
    staging = tmp_path / "bundle"

    result = CliRunner().invoke(
        diag_bundler,
        [
            "gather",
            "--catalog",
            str(catalog),
            "--staging-dir",
            str(staging),
            "--trace",
            "--trace-dwell-seconds",
            "0",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "- Trace: 1 artifacts" in result.output
    assert (staging / "t.etl").read_text("utf-8") == "etl"


def test_gather_without_catalog_is_usage_error(tmp_path: Path) -> None:
    result = CliRunner().invoke(diag_bundler, ["gather", "--staging-dir", str(tmp_path)])

    assert result.exit_code == 1
    assert "group catalog is required" in result.output


def test_catalog_lists_groups(tmp_path: Path, python_script) -> None:
    catalog = _write_catalog(tmp_path, python_script)

    result = CliRunner().invoke(diag_bundler, ["catalog", "--catalog", str(catalog)])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "System"
    assert f"  root {tmp_path / 'logs'}" in lines
    assert "Trace (trace)" in lines
    assert "  t.etl <- capture t.etl" in lines
