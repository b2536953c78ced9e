from __future__ import annotations

import sys
import time

import allure
import pytest

from diag_bundler.gather.capture import TimedCaptureTask
from diag_bundler.gather.errors import TaskError
from diag_bundler.gather.models import FailureKind
from diag_bundler.gather.tasks import ExternalProcessTask

pytestmark = [
    allure.epic("Gathering"),
    allure.feature("Timed Trace Capture"),
]

_WRITER = """
import sys
with open(sys.argv[1], "w", encoding="utf-8") as handle:
    handle.write("etl")
"""


def _phase(script, args: str = "") -> ExternalProcessTask:
    return ExternalProcessTask(sys.executable, f"{script} {args}".strip(), "trace.etl", True)


def test_stop_phase_runs_when_start_fails(make_context, python_script) -> None:
    failing = python_script("start.py", "import sys\nsys.exit(1)\n")
    writer = python_script("stop.py", _WRITER)
    context = make_context()
    capture = TimedCaptureTask(
        start=_phase(failing),
        stop=_phase(writer, "trace.etl"),
        dwell_seconds=0,
    )

    path = capture.run(context)

    assert path == context.staging_dir / "trace.etl"
    assert path.read_text("utf-8") == "etl"
    failures = context.errors.snapshot()
    assert len(failures) == 1
    assert failures[0].kind == FailureKind.CAPTURE_START


def test_stop_failure_is_task_failure(make_context, python_script) -> None:
    ok = python_script("ok.py", "pass\n")
    failing = python_script("stop.py", "import sys\nsys.exit(2)\n")
    context = make_context()
    capture = TimedCaptureTask(start=_phase(ok), stop=_phase(failing), dwell_seconds=0)

    with pytest.raises(TaskError, match="exit status 2"):
        capture.run(context)

    assert context.errors.snapshot() == []


def test_cancel_cuts_dwell_short_and_still_stops(make_context, python_script) -> None:
    ok = python_script("ok.py", "pass\n")
    writer = python_script("stop.py", _WRITER)
    context = make_context()
    context.cancel_event.set()
    capture = TimedCaptureTask(
        start=_phase(ok),
        stop=_phase(writer, "trace.etl"),
        dwell_seconds=600,
    )

    started = time.monotonic()
    path = capture.run(context)

    assert time.monotonic() - started < 60
    assert path.read_text("utf-8") == "etl"


def test_start_and_stop_must_share_output_name() -> None:
    with pytest.raises(ValueError, match="share one output name"):
        TimedCaptureTask(
            start=ExternalProcessTask("wpr.exe", "-start CPU", "a.etl", True),
            stop=ExternalProcessTask("wpr.exe", "-stop b.etl", "b.etl", True),
        )


def test_capture_dwell_defaults_to_ten_minutes() -> None:
    capture = TimedCaptureTask(
        start=ExternalProcessTask("wpr.exe", "-start CPU", "trace.etl", True),
        stop=ExternalProcessTask("wpr.exe", "-stop trace.etl", "trace.etl", True),
    )

    assert capture.dwell_seconds == 600
    assert capture.output_name == "trace.etl"
