"""Two-phase timed trace capture."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from diag_bundler.gather.errors import TaskError
from diag_bundler.gather.models import FailureKind, RunContext
from diag_bundler.gather.tasks import ExternalProcessTask

logger = logging.getLogger(__name__)

DEFAULT_DWELL_SECONDS = 600.0


@dataclass(slots=True, frozen=True)
class TimedCaptureTask:
    """Start a tracing tool, let it run for ``dwell_seconds`` and stop it.

    The stop phase always runs, even when the start phase failed or the run
    was cancelled during the dwell, so a capture is never left running. Its
    outcome is the task's outcome.
    """

    start: ExternalProcessTask
    stop: ExternalProcessTask
    dwell_seconds: float = DEFAULT_DWELL_SECONDS

    def __post_init__(self) -> None:
        if self.start.output_name != self.stop.output_name:
            raise ValueError(
                "Capture start and stop phases must share one output name: "
                f"{self.start.output_name!r} != {self.stop.output_name!r}",
            )

    @property
    def output_name(self) -> str:
        return self.stop.output_name

    @property
    def label(self) -> str:
        return f"capture {self.output_name}"

    def run(self, context: RunContext) -> Path:
        try:
            self.start.run(context)
        except TaskError as error:
            logger.error("Capture start failed: %s", error)
            context.report(error, kind=FailureKind.CAPTURE_START)

        started = time.monotonic()
        if context.cancel_event.wait(self.dwell_seconds):
            logger.warning(
                "Capture %s cancelled after %.1fs; stopping early",
                self.output_name,
                time.monotonic() - started,
            )

        return self.stop.run(context)
