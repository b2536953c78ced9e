"""Controllers for gather CLI commands."""

from __future__ import annotations

import logging
import signal
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from diag_bundler.config import Settings
from diag_bundler.gather.capture import TimedCaptureTask
from diag_bundler.gather.catalog import load_catalog
from diag_bundler.gather.groups import FileTreeGroup, GatherGroup, TaskGroup
from diag_bundler.gather.models import ErrorSink, RunContext, RunReport
from diag_bundler.gather.orchestrator import GatherOrchestrator
from diag_bundler.gather.query import CimQueryBackend, QueryBackend
from diag_bundler.gather.report import REPORT_FILE_NAME, render_report_lines, write_run_report

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class GatherCommand:
    """CLI input for one gathering run."""

    staging_dir: Path | None
    catalog_path: Path | None
    include_trace: bool | None = None
    trace_dwell_seconds: float | None = None
    strict: bool = False


@dataclass(slots=True)
class CatalogCommand:
    """CLI input for catalog listing."""

    catalog_path: Path | None


@dataclass(slots=True)
class GatherCliResult:
    """Rendered run output plus overall outcome."""

    lines: list[str]
    success: bool
    report: RunReport | None = None


@dataclass(slots=True)
class GatherCliController:
    """Resolve settings and catalog, then drive the orchestrator."""

    query_backend: QueryBackend | None = None
    settings_factory: type[Settings] = Settings

    def gather(self, command: GatherCommand) -> GatherCliResult:
        settings = self._settings(command.staging_dir, command.catalog_path)
        if command.trace_dwell_seconds is not None:
            settings.gather.trace_dwell_seconds = command.trace_dwell_seconds
        include_trace = command.include_trace
        if include_trace is None:
            include_trace = settings.gather.include_trace
        settings.validate()

        groups = load_catalog(settings.catalog_path)  # type: ignore[arg-type]
        if settings.gather.trace_dwell_seconds is not None:
            groups = _override_dwell(groups, settings.gather.trace_dwell_seconds)

        context = RunContext(
            staging_dir=settings.staging_dir,
            errors=ErrorSink(),
            query_backend=self.query_backend
            or CimQueryBackend(
                powershell=settings.query.powershell,
                timeout_seconds=settings.query.timeout_seconds,
            ),
            query_max_attempts=settings.gather.query_max_attempts,
            query_retry_delay_seconds=settings.gather.query_retry_delay_seconds,
        )
        orchestrator = GatherOrchestrator(
            groups,
            context,
            max_workers=settings.gather.max_workers,
        )
        with _cancel_on_signal(orchestrator):
            report = orchestrator.run(include_trace=include_trace)

        report_path = settings.staging_dir / REPORT_FILE_NAME
        write_run_report(report_path, report)
        lines = render_report_lines(report)
        lines.append(f"Report: {report_path}")
        return GatherCliResult(
            lines=lines,
            success=not (command.strict and report.failures),
            report=report,
        )

    def list_catalog(self, command: CatalogCommand) -> list[str]:
        settings = self._settings(None, command.catalog_path)
        if settings.catalog_path is None:
            raise ValueError(
                "A group catalog is required. Set DIAG_BUNDLER_CATALOG_PATH or pass --catalog.",
            )
        lines: list[str] = []
        for group in load_catalog(settings.catalog_path):
            suffix = " (trace)" if group.trace else ""
            lines.append(f"{group.name}{suffix}")
            if isinstance(group, FileTreeGroup):
                lines.extend(f"  root {root}" for root in group.roots)
            elif isinstance(group, TaskGroup):
                lines.extend(f"  {task.output_name} <- {task.label}" for task in group.tasks)
        return lines

    def _settings(self, staging_dir: Path | None, catalog_path: Path | None) -> Settings:
        settings = self.settings_factory.from_env(staging_dir=staging_dir)
        if catalog_path is not None:
            settings.catalog_path = catalog_path
        return settings


def _override_dwell(groups: list[GatherGroup], dwell_seconds: float) -> list[GatherGroup]:
    updated: list[GatherGroup] = []
    for group in groups:
        if isinstance(group, TaskGroup):
            tasks = [
                replace(task, dwell_seconds=dwell_seconds)
                if isinstance(task, TimedCaptureTask)
                else task
                for task in group.tasks
            ]
            group = replace(group, tasks=tasks)
        updated.append(group)
    return updated


@contextmanager
def _cancel_on_signal(orchestrator: GatherOrchestrator) -> Iterator[None]:
    if not hasattr(signal, "SIGINT"):
        yield
        return

    def _handler(signum: int, _: object | None) -> None:
        try:
            name = signal.Signals(signum).name
        except ValueError:
            name = str(signum)
        logger.warning("Received %s, cancelling capture waits", name)
        orchestrator.cancel()

    signums = [signal.SIGINT]
    if hasattr(signal, "SIGTERM"):
        signums.append(signal.SIGTERM)
    originals = {signum: signal.getsignal(signum) for signum in signums}
    try:
        for signum in signums:
            signal.signal(signum, _handler)
    except ValueError:
        # Signal handlers can only be installed in main thread.
        originals = {}
    try:
        yield
    finally:
        for signum, original in originals.items():
            signal.signal(signum, original)
