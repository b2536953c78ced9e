"""Runnable gathering tasks and the sequential group runner."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Protocol

from diag_bundler.gather.errors import QueryError, TaskError
from diag_bundler.gather.models import FailureKind, RunContext

logger = logging.getLogger(__name__)

QUERY_HEADER_TEMPLATE = "Queried wmi objects [{query_class}] from namespace {namespace}\n\n"


class RunnableTask(Protocol):
    """Unit of work producing one artifact in the staging directory."""

    output_name: str

    @property
    def label(self) -> str:
        """Human readable task identity used in logs and failures."""

    def run(self, context: RunContext) -> Path:
        """Produce the artifact and return its path; raise ``TaskError`` on failure."""


@dataclass(slots=True, frozen=True)
class ExternalProcessTask:
    """Invoke an external program and capture (or relocate) its output.

    With ``produces_own_file`` the program writes the artifact itself; every
    argument mentioning ``output_name`` is pointed at the staging directory.
    Otherwise stdout and stderr are redirected into the artifact.
    """

    executable: str
    args: str
    output_name: str
    produces_own_file: bool = False
    timeout_seconds: float | None = None

    @property
    def label(self) -> str:
        return f"{self.executable} {self.args}".strip()

    def build_argv(self, out_path: Path) -> list[str]:
        tokens = self.args.split()
        if self.produces_own_file:
            tokens = [token.replace(self.output_name, str(out_path)) for token in tokens]
        return [self.executable, *tokens]

    def run(self, context: RunContext) -> Path:
        out_path = context.artifact_path(self.output_name)
        argv = self.build_argv(out_path)

        if self.produces_own_file:
            self._execute(argv, stdout=subprocess.DEVNULL)
            return out_path

        try:
            handle = out_path.open("wb")
        except OSError as error:
            logger.error("Error creating file %s: %s", out_path, error)
            raise TaskError(
                f"{self.label}: cannot create {out_path}: {error}",
                kind=FailureKind.IO,
                source=self.label,
            ) from error
        with handle:
            self._execute(argv, stdout=handle)
        return out_path

    def _execute(self, argv: list[str], *, stdout: IO[bytes] | int) -> None:
        logger.debug("Running %s", argv)
        try:
            completed = subprocess.run(  # noqa: S603
                argv,
                stdout=stdout,
                stderr=subprocess.STDOUT,
                timeout=self.timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired as error:
            raise TaskError(
                f"{self.label}: timed out after {self.timeout_seconds}s",
                kind=FailureKind.PROCESS,
                source=self.label,
            ) from error
        except OSError as error:
            raise TaskError(
                f"{self.label}: failed to start: {error}",
                kind=FailureKind.PROCESS,
                source=self.label,
            ) from error

        if completed.returncode != 0:
            raise TaskError(
                f"{self.label}: exit status {completed.returncode}",
                kind=FailureKind.PROCESS,
                source=self.label,
            )


@dataclass(slots=True, frozen=True)
class StructuredQueryTask:
    """Run a structured system query with bounded retry and persist the result."""

    query_class: str
    namespace: str
    output_name: str

    @property
    def label(self) -> str:
        return f"{self.query_class} ({self.namespace})"

    def run(self, context: RunContext) -> Path:
        out_path = context.artifact_path(self.output_name)
        try:
            handle = out_path.open("w", encoding="utf-8")
        except OSError as error:
            raise TaskError(
                f"{self.label}: cannot create {out_path}: {error}",
                kind=FailureKind.IO,
                source=self.label,
            ) from error

        with handle:
            data = self._query_with_retry(context)
            try:
                handle.write(
                    QUERY_HEADER_TEMPLATE.format(
                        query_class=self.query_class,
                        namespace=self.namespace,
                    ),
                )
                handle.write(data)
            except OSError as error:
                raise TaskError(
                    f"{self.label}: cannot write {out_path}: {error}",
                    kind=FailureKind.IO,
                    source=self.label,
                ) from error
        return out_path

    def _query_with_retry(self, context: RunContext) -> str:
        # WMI is flaky; retry before giving up.
        attempts = max(1, context.query_max_attempts)
        last_error: Exception | None = None
        for attempt in range(1, attempts + 1):
            try:
                return context.query_backend.query(self.query_class, self.namespace)
            except (QueryError, OSError) as error:
                last_error = error
                logger.warning(
                    "Query %s attempt %d/%d failed: %s",
                    self.label,
                    attempt,
                    attempts,
                    error,
                )
            if attempt < attempts and context.query_retry_delay_seconds > 0:
                context.cancel_event.wait(context.query_retry_delay_seconds)

        raise TaskError(
            f"{self.label}: {last_error}",
            kind=FailureKind.QUERY,
            source=self.label,
        ) from last_error


def run_all(tasks: list[RunnableTask], context: RunContext) -> list[Path]:
    """Run tasks one after another, skipping past failures.

    Returns the artifacts of successful tasks in task order; each failure is
    recorded in the context's error sink.
    """

    paths: list[Path] = []
    for task in tasks:
        try:
            path = task.run(context)
        except TaskError as error:
            logger.error("Error: %s while running %s", error, task.label)
            context.report(error)
            continue
        except Exception as error:  # noqa: BLE001
            logger.exception("Unexpected error while running %s", task.label)
            context.report(
                TaskError(
                    f"{task.label}: {error}",
                    kind=FailureKind.UNEXPECTED,
                    source=task.label,
                ),
            )
            continue
        paths.append(path)
    return paths
