"""Domain models shared by gathering tasks, groups and the orchestrator."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diag_bundler.gather.errors import GatherError, TaskError
    from diag_bundler.gather.query import QueryBackend


class FailureKind(str, Enum):
    """Normalized failure classes recorded in the error sink."""

    IO = "io"
    PROCESS = "process"
    QUERY = "query"
    TRAVERSAL = "traversal"
    CAPTURE_START = "capture_start"
    UNEXPECTED = "unexpected"


@dataclass(slots=True, frozen=True)
class TaskFailure:
    """One recovered failure: a failed task or a failed file-tree root."""

    group: str
    source: str
    kind: FailureKind
    message: str


class ErrorSink:
    """Thread-safe, unordered collection of failures across all groups."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failures: list[TaskFailure] = []

    def add(self, failure: TaskFailure) -> None:
        with self._lock:
            self._failures.append(failure)

    def snapshot(self) -> list[TaskFailure]:
        with self._lock:
            return list(self._failures)

    def __len__(self) -> int:
        with self._lock:
            return len(self._failures)


@dataclass(slots=True)
class GroupResult:
    """Artifacts actually produced by one named group."""

    name: str
    artifacts: list[Path] = field(default_factory=list)


@dataclass(slots=True)
class RunReport:
    """All group results of one run plus every recovered failure."""

    groups: list[GroupResult]
    failures: list[TaskFailure] = field(default_factory=list)

    @property
    def error(self) -> GatherError | None:
        """Combined error, present iff at least one failure was recorded."""

        from diag_bundler.gather.errors import GatherError

        if not self.failures:
            return None
        return GatherError(self.failures)

    def raise_for_errors(self) -> None:
        error = self.error
        if error is not None:
            raise error

    def group(self, name: str) -> GroupResult | None:
        for result in self.groups:
            if result.name == name:
                return result
        return None


@dataclass(slots=True)
class RunContext:
    """Per-run state handed to every task.

    ``group`` is empty for the run-wide context; the orchestrator derives one
    view per group with :meth:`for_group` so failures are attributed.
    """

    staging_dir: Path
    errors: ErrorSink
    query_backend: QueryBackend
    cancel_event: threading.Event = field(default_factory=threading.Event)
    group: str = ""
    query_max_attempts: int = 3
    query_retry_delay_seconds: float = 0.0

    def for_group(self, name: str) -> RunContext:
        return replace(self, group=name)

    def artifact_path(self, output_name: str) -> Path:
        return self.staging_dir / output_name

    def report(self, error: TaskError, *, kind: FailureKind | None = None) -> TaskFailure:
        """Record a recovered task error in the shared sink."""

        failure = TaskFailure(
            group=self.group,
            source=error.source,
            kind=kind or error.kind,
            message=str(error),
        )
        self.errors.add(failure)
        return failure
