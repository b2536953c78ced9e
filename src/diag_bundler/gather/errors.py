"""Error types raised by gathering tasks and the orchestrator."""

from __future__ import annotations

from typing import TYPE_CHECKING

from diag_bundler.gather.models import FailureKind

if TYPE_CHECKING:
    from diag_bundler.gather.models import TaskFailure


class TaskError(RuntimeError):
    """One gathering task failed; recovered by the group runner."""

    def __init__(self, message: str, *, kind: FailureKind, source: str = "") -> None:
        super().__init__(message)
        self.kind = kind
        self.source = source


class TraversalError(TaskError):
    """A file-tree root could not be walked."""

    def __init__(self, message: str, *, root: str) -> None:
        super().__init__(message, kind=FailureKind.TRAVERSAL, source=root)
        self.root = root


class QueryError(RuntimeError):
    """Structured system query failed (single attempt)."""


class CatalogError(ValueError):
    """Group catalog is malformed or violates run invariants."""


class GatherError(RuntimeError):
    """Aggregated failure of one run; message joins every failure with newlines."""

    def __init__(self, failures: list[TaskFailure]) -> None:
        super().__init__("\n".join(failure.message for failure in failures))
        self.failures = list(failures)
