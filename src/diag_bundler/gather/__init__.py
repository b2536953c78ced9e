"""Concurrent gathering engine for diagnostic bundles.

Groups run concurrently, one worker thread each; tasks inside a group run
strictly in order and a failed task never stops its group. Failures are
collected in a shared sink and surfaced once, after every group joined,
alongside whatever was gathered.
"""

from diag_bundler.gather.capture import TimedCaptureTask
from diag_bundler.gather.catalog import load_catalog, parse_catalog
from diag_bundler.gather.errors import CatalogError, GatherError, QueryError, TaskError
from diag_bundler.gather.groups import FileTreeGroup, GatherGroup, TaskGroup
from diag_bundler.gather.models import GroupResult, RunContext, RunReport, TaskFailure
from diag_bundler.gather.orchestrator import GatherOrchestrator, gather_logs
from diag_bundler.gather.tasks import ExternalProcessTask, StructuredQueryTask, run_all

__all__ = [
    "CatalogError",
    "ExternalProcessTask",
    "FileTreeGroup",
    "GatherError",
    "GatherGroup",
    "GatherOrchestrator",
    "GroupResult",
    "QueryError",
    "RunContext",
    "RunReport",
    "StructuredQueryTask",
    "TaskError",
    "TaskFailure",
    "TaskGroup",
    "TimedCaptureTask",
    "gather_logs",
    "load_catalog",
    "parse_catalog",
    "run_all",
]
