"""Fan-out/fan-in orchestration of gathering groups.

Every selected group runs in its own worker thread. The join waits for all
groups before the error sink is read, so a failure reported by a group can
never be lost behind the last group result.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from diag_bundler.gather.groups import GatherGroup
from diag_bundler.gather.models import (
    ErrorSink,
    FailureKind,
    GroupResult,
    RunContext,
    RunReport,
    TaskFailure,
)
from diag_bundler.gather.query import CimQueryBackend, QueryBackend

logger = logging.getLogger(__name__)


class GatherOrchestrator:
    """Run gathering groups concurrently and join them into a report."""

    def __init__(
        self,
        groups: Sequence[GatherGroup],
        context: RunContext,
        *,
        max_workers: int | None = None,
    ) -> None:
        self._groups = list(groups)
        self._context = context
        self._max_workers = max_workers

    @property
    def context(self) -> RunContext:
        return self._context

    def cancel(self) -> None:
        """Cut waits short (capture dwell, retry delays); stop phases still run."""

        self._context.cancel_event.set()

    def selected_groups(self, *, include_trace: bool) -> list[GatherGroup]:
        return [group for group in self._groups if include_trace or not group.trace]

    def run(self, *, include_trace: bool = False) -> RunReport:
        groups = self.selected_groups(include_trace=include_trace)
        self._context.staging_dir.mkdir(parents=True, exist_ok=True)
        logger.info(
            "Gathering %d groups into %s (trace=%s)",
            len(groups),
            self._context.staging_dir,
            include_trace,
        )
        if not groups:
            return RunReport(groups=[], failures=self._context.errors.snapshot())

        results: list[GroupResult] = []
        workers = self._max_workers or len(groups)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="gather") as executor:
            futures: dict[Future[GroupResult], GatherGroup] = {
                executor.submit(group.gather, self._context.for_group(group.name)): group
                for group in groups
            }
            for future in as_completed(futures):
                results.append(self._join_group(futures[future], future))

        failures = self._context.errors.snapshot()
        if failures:
            logger.warning("Gathering finished with %d failures", len(failures))
        else:
            logger.info("Gathering finished without failures")
        return RunReport(groups=results, failures=failures)

    def _join_group(self, group: GatherGroup, future: Future[GroupResult]) -> GroupResult:
        try:
            result = future.result()
        except Exception as error:  # noqa: BLE001
            logger.exception("Group %s crashed", group.name)
            self._context.errors.add(
                TaskFailure(
                    group=group.name,
                    source=group.name,
                    kind=FailureKind.UNEXPECTED,
                    message=f"{group.name}: {error}",
                ),
            )
            return GroupResult(name=group.name)
        logger.info("Group %s done: %d artifacts", result.name, len(result.artifacts))
        return result


def gather_logs(  # noqa: PLR0913
    groups: Sequence[GatherGroup],
    *,
    include_trace: bool,
    staging_dir: Path,
    query_backend: QueryBackend | None = None,
    query_max_attempts: int = 3,
    query_retry_delay_seconds: float = 0.0,
    cancel_event: threading.Event | None = None,
    max_workers: int | None = None,
) -> RunReport:
    """Gather every group into ``staging_dir`` and return the run report.

    The report always lists one result per selected group; ``report.error``
    combines every recovered failure.
    """

    context = RunContext(
        staging_dir=staging_dir,
        errors=ErrorSink(),
        query_backend=query_backend or CimQueryBackend(),
        cancel_event=cancel_event or threading.Event(),
        query_max_attempts=query_max_attempts,
        query_retry_delay_seconds=query_retry_delay_seconds,
    )
    return GatherOrchestrator(groups, context, max_workers=max_workers).run(
        include_trace=include_trace,
    )
