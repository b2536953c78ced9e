"""Named gathering groups run by the orchestrator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from diag_bundler.gather.filetree import collect_file_paths
from diag_bundler.gather.models import GroupResult, RunContext
from diag_bundler.gather.tasks import RunnableTask, run_all

logger = logging.getLogger(__name__)


class GatherGroup(Protocol):
    """One named unit of concurrent execution."""

    name: str
    trace: bool

    def gather(self, context: RunContext) -> GroupResult:
        """Run the group to completion; failures go to ``context.errors``."""


@dataclass(slots=True)
class TaskGroup:
    """Group of runnable tasks executed strictly in order."""

    name: str
    tasks: list[RunnableTask] = field(default_factory=list)
    trace: bool = False

    def gather(self, context: RunContext) -> GroupResult:
        return GroupResult(name=self.name, artifacts=run_all(self.tasks, context))


@dataclass(slots=True)
class FileTreeGroup:
    """Group reporting existing files under log roots instead of producing artifacts."""

    name: str
    roots: list[Path] = field(default_factory=list)
    trace: bool = False

    def gather(self, context: RunContext) -> GroupResult:
        paths, errors = collect_file_paths(self.roots)
        for error in errors:
            context.report(error)
        logger.info("%s: collected %d files from %d roots", self.name, len(paths), len(self.roots))
        return GroupResult(name=self.name, artifacts=paths)
