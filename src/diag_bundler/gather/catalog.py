"""JSON catalog of gathering groups.

The catalog is the injected configuration table: group names, task tuples and
file-tree roots. Host specific paths live here, never in the engine.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from diag_bundler.gather.capture import DEFAULT_DWELL_SECONDS, TimedCaptureTask
from diag_bundler.gather.errors import CatalogError
from diag_bundler.gather.groups import FileTreeGroup, GatherGroup, TaskGroup
from diag_bundler.gather.tasks import ExternalProcessTask, RunnableTask, StructuredQueryTask


def load_catalog(path: Path) -> list[GatherGroup]:
    """Load and validate a catalog file."""

    try:
        raw = json.loads(path.read_text("utf-8"))
    except OSError as error:
        raise CatalogError(f"Cannot read catalog {path}: {error}") from error
    except json.JSONDecodeError as error:
        raise CatalogError(f"Invalid JSON in catalog {path}: {error}") from error
    return parse_catalog(raw)


def parse_catalog(raw: Any) -> list[GatherGroup]:
    if not isinstance(raw, dict):
        raise CatalogError("catalog must be a JSON object")
    raw_groups = raw.get("groups")
    if not isinstance(raw_groups, list):
        raise CatalogError("catalog.groups must be an array")

    groups = [_parse_group(item, index) for index, item in enumerate(raw_groups)]
    validate_groups(groups)
    return groups


def validate_groups(groups: list[GatherGroup]) -> None:
    """Reject duplicate group names and artifact names shared by two tasks."""

    seen_groups: set[str] = set()
    seen_outputs: dict[str, str] = {}
    for group in groups:
        if group.name in seen_groups:
            raise CatalogError(f"Duplicate group name: {group.name!r}")
        seen_groups.add(group.name)
        if not isinstance(group, TaskGroup):
            continue
        if len(group.tasks) > 1 and any(isinstance(task, TimedCaptureTask) for task in group.tasks):
            raise CatalogError(f"Capture task must be the only task in group {group.name!r}")
        for task in group.tasks:
            owner = seen_outputs.get(task.output_name)
            if owner is not None:
                raise CatalogError(
                    f"Output name {task.output_name!r} used by both {owner!r} "
                    f"and {group.name!r}/{task.label!r}",
                )
            seen_outputs[task.output_name] = f"{group.name}/{task.label}"


def _parse_group(item: Any, index: int) -> GatherGroup:
    where = f"catalog.groups[{index}]"
    if not isinstance(item, dict):
        raise CatalogError(f"{where} must be an object")
    name = item.get("name")
    if not isinstance(name, str) or not name.strip():
        raise CatalogError(f"{where}.name must be a non-empty string")
    trace = item.get("trace", False)
    if not isinstance(trace, bool):
        raise CatalogError(f"{where}.trace must be a boolean")

    has_tasks = "tasks" in item
    has_roots = "roots" in item
    if has_tasks == has_roots:
        raise CatalogError(f"{where} must define exactly one of 'tasks' or 'roots'")

    if has_roots:
        roots = item["roots"]
        if not isinstance(roots, list) or not all(isinstance(root, str) for root in roots):
            raise CatalogError(f"{where}.roots must be an array of strings")
        return FileTreeGroup(name=name, roots=[Path(root) for root in roots], trace=trace)

    raw_tasks = item["tasks"]
    if not isinstance(raw_tasks, list):
        raise CatalogError(f"{where}.tasks must be an array")
    tasks = [
        _parse_task(raw_task, f"{where}.tasks[{task_index}]")
        for task_index, raw_task in enumerate(raw_tasks)
    ]
    return TaskGroup(name=name, tasks=tasks, trace=trace)


def _parse_task(raw: Any, where: str) -> RunnableTask:
    if not isinstance(raw, dict):
        raise CatalogError(f"{where} must be an object")
    task_type = raw.get("type")
    if task_type == "process":
        return _parse_process(raw, where)
    if task_type == "query":
        return StructuredQueryTask(
            query_class=_require_str(raw, "class", where),
            namespace=_require_str(raw, "namespace", where),
            output_name=_require_output(raw, where),
        )
    if task_type == "capture":
        start = raw.get("start")
        stop = raw.get("stop")
        if not isinstance(start, dict) or not isinstance(stop, dict):
            raise CatalogError(f"{where}.start and {where}.stop must be objects")
        dwell = raw.get("dwell_seconds", DEFAULT_DWELL_SECONDS)
        if isinstance(dwell, bool) or not isinstance(dwell, int | float) or dwell < 0:
            raise CatalogError(f"{where}.dwell_seconds must be a number >= 0")
        try:
            return TimedCaptureTask(
                start=_parse_process(start, f"{where}.start", produces_own_file=True),
                stop=_parse_process(stop, f"{where}.stop", produces_own_file=True),
                dwell_seconds=float(dwell),
            )
        except ValueError as error:
            raise CatalogError(f"{where}: {error}") from error
    raise CatalogError(f"{where}.type must be one of 'process', 'query', 'capture'")


def _parse_process(
    raw: dict[str, Any],
    where: str,
    *,
    produces_own_file: bool | None = None,
) -> ExternalProcessTask:
    args = raw.get("args", "")
    if not isinstance(args, str):
        raise CatalogError(f"{where}.args must be a string")
    own_file = produces_own_file
    if own_file is None:
        own_file = raw.get("produces_own_file", False)
    if not isinstance(own_file, bool):
        raise CatalogError(f"{where}.produces_own_file must be a boolean")
    timeout = raw.get("timeout_seconds")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0
    ):
        raise CatalogError(f"{where}.timeout_seconds must be a positive number")
    return ExternalProcessTask(
        executable=_require_str(raw, "executable", where),
        args=args,
        output_name=_require_output(raw, where),
        produces_own_file=own_file,
        timeout_seconds=float(timeout) if timeout is not None else None,
    )


def _require_str(raw: dict[str, Any], key: str, where: str) -> str:
    value = raw.get(key)
    if not isinstance(value, str) or not value.strip():
        raise CatalogError(f"{where}.{key} must be a non-empty string")
    return value


def _require_output(raw: dict[str, Any], where: str) -> str:
    output = _require_str(raw, "output", where)
    if Path(output).name != output:
        raise CatalogError(f"{where}.output must be a bare file name: {output!r}")
    return output
