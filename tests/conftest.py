"""Shared test fixtures."""

from __future__ import annotations

import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from diag_bundler.gather.models import ErrorSink, RunContext


class StubQueryBackend:
    """Query backend replaying scripted outcomes; exceptions are raised."""

    def __init__(self, outcomes: list[str | Exception] | None = None) -> None:
        self.outcomes = list(outcomes or ["Name : stub\n"])
        self.calls: list[tuple[str, str]] = []

    def query(self, query_class: str, namespace: str) -> str:
        self.calls.append((query_class, namespace))
        outcome = self.outcomes[min(len(self.calls), len(self.outcomes)) - 1]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture()
def staging_dir(tmp_path: Path) -> Path:
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture()
def query_backend() -> StubQueryBackend:
    return StubQueryBackend()


@pytest.fixture()
def make_context(staging_dir: Path, query_backend: StubQueryBackend) -> Callable[..., RunContext]:
    def _make(**overrides) -> RunContext:
        values = {
            "staging_dir": staging_dir,
            "errors": ErrorSink(),
            "query_backend": query_backend,
            "group": "Test",
        }
        values.update(overrides)
        return RunContext(**values)

    return _make


@pytest.fixture()
def python_script(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a helper script run with ``sys.executable`` by process tasks."""

    scripts_dir = tmp_path / "scripts"
    scripts_dir.mkdir()

    def _write(name: str, body: str) -> Path:
        path = scripts_dir / name
        path.write_text(textwrap.dedent(body), "utf-8")
        return path

    return _write

