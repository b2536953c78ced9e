"""Structured system query backends (WMI/CIM)."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from typing import Protocol

from diag_bundler.gather.errors import QueryError

_CIM_COMMAND = (
    "Get-CimInstance -ClassName {query_class} -Namespace '{namespace}' | Format-List -Property *"
)


class QueryBackend(Protocol):
    """Protocol implemented by structured query backends."""

    def query(self, query_class: str, namespace: str) -> str:
        """Return the serialized objects of ``query_class`` in ``namespace``."""


@dataclass(slots=True)
class CimQueryBackend:
    """Query CIM/WMI objects through PowerShell ``Get-CimInstance``."""

    powershell: str = "powershell.exe"
    timeout_seconds: float | None = 120.0

    def query(self, query_class: str, namespace: str) -> str:
        command = _CIM_COMMAND.format(
            query_class=query_class,
            namespace=namespace.replace("'", "''"),
        )
        try:
            completed = subprocess.run(  # noqa: S603
                [self.powershell, "-NoProfile", "-NonInteractive", "-Command", command],
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as error:
            raise QueryError(f"PowerShell not found: {self.powershell}") from error
        except subprocess.TimeoutExpired as error:
            raise QueryError(
                f"Query [{query_class}] in {namespace} timed out after {self.timeout_seconds}s",
            ) from error
        except OSError as error:
            raise QueryError(f"PowerShell failed to start: {error}") from error

        if completed.returncode != 0:
            detail = (completed.stderr or completed.stdout).strip().splitlines()
            raise QueryError(
                f"Query [{query_class}] in {namespace} failed with exit code "
                f"{completed.returncode}: {detail[0] if detail else 'no output'}",
            )
        return completed.stdout
