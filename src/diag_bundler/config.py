"""Runtime configuration for gathering runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


@dataclass(slots=True)
class GatherSettings:
    """Orchestration and retry settings."""

    include_trace: bool = False
    trace_dwell_seconds: float | None = None
    query_max_attempts: int = 3
    query_retry_delay_seconds: float = 0.0
    max_workers: int | None = None


@dataclass(slots=True)
class QuerySettings:
    """Structured query backend settings."""

    powershell: str = "powershell.exe"
    timeout_seconds: float = 120.0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    staging_dir: Path = Path("diag_bundle")
    catalog_path: Path | None = None
    gather: GatherSettings = field(default_factory=GatherSettings)
    query: QuerySettings = field(default_factory=QuerySettings)

    @classmethod
    def from_env(cls, staging_dir: Path | None = None) -> Settings:
        """Load settings from ``DIAG_BUNDLER_*`` environment variables."""

        catalog_raw = os.getenv("DIAG_BUNDLER_CATALOG_PATH", "").strip()
        dwell_raw = os.getenv("DIAG_BUNDLER_TRACE_DWELL_SECONDS", "").strip()
        workers_raw = os.getenv("DIAG_BUNDLER_MAX_WORKERS", "").strip()
        return cls(
            staging_dir=staging_dir
            or Path(os.getenv("DIAG_BUNDLER_STAGING_DIR", "diag_bundle")),
            catalog_path=Path(catalog_raw) if catalog_raw else None,
            gather=GatherSettings(
                include_trace=_env_bool("DIAG_BUNDLER_INCLUDE_TRACE", default=False),
                trace_dwell_seconds=float(dwell_raw) if dwell_raw else None,
                query_max_attempts=int(os.getenv("DIAG_BUNDLER_QUERY_MAX_ATTEMPTS", "3")),
                query_retry_delay_seconds=float(
                    os.getenv("DIAG_BUNDLER_QUERY_RETRY_DELAY_SECONDS", "0"),
                ),
                max_workers=int(workers_raw) if workers_raw else None,
            ),
            query=QuerySettings(
                powershell=os.getenv("DIAG_BUNDLER_POWERSHELL", "powershell.exe"),
                timeout_seconds=float(os.getenv("DIAG_BUNDLER_QUERY_TIMEOUT_SECONDS", "120")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for out-of-range values."""

        if self.catalog_path is None:
            raise ValueError(
                "A group catalog is required. Set DIAG_BUNDLER_CATALOG_PATH or pass --catalog.",
            )
        if self.gather.query_max_attempts < 1:
            raise ValueError("DIAG_BUNDLER_QUERY_MAX_ATTEMPTS must be >= 1.")
        if self.gather.query_retry_delay_seconds < 0:
            raise ValueError("DIAG_BUNDLER_QUERY_RETRY_DELAY_SECONDS must be >= 0.")
        if self.gather.trace_dwell_seconds is not None and self.gather.trace_dwell_seconds < 0:
            raise ValueError("DIAG_BUNDLER_TRACE_DWELL_SECONDS must be >= 0.")
        if self.gather.max_workers is not None and self.gather.max_workers < 1:
            raise ValueError("DIAG_BUNDLER_MAX_WORKERS must be >= 1.")
        if self.query.timeout_seconds <= 0:
            raise ValueError("DIAG_BUNDLER_QUERY_TIMEOUT_SECONDS must be > 0.")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
