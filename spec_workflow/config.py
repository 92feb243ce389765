"""Environment-driven settings for the spec workflow log tools."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional


PROJECT_ROOT_ENV = "SPEC_WORKFLOW_PROJECT_ROOT"
LOG_LEVEL_ENV = "SPEC_WORKFLOW_LOG_LEVEL"
LOG_FILE_ENV = "SPEC_WORKFLOW_LOG_FILE"
MAX_QUERY_RESULTS_ENV = "SPEC_WORKFLOW_MAX_QUERY_RESULTS"
QUERY_WORKERS_ENV = "SPEC_WORKFLOW_QUERY_WORKERS"

DEFAULT_MAX_QUERY_RESULTS = 100
DEFAULT_QUERY_WORKERS = 4


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got '{raw}'")
    if value < 1:
        raise ValueError(f"Environment variable {name} must be at least 1, got {value}")
    return value


@dataclass(slots=True)
class Settings:
    """Runtime settings; read fresh from the environment on each load."""

    project_root: Optional[Path] = None
    log_level: str = "INFO"
    log_file: Optional[Path] = None
    max_query_results: int = DEFAULT_MAX_QUERY_RESULTS
    query_workers: int = DEFAULT_QUERY_WORKERS

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from SPEC_WORKFLOW_* environment variables."""
        root = os.getenv(PROJECT_ROOT_ENV)
        log_file = os.getenv(LOG_FILE_ENV)
        return cls(
            project_root=Path(root).expanduser() if root else None,
            log_level=os.getenv(LOG_LEVEL_ENV, "INFO").upper(),
            log_file=Path(log_file).expanduser() if log_file else None,
            max_query_results=_int_env(MAX_QUERY_RESULTS_ENV, DEFAULT_MAX_QUERY_RESULTS),
            query_workers=_int_env(QUERY_WORKERS_ENV, DEFAULT_QUERY_WORKERS),
        )
