"""Append-only implementation log store.

Each specification directory owns one ``implementation-log.json``
collection. Appends load the full collection, add the entry and write the
whole collection back while holding a lock dedicated to that directory.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Any, Dict, List

from .exceptions import LogStoreError, ValidationError
from .models import CodeStatistics, LogEntry, TaskStats, utc_timestamp
from .paths import LOG_FILE_NAME
from .storage import read_collection, write_collection
from .workflow_logging import log_operation, log_performance


logger = logging.getLogger("spec_workflow.log_store")

_LOCKS: Dict[Path, threading.Lock] = {}
_LOCKS_GUARD = threading.Lock()


def _spec_lock(spec_dir: Path) -> threading.Lock:
    """Return the process-wide lock guarding one specification directory."""
    with _LOCKS_GUARD:
        lock = _LOCKS.get(spec_dir)
        if lock is None:
            lock = _LOCKS[spec_dir] = threading.Lock()
        return lock


def _generate_entry_id() -> str:
    return str(uuid.uuid4())


class ImplementationLogManager:
    """Manage the implementation log collection of one specification."""

    def __init__(self, spec_dir: Path | str):
        self.spec_dir = Path(spec_dir).resolve()
        self.log_path = self.spec_dir / LOG_FILE_NAME

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_all_logs(self) -> List[LogEntry]:
        """Return every entry in append order; empty when nothing is logged yet."""
        return self._parse_entries(self._load_raw())

    def get_logs_for_task(self, task_id: str) -> List[LogEntry]:
        """Return the entries recorded for one task, oldest first."""
        return [entry for entry in self.get_all_logs() if entry.task_id == task_id]

    def get_log_count(self) -> int:
        """Count stored entries without decoding their contents."""
        return len(self._load_raw())

    def get_task_stats(self, task_id: str) -> TaskStats:
        """Roll up all entries recorded for a task."""
        stats = TaskStats(task_id=task_id)
        for entry in self.get_logs_for_task(task_id):
            stats.total_entries += 1
            stats.total_lines_added += entry.statistics.lines_added
            stats.total_lines_removed += entry.statistics.lines_removed
            stats.total_files_changed += entry.statistics.files_changed
            if entry.timestamp and (stats.last_implementation is None or entry.timestamp > stats.last_implementation):
                stats.last_implementation = entry.timestamp
        return stats

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @log_performance("add_log_entry")
    def add_log_entry(self, entry: LogEntry) -> LogEntry:
        """Validate, identify and persist a new entry.

        The caller's entry is not modified; the stored copy is returned.
        ``files_changed`` is always recomputed from the file lists.

        Raises:
            ValidationError: If the entry is incomplete or has no artifacts.
            LogStoreError: If the existing collection cannot be read or the
                new one cannot be written.
        """
        issues = entry.validate()
        if issues:
            raise ValidationError("; ".join(issues), [
                "Provide a summary and at least one populated artifact list",
                "Review the log_implementation tool description for artifact structure",
            ])

        with log_operation("add_log_entry", spec_dir=str(self.spec_dir), task_id=entry.task_id):
            with _spec_lock(self.spec_dir):
                raw_entries = self._load_raw()
                # A collection that cannot be read back must not grow.
                existing_ids = {item.id for item in self._parse_entries(raw_entries)}

                stored = LogEntry(
                    id=_generate_entry_id(),
                    task_id=entry.task_id,
                    timestamp=entry.timestamp or utc_timestamp(),
                    summary=entry.summary,
                    files_modified=list(entry.files_modified),
                    files_created=list(entry.files_created),
                    statistics=CodeStatistics(
                        lines_added=entry.statistics.lines_added,
                        lines_removed=entry.statistics.lines_removed,
                        files_changed=len(entry.files_modified) + len(entry.files_created),
                    ),
                    artifacts=entry.artifacts,
                )
                assert stored.id not in existing_ids, f"duplicate log entry id {stored.id}"

                raw_entries.append(stored.to_dict())
                self._save_raw(raw_entries)

        logger.info(f"Logged implementation {stored.id} for task '{stored.task_id}' in {self.spec_dir.name}")
        return stored

    # ------------------------------------------------------------------
    # Private helper methods
    # ------------------------------------------------------------------

    def _load_raw(self) -> List[Dict[str, Any]]:
        try:
            data = read_collection(self.log_path)
        except OSError as e:
            raise LogStoreError(f"Could not read implementation log {self.log_path}: {e}")
        if data is None:
            return []

        try:
            document = json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise LogStoreError(f"Implementation log {self.log_path} is corrupt: {e}")

        entries = document.get("entries") if isinstance(document, dict) else document
        if not isinstance(entries, list) or not all(isinstance(item, dict) for item in entries):
            raise LogStoreError(f"Implementation log {self.log_path} does not contain a list of entries")
        for item in entries:
            if "taskId" not in item:
                raise LogStoreError(f"Implementation log {self.log_path} has an entry without a taskId")
        return entries

    def _parse_entries(self, raw_entries: List[Dict[str, Any]]) -> List[LogEntry]:
        try:
            return [LogEntry.from_dict(item) for item in raw_entries]
        except (AttributeError, TypeError, ValueError) as e:
            raise LogStoreError(f"Implementation log {self.log_path} has a malformed entry: {e}")

    def _save_raw(self, entries: List[Dict[str, Any]]) -> None:
        document = {"entries": entries, "lastUpdated": utc_timestamp()}
        try:
            write_collection(self.log_path, json.dumps(document, indent=2).encode("utf-8"))
        except OSError as e:
            raise LogStoreError(f"Could not write implementation log {self.log_path}: {e}")
