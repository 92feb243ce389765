"""Data models for spec workflow implementation logs.

This module contains the core data structures used throughout the
implementation log subsystem: parsed tasks, log entries with their
artifacts and statistics, derived per-task rollups, and query results.

Log entries are persisted with camelCase keys so that collections written
by other spec workflow tools remain readable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from .exceptions import ValidationError


TASK_STATUSES = ("pending", "in-progress", "completed")

# Storage key -> singular type tag reported on query matches.
ARTIFACT_TYPES: Dict[str, str] = {
    "apiEndpoints": "apiEndpoint",
    "components": "component",
    "functions": "function",
    "classes": "class",
    "integrations": "integration",
}

# Type tag for matches produced by the entry summary alone.
SUMMARY_MATCH_TYPE = "summary"

# Documented field sets per artifact type; not enforced.
RECOMMENDED_ARTIFACT_FIELDS: Dict[str, List[str]] = {
    "apiEndpoints": ["method", "path", "purpose", "requestFormat", "responseFormat", "location"],
    "components": ["name", "type", "purpose", "location", "props", "exports"],
    "functions": ["name", "purpose", "location", "signature", "isExported"],
    "classes": ["name", "purpose", "location", "methods", "isExported"],
    "integrations": ["description", "frontendComponent", "backendEndpoint", "dataFlow"],
}


def utc_timestamp() -> str:
    """Return the current UTC time as a sortable ISO-8601 string."""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(slots=True)
class Task:
    """Representation of a single tasks.md checklist entry."""

    task_id: str
    description: str
    status: str = "pending"
    prompt: Optional[str] = None
    leverage: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    line_number: int = 0
    indent: int = 0

    @property
    def completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "description": self.description,
            "status": self.status,
            "prompt": self.prompt,
            "leverage": list(self.leverage),
            "requirements": list(self.requirements),
            "line_number": self.line_number,
        }


@dataclass(slots=True)
class TaskParseResult:
    """Tasks recovered from a document plus any non-fatal parse warnings."""

    tasks: List[Task] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def find(self, task_id: str) -> Optional[Task]:
        """Return the first task with the given id, if any."""
        for task in self.tasks:
            if task.task_id == task_id:
                return task
        return None

    def summary(self) -> Dict[str, int]:
        """Count tasks by status."""
        return {
            "total": len(self.tasks),
            "completed": sum(1 for t in self.tasks if t.status == "completed"),
            "in_progress": sum(1 for t in self.tasks if t.status == "in-progress"),
            "pending": sum(1 for t in self.tasks if t.status == "pending"),
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "tasks": [task.to_dict() for task in self.tasks],
            "warnings": list(self.warnings),
            "summary": self.summary(),
        }


@dataclass(slots=True)
class CodeStatistics:
    """Line and file counts recorded for one log entry."""

    lines_added: int = 0
    lines_removed: int = 0
    files_changed: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to the persisted representation."""
        return {
            "linesAdded": self.lines_added,
            "linesRemoved": self.lines_removed,
            "filesChanged": self.files_changed,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "CodeStatistics":
        """Create from the persisted representation.

        Raises:
            ValidationError: If ``data`` is not a mapping.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError(f"Statistics must be an object, got {type(data).__name__}")
        return cls(
            lines_added=int(data.get("linesAdded", 0) or 0),
            lines_removed=int(data.get("linesRemoved", 0) or 0),
            files_changed=int(data.get("filesChanged", 0) or 0),
        )


@dataclass(slots=True)
class ImplementationArtifacts:
    """Structured description of the code units produced by a task.

    Each list holds free-form field/value mappings; see
    ``RECOMMENDED_ARTIFACT_FIELDS`` for the conventional keys.
    """

    api_endpoints: List[Dict[str, Any]] = field(default_factory=list)
    components: List[Dict[str, Any]] = field(default_factory=list)
    functions: List[Dict[str, Any]] = field(default_factory=list)
    classes: List[Dict[str, Any]] = field(default_factory=list)
    integrations: List[Dict[str, Any]] = field(default_factory=list)

    _ATTRIBUTES = {
        "apiEndpoints": "api_endpoints",
        "components": "components",
        "functions": "functions",
        "classes": "classes",
        "integrations": "integrations",
    }

    def get(self, artifact_key: str) -> List[Dict[str, Any]]:
        """Return the artifact list stored under a camelCase key."""
        return getattr(self, self._ATTRIBUTES[artifact_key])

    def is_empty(self) -> bool:
        return not any(self.get(key) for key in ARTIFACT_TYPES)

    def count(self) -> int:
        return sum(len(self.get(key)) for key in ARTIFACT_TYPES)

    def to_dict(self) -> Dict[str, List[Dict[str, Any]]]:
        """Convert to the persisted representation, omitting empty lists."""
        return {key: list(self.get(key)) for key in ARTIFACT_TYPES if self.get(key)}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ImplementationArtifacts":
        """Create from a camelCase mapping, rejecting malformed lists."""
        if data is None:
            raise ValidationError(
                "Artifacts field is REQUIRED. Document the APIs, components, functions, "
                "classes, or integrations this task produced.",
                _ARTIFACT_NEXT_STEPS,
            )
        if not isinstance(data, dict):
            raise ValidationError("Artifacts must be an object keyed by artifact type", _ARTIFACT_NEXT_STEPS)

        unknown = sorted(set(data) - set(ARTIFACT_TYPES))
        if unknown:
            raise ValidationError(
                f"Unknown artifact type(s): {', '.join(unknown)}",
                [f"Use only: {', '.join(ARTIFACT_TYPES)}"],
            )

        values: Dict[str, List[Dict[str, Any]]] = {}
        for key, attribute in cls._ATTRIBUTES.items():
            items = data.get(key) or []
            if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
                raise ValidationError(
                    f"Artifact list '{key}' must be an array of objects",
                    _ARTIFACT_NEXT_STEPS,
                )
            values[attribute] = list(items)
        return cls(**values)


_ARTIFACT_NEXT_STEPS = [
    "Review the log_implementation tool description for artifact structure",
    "Document all API endpoints, components, functions, classes, and integrations",
    "Ensure artifacts contains at least one of: apiEndpoints, components, functions, classes, or integrations",
]


@dataclass(slots=True)
class LogEntry:
    """One immutable record of work performed against a task."""

    task_id: str
    summary: str
    artifacts: ImplementationArtifacts
    files_modified: List[str] = field(default_factory=list)
    files_created: List[str] = field(default_factory=list)
    statistics: CodeStatistics = field(default_factory=CodeStatistics)
    timestamp: Optional[str] = None
    id: Optional[str] = None

    def validate(self) -> List[str]:
        """Validate the entry and return any issues."""
        issues = []

        if not self.task_id or not str(self.task_id).strip():
            issues.append("Task ID is required")
        if not self.summary or not self.summary.strip():
            issues.append("Summary is required")
        if self.artifacts.is_empty():
            issues.append(
                "Artifacts must contain at least one non-empty list "
                "(apiEndpoints, components, functions, classes, or integrations)"
            )
        if self.statistics.lines_added < 0 or self.statistics.lines_removed < 0:
            issues.append("Line statistics must not be negative")
        for name, paths in (("filesModified", self.files_modified), ("filesCreated", self.files_created)):
            if not all(isinstance(path, str) for path in paths):
                issues.append(f"{name} must contain only path strings")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted representation."""
        return {
            "id": self.id,
            "taskId": self.task_id,
            "timestamp": self.timestamp,
            "summary": self.summary,
            "filesModified": list(self.files_modified),
            "filesCreated": list(self.files_created),
            "statistics": self.statistics.to_dict(),
            "artifacts": self.artifacts.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LogEntry":
        """Create from the persisted representation.

        Raises:
            ValidationError: If a list or object field has the wrong shape.
        """
        summary = data.get("summary")
        timestamp = data.get("timestamp")
        file_lists = {}
        for key in ("filesModified", "filesCreated"):
            paths = data.get(key) or []
            if not isinstance(paths, list):
                raise ValidationError(f"{key} must be a list of paths, got {type(paths).__name__}")
            file_lists[key] = [str(path) for path in paths]
        return cls(
            id=data.get("id"),
            task_id=str(data["taskId"]),
            timestamp=None if timestamp is None else str(timestamp),
            summary="" if summary is None else str(summary),
            files_modified=file_lists["filesModified"],
            files_created=file_lists["filesCreated"],
            statistics=CodeStatistics.from_dict(data.get("statistics")),
            artifacts=ImplementationArtifacts.from_dict(data.get("artifacts") or {}),
        )


@dataclass(slots=True)
class TaskStats:
    """Derived rollup of all log entries recorded for one task."""

    task_id: str
    total_entries: int = 0
    last_implementation: Optional[str] = None
    total_lines_added: int = 0
    total_lines_removed: int = 0
    total_files_changed: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "total_entries": self.total_entries,
            "last_implementation": self.last_implementation,
            "total_lines_added": self.total_lines_added,
            "total_lines_removed": self.total_lines_removed,
            "total_files_changed": self.total_files_changed,
        }


@dataclass(slots=True)
class SpecRef:
    """A specification name tagged with the namespace it was found in."""

    name: str
    is_archived: bool = False


@dataclass(slots=True)
class LogQueryMatch:
    """One result row: a matching artifact plus its log entry context."""

    spec_name: str
    task_id: str
    timestamp: Optional[str]
    is_archived: bool
    artifact_type: str
    artifact_data: Dict[str, Any]
    summary: str
    files_modified: List[str] = field(default_factory=list)
    files_created: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "spec_name": self.spec_name,
            "task_id": self.task_id,
            "timestamp": self.timestamp,
            "is_archived": self.is_archived,
            "artifact": {"type": self.artifact_type, "data": self.artifact_data},
            "context": {
                "summary": self.summary,
                "files_modified": list(self.files_modified),
                "files_created": list(self.files_created),
            },
        }


@dataclass(slots=True)
class QueryLogsResult:
    """Capped result set of a log query with truncation reporting."""

    search_term: str
    matches: List[LogQueryMatch] = field(default_factory=list)
    specs_searched: int = 0
    logs_searched: int = 0
    total_matches: int = 0

    @property
    def truncated(self) -> bool:
        return self.total_matches > len(self.matches)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "matches": [match.to_dict() for match in self.matches],
            "search_term": self.search_term,
            "specs_searched": self.specs_searched,
            "logs_searched": self.logs_searched,
            "total_matches": self.total_matches,
            "truncated": self.truncated,
        }
