"""Request/response facade for the implementation log tools.

WorkflowManager turns tool arguments into calls on the task parser, the
log store and the query engine, and turns every failure into a response
with a message and suggested next steps instead of a stack trace.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import Settings
from .exceptions import (
    SpecNotFoundError,
    SpecWorkflowError,
    TaskNotFoundError,
    TasksDocumentError,
    ValidationError,
)
from .implementation_log import ImplementationLogManager
from .log_query import LogQueryEngine
from .models import (
    CodeStatistics,
    ImplementationArtifacts,
    LogEntry,
    TaskParseResult,
)
from .paths import SpecPathResolver, TASKS_FILE_NAME
from .task_parser import parse_tasks_from_markdown
from .workflow_logging import (
    log_error_with_context,
    log_implementation_logged,
    log_logs_queried,
)


logger = logging.getLogger("spec_workflow.workflow")


def _failure(error: Exception, operation: str, **context) -> Dict[str, Any]:
    """Build a failure response; unexpected errors are logged with context."""
    if isinstance(error, AssertionError):
        raise error
    if isinstance(error, SpecWorkflowError):
        message = error.message
        next_steps = list(error.next_steps)
        logger.warning(f"{operation} rejected: {message}")
    else:
        message = f"Failed to {operation.replace('_', ' ')}: {error}"
        next_steps = [
            "Verify all required parameters are provided",
            "Check that the project path is valid and readable",
        ]
        log_error_with_context(error, {"operation": operation, **context})
    return {
        "success": False,
        "error": type(error).__name__,
        "message": message,
        "next_steps": next_steps,
    }


def _coerce_count(data: Dict[str, Any], camel: str, snake: str) -> int:
    value = data.get(camel, data.get(snake, 0))
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise ValidationError(f"statistics.{camel} must be a whole number, got {value!r}")
    if value < 0:
        raise ValidationError(f"statistics.{camel} must not be negative, got {value}")
    return int(value)


class WorkflowManager:
    """Implementation log operations for one project root."""

    def __init__(self, root: Path | str, settings: Optional[Settings] = None):
        """Initialize with the project root that holds .spec-workflow/."""
        self.settings = settings or Settings.from_env()
        self.resolver = SpecPathResolver(root)
        self.query_engine = LogQueryEngine(
            self.resolver,
            max_results=self.settings.max_query_results,
            max_workers=self.settings.query_workers,
        )

    # ------------------------------------------------------------------
    # Task documents
    # ------------------------------------------------------------------

    def load_tasks(self, spec_dir: Path, spec_name: str) -> TaskParseResult:
        """Read and parse a specification's tasks.md."""
        tasks_path = spec_dir / TASKS_FILE_NAME
        try:
            content = tasks_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TasksDocumentError(f"Failed to read tasks for '{spec_name}': {e}")
        parsed = parse_tasks_from_markdown(content)
        for warning in parsed.warnings:
            logger.debug(f"{spec_name}/{TASKS_FILE_NAME}: {warning}")
        return parsed

    # ------------------------------------------------------------------
    # Logging implementations
    # ------------------------------------------------------------------

    def log_implementation(
        self,
        spec_name: str,
        task_id: str,
        summary: str,
        files_modified: Optional[List[str]] = None,
        files_created: Optional[List[str]] = None,
        statistics: Optional[Dict[str, Any]] = None,
        artifacts: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Record implementation details for a task of an active specification."""
        try:
            entry = LogEntry(
                task_id=str(task_id).strip() if task_id is not None else "",
                summary=summary or "",
                artifacts=ImplementationArtifacts.from_dict(artifacts),
                files_modified=list(files_modified or []),
                files_created=list(files_created or []),
                statistics=CodeStatistics(
                    lines_added=_coerce_count(statistics or {}, "linesAdded", "lines_added"),
                    lines_removed=_coerce_count(statistics or {}, "linesRemoved", "lines_removed"),
                ),
            )
            issues = entry.validate()
            if issues:
                raise ValidationError("; ".join(issues), [
                    "Review the log_implementation tool description for artifact structure",
                    "Document all API endpoints, components, functions, classes, and integrations",
                ])

            spec_dir = self.resolver.spec_path(spec_name)
            if not spec_dir.is_dir():
                raise SpecNotFoundError(spec_name, [
                    "Use list_specs to see available specs",
                    "Implementation logs can only be added to active specs",
                ])

            parsed = self.load_tasks(spec_dir, spec_name)
            if parsed.find(entry.task_id) is None:
                raise TaskNotFoundError(entry.task_id, spec_name)

            manager = ImplementationLogManager(spec_dir)
            created = manager.add_log_entry(entry)
            task_stats = manager.get_task_stats(created.task_id)
        except Exception as e:
            return _failure(e, "log_implementation", spec_name=spec_name, task_id=task_id)

        log_implementation_logged(
            spec_name,
            created.task_id,
            created.id,
            artifact_count=created.artifacts.count(),
            files_changed=created.statistics.files_changed,
        )
        return {
            "success": True,
            "message": f"Implementation logged for task '{created.task_id}'",
            "data": {
                "entry_id": created.id,
                "entry": created.to_dict(),
                "task_stats": task_stats.to_dict(),
            },
            "next_steps": [
                "Mark task as completed in tasks.md by changing [-] to [x]",
                "Continue with next pending task",
            ],
        }

    # ------------------------------------------------------------------
    # Querying
    # ------------------------------------------------------------------

    def query_logs(
        self,
        search_term: str,
        spec_name: Optional[str] = None,
        artifact_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Search implementation logs for existing artifacts."""
        try:
            result = self.query_engine.query(search_term, spec_name=spec_name, artifact_type=artifact_type)
        except Exception as e:
            return _failure(e, "query_logs", search_term=search_term, spec_name=spec_name)

        shown = len(result.matches)
        if shown == 0:
            message = f'No matches found for "{search_term}"'
        elif result.truncated:
            message = f"Found {shown} match(es) (limited from {result.total_matches} total)"
        else:
            message = f"Found {shown} match(es)"

        log_logs_queried(
            search_term,
            result.total_matches,
            spec_name=spec_name,
            specs_searched=result.specs_searched,
            logs_searched=result.logs_searched,
        )
        response: Dict[str, Any] = {"success": True, "message": message, "data": result.to_dict()}
        if result.truncated:
            response["next_steps"] = [
                "Narrow the search term",
                "Filter by spec_name or artifact_type",
            ]
        elif shown == 0:
            response["next_steps"] = [
                "Nothing similar has been logged; implement it and record it with log_implementation",
            ]
        return response

    # ------------------------------------------------------------------
    # Specification overview
    # ------------------------------------------------------------------

    def list_specs(self) -> Dict[str, Any]:
        """List active and archived specifications with task and log counts."""
        specs = []
        for ref in self.query_engine.list_specs():
            spec_dir = self.resolver.spec_path(ref.name, archived=ref.is_archived)
            item: Dict[str, Any] = {"name": ref.name, "is_archived": ref.is_archived}
            try:
                item["tasks"] = self.load_tasks(spec_dir, ref.name).summary()
            except TasksDocumentError:
                item["tasks"] = None
            try:
                item["log_count"] = ImplementationLogManager(spec_dir).get_log_count()
            except SpecWorkflowError as e:
                logger.warning(f"Could not count logs for '{ref.name}': {e}")
                item["log_count"] = None
            specs.append(item)

        return {
            "success": True,
            "specs": specs,
            "count": len(specs),
            "message": f"Found {len(specs)} specs" if specs else "No specs found under .spec-workflow/specs",
        }

    def spec_status(self, spec_name: str) -> Dict[str, Any]:
        """Report parsed tasks and logged work for one specification."""
        try:
            spec_dir, is_archived = self.resolver.locate_spec(spec_name)
            parsed = self.load_tasks(spec_dir, spec_name)
            log_count = ImplementationLogManager(spec_dir).get_log_count()
        except Exception as e:
            return _failure(e, "spec_status", spec_name=spec_name)

        pending = [task.to_dict() for task in parsed.tasks if not task.completed]
        return {
            "success": True,
            "spec_name": spec_name,
            "is_archived": is_archived,
            "summary": parsed.summary(),
            "tasks": [task.to_dict() for task in parsed.tasks],
            "warnings": list(parsed.warnings),
            "log_count": log_count,
            "next_task": pending[0] if pending else None,
            "message": f"{parsed.summary()['completed']}/{len(parsed.tasks)} tasks completed",
        }

    def get_implementation_logs(self, spec_name: str, task_id: Optional[str] = None) -> Dict[str, Any]:
        """Return logged entries of a specification, optionally for one task."""
        try:
            spec_dir, is_archived = self.resolver.locate_spec(spec_name)
            manager = ImplementationLogManager(spec_dir)
            if task_id:
                entries = manager.get_logs_for_task(task_id)
                task_stats = manager.get_task_stats(task_id).to_dict()
            else:
                entries = manager.get_all_logs()
                task_stats = None
        except Exception as e:
            return _failure(e, "get_implementation_logs", spec_name=spec_name, task_id=task_id)

        return {
            "success": True,
            "spec_name": spec_name,
            "is_archived": is_archived,
            "entries": [entry.to_dict() for entry in entries],
            "count": len(entries),
            "task_stats": task_stats,
        }
