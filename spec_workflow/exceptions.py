"""Custom exceptions for the implementation log subsystem.

Every error carries a short list of suggested next steps so that the
tool layer can hand a remediation hint back to the caller instead of a
stack trace.
"""

from __future__ import annotations

from typing import Iterable, List, Optional


class SpecWorkflowError(Exception):
    """Base exception for all spec workflow errors."""

    default_next_steps: List[str] = []

    def __init__(self, message: str, next_steps: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.message = message
        self.next_steps = list(next_steps) if next_steps is not None else list(self.default_next_steps)


class ValidationError(SpecWorkflowError, ValueError):
    """Raised when caller input is rejected before any side effect."""

    default_next_steps = ["Verify all required parameters are provided"]


class SpecNotFoundError(SpecWorkflowError, FileNotFoundError):
    """Raised when a specification exists in neither namespace."""

    def __init__(self, spec_name: str, next_steps: Optional[Iterable[str]] = None):
        super().__init__(
            f"Spec not found: {spec_name}",
            next_steps or ["Use list_specs to see available specs", "Check spec name spelling"],
        )
        self.spec_name = spec_name


class SpecRootNotFoundError(SpecWorkflowError, FileNotFoundError):
    """Raised when an active or archived specs root directory is absent."""

    def __init__(self, root: str):
        super().__init__(f"Specs directory does not exist: {root}")
        self.root = root


class TaskNotFoundError(SpecWorkflowError, LookupError):
    """Raised when a task id is absent from the specification's task list."""

    def __init__(self, task_id: str, spec_name: str):
        super().__init__(
            f"Task '{task_id}' not found in specification '{spec_name}'",
            [
                f"Check the task ID in .spec-workflow/specs/{spec_name}/tasks.md",
                "Verify the spec name is correct",
                "Use spec_status to see available tasks",
            ],
        )
        self.task_id = task_id
        self.spec_name = spec_name


class TasksDocumentError(SpecWorkflowError, OSError):
    """Raised when a specification's tasks.md cannot be read."""

    default_next_steps = [
        "Check that tasks.md exists in the specification directory",
        "Verify the tasks file is valid markdown",
        "Use spec_status to diagnose issues",
    ]


class LogStoreError(SpecWorkflowError, OSError):
    """Raised when an implementation log collection cannot be read or written."""

    default_next_steps = [
        "Check that implementation-log.json is valid JSON",
        "Verify filesystem permissions for the specification directory",
    ]
