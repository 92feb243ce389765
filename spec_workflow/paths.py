"""Specification directory layout.

Active specifications live under ``<project>/.spec-workflow/specs/<name>``
and archived ones under ``<project>/.spec-workflow/archive/specs/<name>``.
Each specification directory holds a ``tasks.md`` task list and an
``implementation-log.json`` log collection.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from .exceptions import SpecNotFoundError, SpecRootNotFoundError, ValidationError


WORKFLOW_DIR_NAME = ".spec-workflow"
TASKS_FILE_NAME = "tasks.md"
LOG_FILE_NAME = "implementation-log.json"


class SpecPathResolver:
    """Resolve specification directories for one project root."""

    def __init__(self, project_root: Path | str):
        self.project_root = Path(project_root).expanduser().resolve()
        self.workflow_root = self.project_root / WORKFLOW_DIR_NAME
        self.specs_dir = self.workflow_root / "specs"
        self.archive_specs_dir = self.workflow_root / "archive" / "specs"

    def specs_root(self, archived: bool = False) -> Path:
        return self.archive_specs_dir if archived else self.specs_dir

    def spec_path(self, spec_name: str, archived: bool = False) -> Path:
        """Return the directory for a specification without checking it exists."""
        name = (spec_name or "").strip()
        if not name or name in {".", ".."} or "/" in name or "\\" in name:
            raise ValidationError(
                f"Invalid spec name: '{spec_name}'",
                ["Spec names are single directory names such as 'user-auth'"],
            )
        return self.specs_root(archived) / name

    def tasks_path(self, spec_name: str, archived: bool = False) -> Path:
        return self.spec_path(spec_name, archived) / TASKS_FILE_NAME

    def list_spec_directories(self, archived: bool = False) -> List[str]:
        """List specification names in one namespace, sorted by name.

        Raises:
            SpecRootNotFoundError: If the namespace root does not exist.
        """
        root = self.specs_root(archived)
        if not root.is_dir():
            raise SpecRootNotFoundError(str(root))
        return sorted(entry.name for entry in root.iterdir() if entry.is_dir())

    def locate_spec(self, spec_name: str) -> Tuple[Path, bool]:
        """Find a specification, preferring the active namespace.

        Returns:
            Tuple of (spec directory, is_archived).
        """
        active = self.spec_path(spec_name)
        if active.is_dir():
            return active, False
        archived = self.spec_path(spec_name, archived=True)
        if archived.is_dir():
            return archived, True
        raise SpecNotFoundError(spec_name)
