"""MCP server exposing spec workflow implementation log tools."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.resources import TextResource

from spec_workflow.config import PROJECT_ROOT_ENV, Settings
from spec_workflow.paths import WORKFLOW_DIR_NAME
from spec_workflow.workflow import WorkflowManager
from spec_workflow.workflow_logging import setup_logging

mcp = FastMCP("spec-workflow-logs")


SERVER_ROOT = Path(__file__).resolve().parent


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd, *cwd.parents]
    for base in (SERVER_ROOT, *SERVER_ROOT.parents):
        if base not in bases:
            bases.append(base)
    return bases


def _locate_project_root() -> Optional[Path]:
    for base in _candidate_bases():
        if (base / WORKFLOW_DIR_NAME).is_dir():
            return base
    return None


def _resolve_root(project_path: Optional[str]) -> Path:
    if project_path:
        resolved = Path(project_path).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided project path '{project_path}' does not exist.")
        return resolved

    settings = Settings.from_env()
    if settings.project_root:
        env_path = settings.project_root.resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {PROJECT_ROOT_ENV} points to '{settings.project_root}', which does not exist."
            )
        return env_path

    detected = _locate_project_root()
    if detected:
        return detected

    raise ValueError(
        "Unable to determine project root automatically. Provide the 'project_path' argument "
        f"or set the {PROJECT_ROOT_ENV} environment variable."
    )


def _manager(project_path: Optional[str]) -> WorkflowManager:
    return WorkflowManager(_resolve_root(project_path))


def _root_failure(error: ValueError) -> Dict[str, Any]:
    return {
        "success": False,
        "error": "ProjectRootError",
        "message": str(error),
        "next_steps": [
            "Pass project_path as the absolute path of the project root",
            f"Or set {PROJECT_ROOT_ENV} before starting the server",
        ],
    }


@mcp.tool()
def log_implementation(
    spec_name: str,
    task_id: str,
    summary: str,
    files_modified: List[str],
    files_created: List[str],
    statistics: Dict[str, int],
    artifacts: Optional[Dict[str, List[Dict[str, Any]]]] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Record implementation details for a completed task.

    Artifacts are REQUIRED: future work searches these logs with query_logs
    before implementing anything, so document every artifact produced.

    statistics: {"linesAdded": int, "linesRemoved": int}; filesChanged is
    computed from files_modified and files_created.

    artifacts may contain any of these lists (at least one non-empty):
    - apiEndpoints: method, path, purpose, requestFormat, responseFormat, location
    - components: name, type, purpose, location, props, exports
    - functions: name, purpose, location, signature, isExported
    - classes: name, purpose, location, methods, isExported
    - integrations: description, frontendComponent, backendEndpoint, dataFlow

    Example: {"classes": [{"name": "UserService", "purpose": "User CRUD",
    "location": "services/user.ts", "methods": ["create", "update"]}]}"""

    try:
        manager = _manager(project_path)
    except ValueError as e:
        return _root_failure(e)
    return manager.log_implementation(
        spec_name,
        task_id,
        summary,
        files_modified=files_modified,
        files_created=files_created,
        statistics=statistics,
        artifacts=artifacts,
    )


@mcp.tool()
def query_logs(
    search_term: str,
    spec_name: Optional[str] = None,
    artifact_type: Optional[str] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Search implementation logs for existing code artifacts before building new ones.

    Case-insensitive substring match over artifact fields (names, paths,
    locations, ...) and task summaries, across active and archived specs.
    artifact_type: apiEndpoints, components, functions, classes,
    integrations or all. At most 100 matches are returned; total_matches
    and truncated report when more exist."""

    try:
        manager = _manager(project_path)
    except ValueError as e:
        return _root_failure(e)
    return manager.query_logs(search_term, spec_name=spec_name, artifact_type=artifact_type)


@mcp.tool()
def list_specs(project_path: Optional[str] = None) -> Dict[str, Any]:
    """Enumerate active and archived specs with task progress and log counts."""

    try:
        manager = _manager(project_path)
    except ValueError as e:
        return _root_failure(e)
    return manager.list_specs()


@mcp.tool()
def spec_status(spec_name: str, project_path: Optional[str] = None) -> Dict[str, Any]:
    """Show the parsed task list of a spec, its progress and how much work is logged."""

    try:
        manager = _manager(project_path)
    except ValueError as e:
        return _root_failure(e)
    return manager.spec_status(spec_name)


@mcp.tool()
def get_implementation_logs(
    spec_name: str,
    task_id: Optional[str] = None,
    project_path: Optional[str] = None,
) -> Dict[str, Any]:
    """Return the implementation log entries of a spec, optionally limited to one task."""

    try:
        manager = _manager(project_path)
    except ValueError as e:
        return _root_failure(e)
    return manager.get_implementation_logs(spec_name, task_id=task_id)


@mcp.resource("spec-workflow://specs")
def resource_specs():
    """Resource view listing specs and their logged work."""

    try:
        manager = _manager(None)
    except ValueError:
        return TextResource(
            uri="spec-workflow://specs",
            text=f"No project root detected. Launch tools with 'project_path' or set {PROJECT_ROOT_ENV}.",
        )

    specs = manager.list_specs()["specs"]
    if not specs:
        return TextResource(uri="spec-workflow://specs", text="No specs found.")

    lines = ["Spec Workflow Specs"]
    for spec in specs:
        label = " (archived)" if spec["is_archived"] else ""
        lines.append("")
        lines.append(f"- {spec['name']}{label}")
        if spec["tasks"]:
            lines.append(f"  Tasks: {spec['tasks']['completed']}/{spec['tasks']['total']} completed")
        if spec["log_count"] is not None:
            lines.append(f"  Implementation logs: {spec['log_count']}")
    return TextResource(uri="spec-workflow://specs", text="\n".join(lines))


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
