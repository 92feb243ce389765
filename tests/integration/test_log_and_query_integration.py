"""
Integration test for the implementation log workflow.

Drives the MCP tool functions end to end: log work for tasks of an active
spec, discover it with query_logs, archive the spec, and confirm the logged
artifacts stay searchable from the archive.
"""

import shutil
import textwrap
from pathlib import Path

import pytest

import main


TASKS_MD = textwrap.dedent("""\
    # Tasks Document

    - [x] 1. Create authentication API
      - _Leverage: src/server.ts_
      - _Requirements: 1.1_
    - [-] 2. Build login page
      - _Prompt: Role: Frontend developer | Task: login form | Success: user can sign in_
    """)


class TestImplementationLogWorkflow:
    """Integration tests for logging and querying through the MCP tools."""

    @pytest.fixture
    def project_dir(self, tmp_path):
        """Create a project with one active spec."""
        spec_dir = tmp_path / ".spec-workflow" / "specs" / "user-auth"
        spec_dir.mkdir(parents=True)
        (spec_dir / "tasks.md").write_text(TASKS_MD, encoding="utf-8")
        return tmp_path

    def _log_api(self, project_dir):
        return main.log_implementation(
            spec_name="user-auth",
            task_id="1",
            summary="Added login and logout endpoints",
            files_modified=["src/server.ts"],
            files_created=["src/routes/auth.ts"],
            statistics={"linesAdded": 120, "linesRemoved": 4},
            artifacts={
                "apiEndpoints": [
                    {"method": "POST", "path": "/api/auth/login", "purpose": "Sign in", "location": "src/routes/auth.ts:12"},
                    {"method": "POST", "path": "/api/auth/logout", "purpose": "Sign out", "location": "src/routes/auth.ts:40"},
                ],
                "functions": [
                    {"name": "validateToken", "location": "src/auth/jwt.ts:5", "signature": "(token: string) => Claims"},
                ],
            },
            project_path=str(project_dir),
        )

    def _log_page(self, project_dir):
        return main.log_implementation(
            spec_name="user-auth",
            task_id="2",
            summary="Login page calls the auth API",
            files_modified=[],
            files_created=["src/pages/Login.tsx"],
            statistics={"linesAdded": 80, "linesRemoved": 0},
            artifacts={
                "components": [{"name": "LoginForm", "type": "React", "location": "src/pages/Login.tsx"}],
                "integrations": [{
                    "description": "Login form posts credentials",
                    "frontendComponent": "LoginForm",
                    "backendEndpoint": "POST /api/auth/login",
                    "dataFlow": "Submit -> API -> redirect",
                }],
            },
            project_path=str(project_dir),
        )

    def test_log_then_query_then_archive(self, project_dir):
        """Test the complete log, search, archive, search cycle."""
        first = self._log_api(project_dir)
        second = self._log_page(project_dir)
        assert first["success"] and second["success"]
        assert first["data"]["task_stats"]["total_files_changed"] == 2

        found = main.query_logs("/api/auth/login", project_path=str(project_dir))
        assert found["success"] is True
        kinds = [m["artifact"]["type"] for m in found["data"]["matches"]]
        assert kinds == ["apiEndpoint", "integration"]
        assert found["data"]["specs_searched"] == 1
        assert found["data"]["logs_searched"] == 2

        endpoints_only = main.query_logs(
            "/api/auth", artifact_type="apiEndpoints", project_path=str(project_dir)
        )
        assert len(endpoints_only["data"]["matches"]) == 2

        archive_root = project_dir / ".spec-workflow" / "archive" / "specs"
        archive_root.mkdir(parents=True)
        shutil.move(str(project_dir / ".spec-workflow" / "specs" / "user-auth"), str(archive_root / "user-auth"))

        archived = main.query_logs("validateToken", spec_name="user-auth", project_path=str(project_dir))
        assert archived["success"] is True
        match = archived["data"]["matches"][0]
        assert match["is_archived"] is True
        assert match["artifact"]["type"] == "function"

        status = main.spec_status("user-auth", project_path=str(project_dir))
        assert status["is_archived"] is True
        assert status["log_count"] == 2

    def test_rejected_logs_leave_no_trace(self, project_dir):
        """Test that failed log attempts do not create a log file."""
        bad_task = main.log_implementation(
            spec_name="user-auth",
            task_id="9",
            summary="Not a real task",
            files_modified=[],
            files_created=[],
            statistics={"linesAdded": 1, "linesRemoved": 0},
            artifacts={"functions": [{"name": "f"}]},
            project_path=str(project_dir),
        )
        no_artifacts = main.log_implementation(
            spec_name="user-auth",
            task_id="1",
            summary="Forgot artifacts",
            files_modified=[],
            files_created=[],
            statistics={"linesAdded": 1, "linesRemoved": 0},
            artifacts={},
            project_path=str(project_dir),
        )

        assert bad_task["success"] is False
        assert no_artifacts["success"] is False
        assert not (project_dir / ".spec-workflow" / "specs" / "user-auth" / "implementation-log.json").exists()

    def test_project_root_from_environment(self, project_dir, monkeypatch):
        """Test resolving the project root from SPEC_WORKFLOW_PROJECT_ROOT."""
        monkeypatch.setenv("SPEC_WORKFLOW_PROJECT_ROOT", str(project_dir))
        self._log_api(project_dir)

        result = main.list_specs()

        assert result["specs"][0]["name"] == "user-auth"
        assert result["specs"][0]["log_count"] == 1

    def test_invalid_project_path(self, tmp_path):
        """Test the failure response for a project path that does not exist."""
        result = main.query_logs("anything", project_path=str(tmp_path / "nope"))

        assert result["success"] is False
        assert result["error"] == "ProjectRootError"
        assert result["next_steps"]

    def test_project_root_detected_from_cwd(self, project_dir, monkeypatch):
        """Test finding the project root by walking up from the working directory."""
        monkeypatch.delenv("SPEC_WORKFLOW_PROJECT_ROOT", raising=False)
        nested = project_dir / "src" / "deep"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)

        assert main._resolve_root(None) == Path(project_dir).resolve()
