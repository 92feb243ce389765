"""Unit tests for the tasks.md parser.

This module tests task line recognition, status markers, metadata
attachment, and graceful degradation on malformed input.
"""

import textwrap

from spec_workflow.task_parser import parse_tasks_from_markdown, render_tasks_markdown


SAMPLE_TASKS = textwrap.dedent("""\
    # Tasks Document

    - [ ] 1. Set up project structure
      - File: src/index.ts
      - _Leverage: src/utils/index.ts, src/config.ts_
      - _Requirements: 1.1, 2.3_
    - [-] 2. Implement user service
      - [x] 2.1 Create UserService class
        - _Prompt: Role: Backend developer | Task: build service_
      - [ ] 2.2 Add endpoints
    - [x] 3. Write docs
    """)


def _shape(result):
    return [
        (t.task_id, t.status, t.description, t.prompt, t.leverage, t.requirements, t.indent)
        for t in result.tasks
    ]


class TestTaskLines:
    """Test cases for task line recognition."""

    def test_parses_tasks_in_document_order(self):
        """Test that every task line is recovered in order."""
        result = parse_tasks_from_markdown(SAMPLE_TASKS)

        assert [t.task_id for t in result.tasks] == ["1", "2", "2.1", "2.2", "3"]
        assert result.warnings == []

    def test_status_markers(self):
        """Test mapping of checkbox markers to statuses."""
        result = parse_tasks_from_markdown(SAMPLE_TASKS)
        statuses = {t.task_id: t.status for t in result.tasks}

        assert statuses == {
            "1": "pending",
            "2": "in-progress",
            "2.1": "completed",
            "2.2": "pending",
            "3": "completed",
        }

    def test_uppercase_x_and_empty_marker(self):
        """Test that [X] completes and [] is pending."""
        result = parse_tasks_from_markdown("- [X] 1. Done\n- [] 2. Open\n")

        assert [t.status for t in result.tasks] == ["completed", "pending"]
        assert result.warnings == []

    def test_description_and_identifier(self):
        """Test that the identifier is kept as written and separated from the description."""
        result = parse_tasks_from_markdown("- [ ] 3.1.4 Deep task\n- [ ] 10. Tenth task\n")

        assert result.tasks[0].task_id == "3.1.4"
        assert result.tasks[0].description == "Deep task"
        assert result.tasks[1].task_id == "10"
        assert result.tasks[1].description == "Tenth task"

    def test_line_numbers_and_indent(self):
        """Test that source positions are recorded."""
        result = parse_tasks_from_markdown(SAMPLE_TASKS)
        task = result.find("2.1")

        assert task.line_number == 8
        assert task.indent == 2

    def test_asterisk_bullets(self):
        """Test that '*' bullets are accepted."""
        result = parse_tasks_from_markdown("* [x] 1. Star bullet\n")

        assert result.tasks[0].status == "completed"

    def test_empty_document(self):
        """Test parsing an empty document."""
        result = parse_tasks_from_markdown("")

        assert result.tasks == []
        assert result.warnings == []


class TestMetadata:
    """Test cases for metadata sub-lines."""

    def test_leverage_and_requirements(self):
        """Test that leverage and requirements are split into lists."""
        task = parse_tasks_from_markdown(SAMPLE_TASKS).find("1")

        assert task.leverage == ["src/utils/index.ts", "src/config.ts"]
        assert task.requirements == ["1.1", "2.3"]
        assert task.prompt is None

    def test_prompt_attached_to_nested_task(self):
        """Test that metadata attaches to the closest task line above it."""
        result = parse_tasks_from_markdown(SAMPLE_TASKS)

        assert result.find("2.1").prompt == "Role: Backend developer | Task: build service"
        assert result.find("2").prompt is None

    def test_unknown_sub_lines_ignored(self):
        """Test that other sub-lines neither attach nor warn."""
        result = parse_tasks_from_markdown(SAMPLE_TASKS)

        assert result.find("1").description == "Set up project structure"
        assert result.warnings == []

    def test_labels_are_case_sensitive(self):
        """Test that lower-case labels are not recognised."""
        content = "- [ ] 1. Task\n  - _leverage: a.ts_\n  - _Leverage: b.ts_\n"
        task = parse_tasks_from_markdown(content).tasks[0]

        assert task.leverage == ["b.ts"]

    def test_metadata_block_ends_at_lesser_indent(self):
        """Test that a line at equal indentation closes the metadata block."""
        content = textwrap.dedent("""\
            - [ ] 1. First
            Some paragraph text
              - _Leverage: a.ts_
            """)
        task = parse_tasks_from_markdown(content).tasks[0]

        assert task.leverage == []

    def test_metadata_without_underscores(self):
        """Test metadata written without emphasis markers."""
        content = "- [ ] 1. Task\n    - Requirements: 4.1,4.2\n"
        task = parse_tasks_from_markdown(content).tasks[0]

        assert task.requirements == ["4.1", "4.2"]


class TestMalformedInput:
    """Test cases for graceful degradation."""

    def test_unrecognized_marker_defaults_to_pending(self):
        """Test that an unknown marker is pending with a warning."""
        result = parse_tasks_from_markdown("- [?] 4. Mystery task\n- [x] 5. Done\n")

        assert [t.status for t in result.tasks] == ["pending", "completed"]
        assert len(result.warnings) == 1
        assert "unrecognized status marker" in result.warnings[0]

    def test_multi_character_marker_keeps_task(self):
        """Test that a hand-edited marker like [ok] still yields the task."""
        result = parse_tasks_from_markdown("- [ ] 1. First\n- [ok] 2. Second\n- [xx] 3. Third\n")

        assert [t.task_id for t in result.tasks] == ["1", "2", "3"]
        assert [t.status for t in result.tasks] == ["pending", "pending", "pending"]
        assert len(result.warnings) == 2
        assert "'[ok]'" in result.warnings[0]
        assert "'[xx]'" in result.warnings[1]

    def test_checkbox_without_identifier_is_skipped(self):
        """Test that a checkbox without an id is reported but does not stop parsing."""
        result = parse_tasks_from_markdown("- [ ] No identifier here\n- [ ] 1. Real task\n")

        assert [t.task_id for t in result.tasks] == ["1"]
        assert "without a task identifier" in result.warnings[0]

    def test_duplicate_ids_reported(self):
        """Test that duplicate ids keep both rows and warn."""
        result = parse_tasks_from_markdown("- [ ] 1. A\n- [x] 1. B\n")

        assert len(result.tasks) == 2
        assert result.find("1").description == "A"
        assert "duplicate task id '1'" in result.warnings[0]

    def test_arbitrary_text_never_raises(self):
        """Test parsing text that is not a task list at all."""
        result = parse_tasks_from_markdown("random\n\t- [\n]]] - [x]\n- [ ]\n")

        assert result.tasks == []


class TestIdempotence:
    """Test cases for parse stability."""

    def test_parse_twice_is_identical(self):
        """Test that parsing the same text twice yields equal tasks."""
        assert parse_tasks_from_markdown(SAMPLE_TASKS) == parse_tasks_from_markdown(SAMPLE_TASKS)

    def test_parse_render_parse(self):
        """Test that re-parsing a rendered task list yields the same tasks."""
        first = parse_tasks_from_markdown(SAMPLE_TASKS)
        second = parse_tasks_from_markdown(render_tasks_markdown(first.tasks))

        assert _shape(second) == _shape(first)
        assert second.warnings == []


class TestSummary:
    """Test cases for status summaries."""

    def test_summary_counts(self):
        """Test counting tasks per status."""
        summary = parse_tasks_from_markdown(SAMPLE_TASKS).summary()

        assert summary == {"total": 5, "completed": 2, "in_progress": 1, "pending": 2}
