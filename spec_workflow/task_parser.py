"""Parser for specification task lists (tasks.md).

A task list is a markdown checklist where every task line carries a
checkbox marker followed by a dotted numeric identifier::

    - [ ] 1. Set up project structure
      - _Leverage: src/utils/index.ts, src/config.ts_
      - _Requirements: 1.1, 2.3_
      - [-] 1.1 Create the config loader
      - [x] 1.2 Add logging
        - _Prompt: Role: Backend developer | Task: add logging_

``[ ]`` is pending, ``[-]`` in progress and ``[x]`` completed. Sub-lines
indented deeper than a task line attach metadata to it until a line at
the same or a lesser indentation appears.

Parsing never raises for malformed content. Anything the parser cannot
make sense of is reported as a warning next to the recovered tasks.
"""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional

from .models import Task, TaskParseResult


_CHECKBOX_PATTERN = re.compile(r"^(?P<indent>[ \t]*)[-*+]\s+\[(?P<mark>[^\]]*)\]\s*(?P<rest>.*)$")
_TASK_ID_PATTERN = re.compile(r"^(?P<task_id>\d+(?:\.\d+)*)\.?(?:\s+(?P<description>.*))?$")
_METADATA_PATTERN = re.compile(
    r"^\s*[-*+]\s+_?(?P<label>Prompt|Leverage|Requirements):\s*(?P<value>.*?)_?\s*$"
)

_MARK_STATUS: Dict[str, str] = {
    "": "pending",
    " ": "pending",
    "-": "in-progress",
    "x": "completed",
    "X": "completed",
}

_STATUS_MARK: Dict[str, str] = {
    "pending": " ",
    "in-progress": "-",
    "completed": "x",
}


def _indent_width(prefix: str) -> int:
    return len(prefix.expandtabs(4))


def _split_references(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def parse_tasks_from_markdown(content: str) -> TaskParseResult:
    """Parse a task list document into ordered Task records.

    Args:
        content: Raw text of a tasks.md document.

    Returns:
        TaskParseResult holding tasks in document order and warnings for
        lines that were skipped or degraded to defaults.
    """
    result = TaskParseResult()
    seen_ids: Dict[str, int] = {}
    current: Optional[Task] = None

    for line_number, line in enumerate(content.splitlines(), start=1):
        if not line.strip():
            continue

        checkbox = _CHECKBOX_PATTERN.match(line)
        if checkbox:
            indent = _indent_width(checkbox.group("indent"))
            rest = checkbox.group("rest").strip()
            id_match = _TASK_ID_PATTERN.match(rest)
            if not id_match:
                result.warnings.append(
                    f"Line {line_number}: checkbox without a task identifier was skipped: {rest!r}"
                )
                current = None
                continue

            mark = checkbox.group("mark")
            status = _MARK_STATUS.get(mark)
            if status is None:
                result.warnings.append(
                    f"Line {line_number}: unrecognized status marker '[{mark}]', treated as pending"
                )
                status = "pending"

            task_id = id_match.group("task_id")
            if task_id in seen_ids:
                result.warnings.append(
                    f"Line {line_number}: duplicate task id '{task_id}' (first seen on line {seen_ids[task_id]})"
                )
            else:
                seen_ids[task_id] = line_number

            current = Task(
                task_id=task_id,
                description=(id_match.group("description") or "").strip(),
                status=status,
                line_number=line_number,
                indent=indent,
            )
            result.tasks.append(current)
            continue

        if current is None:
            continue

        if _indent_width(line[: len(line) - len(line.lstrip())]) <= current.indent:
            current = None
            continue

        metadata = _METADATA_PATTERN.match(line)
        if not metadata:
            continue

        label = metadata.group("label")
        value = metadata.group("value").strip()
        if label == "Prompt":
            current.prompt = value
        elif label == "Leverage":
            current.leverage.extend(_split_references(value))
        else:
            current.requirements.extend(_split_references(value))

    return result


def render_tasks_markdown(tasks: Iterable[Task]) -> str:
    """Render tasks back into the checklist grammar understood by the parser."""
    lines: List[str] = []
    for task in tasks:
        pad = " " * task.indent
        head = f"{pad}- [{_STATUS_MARK.get(task.status, ' ')}] {task.task_id}."
        lines.append(f"{head} {task.description}" if task.description else head)
        if task.leverage:
            lines.append(f"{pad}  - _Leverage: {', '.join(task.leverage)}_")
        if task.requirements:
            lines.append(f"{pad}  - _Requirements: {', '.join(task.requirements)}_")
        if task.prompt:
            lines.append(f"{pad}  - _Prompt: {task.prompt}_")
    return "\n".join(lines) + "\n"
