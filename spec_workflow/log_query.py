"""Search implementation logs across active and archived specifications.

Matching is case-insensitive substring containment over each entry's
summary and every string found in its artifacts. There is no ranking:
rows come out in specification enumeration order, then in the order the
entries were appended.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .config import DEFAULT_MAX_QUERY_RESULTS, DEFAULT_QUERY_WORKERS
from .exceptions import SpecRootNotFoundError, SpecWorkflowError, ValidationError
from .implementation_log import ImplementationLogManager
from .models import (
    ARTIFACT_TYPES,
    SUMMARY_MATCH_TYPE,
    LogEntry,
    LogQueryMatch,
    QueryLogsResult,
    SpecRef,
)
from .paths import SpecPathResolver
from .workflow_logging import log_performance


logger = logging.getLogger("spec_workflow.query")

ARTIFACT_TYPE_FILTERS = tuple(ARTIFACT_TYPES) + ("all",)


def value_matches(value: Any, needle: str) -> bool:
    """Return True if any string inside ``value`` contains ``needle``.

    ``needle`` must already be lower-cased. Lists and nested mappings are
    searched recursively; other scalars never match.
    """
    if isinstance(value, str):
        return needle in value.lower()
    if isinstance(value, (list, tuple)):
        return any(value_matches(item, needle) for item in value)
    if isinstance(value, dict):
        return any(value_matches(item, needle) for item in value.values())
    return False


def search_artifacts(
    entry: LogEntry,
    needle: str,
    artifact_type: Optional[str] = None,
) -> List[Tuple[str, Dict[str, Any]]]:
    """Return (type tag, artifact) pairs of an entry that contain ``needle``."""
    if artifact_type and artifact_type != "all":
        keys: Iterable[str] = (artifact_type,)
    else:
        keys = ARTIFACT_TYPES
    matches = []
    for key in keys:
        for artifact in entry.artifacts.get(key):
            if value_matches(artifact, needle):
                matches.append((ARTIFACT_TYPES[key], artifact))
    return matches


class LogQueryEngine:
    """Keyword search over every implementation log of a project."""

    def __init__(
        self,
        resolver: SpecPathResolver,
        max_results: int = DEFAULT_MAX_QUERY_RESULTS,
        max_workers: int = DEFAULT_QUERY_WORKERS,
    ):
        self.resolver = resolver
        self.max_results = max_results
        self.max_workers = max(1, max_workers)

    def list_specs(self) -> List[SpecRef]:
        """Enumerate active then archived specifications."""
        specs: List[SpecRef] = []
        for archived in (False, True):
            try:
                names = self.resolver.list_spec_directories(archived=archived)
            except SpecRootNotFoundError:
                logger.debug(f"No {'archived' if archived else 'active'} specs directory")
                continue
            specs.extend(SpecRef(name=name, is_archived=archived) for name in names)
        return specs

    @log_performance("query_logs")
    def query(
        self,
        search_term: str,
        spec_name: Optional[str] = None,
        artifact_type: Optional[str] = None,
    ) -> QueryLogsResult:
        """Find artifacts and summaries containing ``search_term``.

        Raises:
            ValidationError: If the search term is blank or the artifact type
                filter is unknown.
            SpecNotFoundError: If ``spec_name`` is in neither namespace.
        """
        if not isinstance(search_term, str) or not search_term.strip():
            raise ValidationError(
                "Search term is required and must be non-empty",
                ['Provide a search term (e.g., "UserService", "/api/auth", "validateToken")'],
            )
        if artifact_type is not None and artifact_type not in ARTIFACT_TYPE_FILTERS:
            raise ValidationError(
                f"Unknown artifact type: '{artifact_type}'",
                [f"Use one of: {', '.join(ARTIFACT_TYPE_FILTERS)}"],
            )

        if spec_name:
            _, is_archived = self.resolver.locate_spec(spec_name)
            specs = [SpecRef(name=spec_name, is_archived=is_archived)]
        else:
            specs = self.list_specs()

        needle = search_term.strip().lower()
        result = QueryLogsResult(search_term=search_term, specs_searched=len(specs))
        all_matches: List[LogQueryMatch] = []

        for logs_searched, matches in self._search_all(specs, needle, artifact_type):
            result.logs_searched += logs_searched
            all_matches.extend(matches)

        result.total_matches = len(all_matches)
        result.matches = all_matches[: self.max_results]
        if result.truncated:
            logger.info(
                f"Query '{search_term}' matched {result.total_matches} rows, "
                f"returning first {len(result.matches)}"
            )
        return result

    # ------------------------------------------------------------------
    # Private helper methods
    # ------------------------------------------------------------------

    def _search_all(
        self,
        specs: List[SpecRef],
        needle: str,
        artifact_type: Optional[str],
    ) -> List[Tuple[int, List[LogQueryMatch]]]:
        """Search each spec; ``map`` keeps enumeration order."""
        def search(spec: SpecRef) -> Tuple[int, List[LogQueryMatch]]:
            return self._search_spec(spec, needle, artifact_type)

        if self.max_workers == 1 or len(specs) <= 1:
            return [search(spec) for spec in specs]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(search, specs))

    def _search_spec(
        self,
        spec: SpecRef,
        needle: str,
        artifact_type: Optional[str],
    ) -> Tuple[int, List[LogQueryMatch]]:
        """Return (entries searched, matches) for one spec; unreadable specs yield (0, [])."""
        try:
            spec_dir = self.resolver.spec_path(spec.name, archived=spec.is_archived)
            entries = ImplementationLogManager(spec_dir).get_all_logs()
            matches: List[LogQueryMatch] = []
            for entry in entries:
                matches.extend(self._match_entry(spec, entry, needle, artifact_type))
        except (SpecWorkflowError, OSError) as e:
            logger.warning(f"Skipping spec '{spec.name}' during log query: {e}")
            return 0, []
        return len(entries), matches

    def _match_entry(
        self,
        spec: SpecRef,
        entry: LogEntry,
        needle: str,
        artifact_type: Optional[str],
    ) -> List[LogQueryMatch]:
        artifacts = search_artifacts(entry, needle, artifact_type)
        if not artifacts and needle in entry.summary.lower():
            artifacts = [(SUMMARY_MATCH_TYPE, {"summary": entry.summary})]
        return [
            LogQueryMatch(
                spec_name=spec.name,
                task_id=entry.task_id,
                timestamp=entry.timestamp,
                is_archived=spec.is_archived,
                artifact_type=type_tag,
                artifact_data=data,
                summary=entry.summary,
                files_modified=list(entry.files_modified),
                files_created=list(entry.files_created),
            )
            for type_tag, data in artifacts
        ]
