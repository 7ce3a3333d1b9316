"""Translate ``LinkFilters`` into SQL predicate fragments.

Every fragment assumes the query aliases ``l`` (links), ``f`` (files, LEFT
JOIN) and ``h`` (headings, LEFT JOIN on ``l.heading_id``). Heading-scoped
conditions are written as ``h.id IS NULL OR <condition>`` so that links
outside any heading pass them; file-scoped conditions likewise pass when the
file attribute is unknown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import json
from typing import Any, Callable, List, Sequence

from ..models.filters import LinkFilters, TERMINAL_TODO_STATES
from .config import TagMatchMode

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def placeholders(count: int) -> str:
    return ",".join("?" for _ in range(count))


def escape_like(value: str) -> str:
    """Escape LIKE wildcards; pair with ``ESCAPE '\\'``."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def json_key_path(key: str) -> str:
    """Build a JSON path selecting a top-level key, quoting it when needed."""
    if key.isidentifier():
        return f"$.{key}"
    return "$." + json.dumps(key)


@dataclass
class CompiledFilter:
    """Ordered SQL boolean fragments with their bound parameters."""

    conditions: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def add(self, condition: str, *params: Any) -> None:
        self.conditions.append(condition)
        self.params.extend(params)

    def extend(self, other: "CompiledFilter") -> None:
        self.conditions.extend(other.conditions)
        self.params.extend(other.params)

    def where_clause(self) -> str:
        return " AND ".join(self.conditions) if self.conditions else "1 = 1"


class FilterCompiler:
    """Pure translation of filters into ``WHERE ... AND ...`` fragments."""

    def __init__(self, tag_match_mode: TagMatchMode = "json", clock: Clock | None = None):
        self.tag_match_mode = tag_match_mode
        self.clock = clock or _utcnow

    def compile(
        self,
        filters: LinkFilters,
        link_types: Sequence[str],
        *,
        include_file_conditions: bool = True,
    ) -> CompiledFilter:
        compiled = CompiledFilter()
        compiled.add(f"l.link_type IN ({placeholders(len(link_types))})", *link_types)

        if include_file_conditions:
            compiled.extend(self._file_conditions(filters))
        compiled.extend(self._heading_conditions(filters))
        return compiled

    def _file_conditions(self, filters: LinkFilters) -> CompiledFilter:
        compiled = CompiledFilter()
        if filters.file_types:
            compiled.add(
                f"(f.file_type IS NULL OR f.file_type IN ({placeholders(len(filters.file_types))}))",
                *filters.file_types,
            )
        if filters.modified_after is not None:
            compiled.add("(f.mtime IS NULL OR f.mtime > ?)", filters.modified_after)
        if filters.modified_before is not None:
            compiled.add("(f.mtime IS NULL OR f.mtime < ?)", filters.modified_before)
        if filters.project_ids:
            compiled.add(
                f"(f.project_id IS NULL OR f.project_id IN ({placeholders(len(filters.project_ids))}))",
                *filters.project_ids,
            )
        return compiled

    def _heading_conditions(self, filters: LinkFilters) -> CompiledFilter:
        compiled = CompiledFilter()

        if filters.tags:
            condition, params = self._tags_any(filters.tags)
            compiled.add(f"(h.id IS NULL OR {condition})", *params)

        if filters.exclude_tags:
            for tag in filters.exclude_tags:
                condition, params = self._tags_any([tag])
                compiled.add(f"(h.id IS NULL OR NOT {condition})", *params)

        if filters.todo_states:
            compiled.add(
                f"(h.id IS NULL OR h.todo_state IN ({placeholders(len(filters.todo_states))}))",
                *filters.todo_states,
            )

        if filters.exclude_done:
            compiled.add(
                "(h.id IS NULL OR h.todo_state IS NULL "
                f"OR h.todo_state NOT IN ({placeholders(len(TERMINAL_TODO_STATES))}))",
                *TERMINAL_TODO_STATES,
            )

        if filters.priorities:
            compiled.add(
                f"(h.id IS NULL OR h.priority IN ({placeholders(len(filters.priorities))}))",
                *filters.priorities,
            )

        if filters.has_deadline:
            compiled.add("h.deadline IS NOT NULL")

        if filters.deadline_within_days is not None:
            horizon = self.clock() + timedelta(days=filters.deadline_within_days)
            compiled.add(
                "(h.deadline IS NOT NULL AND h.deadline <= ?)",
                horizon.date().isoformat(),
            )

        if filters.has_scheduled:
            compiled.add("h.scheduled IS NOT NULL")

        if filters.properties:
            for key, value in filters.properties.items():
                compiled.add(
                    "(h.id IS NULL OR (CASE WHEN json_valid(h.properties) "
                    "THEN json_extract(h.properties, ?) = ? ELSE 0 END))",
                    json_key_path(key),
                    value,
                )

        return compiled

    def _tags_any(self, tags: Sequence[str]) -> tuple[str, List[Any]]:
        """Return a condition true when the heading carries any of ``tags``."""
        if self.tag_match_mode == "substring":
            # Containment on the serialized array, quoted so 'a' does not hit 'cat'.
            clauses = " OR ".join("h.tags LIKE ? ESCAPE '\\'" for _ in tags)
            return f"({clauses})", [f'%"{escape_like(tag)}"%' for tag in tags]

        condition = (
            "(CASE WHEN json_valid(h.tags) THEN EXISTS ("
            "SELECT 1 FROM json_each(h.tags) AS tag "
            f"WHERE tag.value IN ({placeholders(len(tags))})"
            ") ELSE 0 END)"
        )
        return condition, list(tags)


__all__ = ["FilterCompiler", "CompiledFilter", "escape_like", "placeholders", "json_key_path"]
