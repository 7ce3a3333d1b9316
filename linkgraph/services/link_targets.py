"""Resolve stored link targets to indexed file paths.

Stored targets are not always canonical paths: they may be suffixes of the
real path or carry a ``::search`` anchor (``notes.org::*Heading``). Matching
is heuristic and may produce false positives; when several candidates match,
the first one in candidate order wins.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Set

from .config import LinkResolutionMode
from .database import GraphStore
from .filter_compiler import escape_like

ANCHOR_SEPARATOR = "::"


def basename(path: str) -> str:
    return path.rstrip("/").rsplit("/", 1)[-1] or path


def strip_anchor(target: str) -> str:
    return target.split(ANCHOR_SEPARATOR, 1)[0]


def target_matches(target: str, file_path: str) -> bool:
    """Exact match, suffix match, or anchor-stripped basename match."""
    if target == file_path:
        return True
    if target.endswith(file_path):
        return True
    stripped = strip_anchor(target)
    return bool(stripped) and stripped.endswith(basename(file_path))


def backlink_condition(file_path: str) -> tuple[str, List[str]]:
    """SQL fragment selecting links whose target may point at ``file_path``."""
    condition = (
        "(l.target = ? OR l.target LIKE ? ESCAPE '\\' OR l.target LIKE ? ESCAPE '\\')"
    )
    params = [
        file_path,
        f"%{escape_like(file_path)}",
        f"%{escape_like(basename(file_path))}{ANCHOR_SEPARATOR}%",
    ]
    return condition, params


def backlink_sources(store: GraphStore, file_path: str) -> Set[str]:
    """Distinct files holding a link whose target resolves to ``file_path``.

    Raises ``StoreQueryError``; callers decide how to degrade.
    """
    condition, params = backlink_condition(file_path)
    rows = store.execute(
        f"SELECT DISTINCT l.file_path, l.target FROM links l WHERE {condition}", params
    )
    # LIKE is case-insensitive in SQLite; re-check the match exactly.
    return {row["file_path"] for row in rows if target_matches(row["target"], file_path)}


def resolve_target(
    target: str,
    candidates: Sequence[str],
    mode: LinkResolutionMode = "tiered",
) -> Optional[str]:
    """Return the candidate node a stored link target refers to, if any."""
    if mode == "legacy":
        return _resolve_legacy(target, candidates)
    return _resolve_tiered(target, candidates)


def _resolve_tiered(target: str, candidates: Sequence[str]) -> Optional[str]:
    if target in candidates:
        return target
    for candidate in candidates:
        if target.endswith(candidate):
            return candidate
    stripped = strip_anchor(target)
    if not stripped:
        return None
    for candidate in candidates:
        if stripped.endswith(basename(candidate)):
            return candidate
    return None


def _resolve_legacy(target: str, candidates: Iterable[str]) -> Optional[str]:
    candidates = list(candidates)
    if target in candidates:
        return target
    for candidate in candidates:
        name = basename(candidate)
        if target.endswith(name) or target.startswith(name):
            return candidate
        if ANCHOR_SEPARATOR in target:
            file_part = strip_anchor(target)
            if candidate.endswith(file_part) or file_part.endswith(name):
                return candidate
    return None


__all__ = [
    "basename",
    "strip_anchor",
    "target_matches",
    "backlink_condition",
    "backlink_sources",
    "resolve_target",
]
