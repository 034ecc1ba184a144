"""Ignore-pattern matching for repo-relative paths.

Use POSIX-style paths (forward slashes) regardless of host OS. Hidden
files and directories are matched like any other name, so `.github/**`
works without extra options.
"""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable, Sequence
from functools import lru_cache
from typing import TypeVar

from .diff.parse import FileDiff
from .models import ReviewResult, ReviewSuggestion

_T = TypeVar("_T")


def normalize_ignore_path(path: str) -> str:
    """Normalize a path before glob matching.

    - Converts backslashes to slashes
    - Strips leading './'
    - Collapses repeated slashes
    """

    p = (path or "").strip().replace("\\", "/")
    while p.startswith("./"):
        p = p[2:]
    while "//" in p:
        p = p.replace("//", "/")
    return p


def _clean_patterns(patterns: Iterable[str] | None) -> tuple[str, ...]:
    if not patterns:
        return ()
    out = [normalize_ignore_path(x) for x in patterns if (x or "").strip()]
    return tuple(p for p in out if p)


def should_ignore(path: str, patterns: Iterable[str] | None) -> bool:
    """Return True when `path` matches any ignore pattern."""

    pats = _clean_patterns(patterns)
    if not pats:
        return False

    p = normalize_ignore_path(path)
    if not p:
        return False
    return any(_match_path_glob(p, pat) for pat in pats)


def _filter_by_path(
    items: Sequence[_T], patterns: Iterable[str] | None, *, path_of
) -> list[_T]:
    pats = _clean_patterns(patterns)
    if not pats:
        return list(items)
    out: list[_T] = []
    for item in items:
        p = path_of(item)
        if p and should_ignore(p, pats):
            continue
        out.append(item)
    return out


def filter_file_diffs(
    files: Sequence[FileDiff], patterns: Iterable[str] | None
) -> list[FileDiff]:
    return _filter_by_path(files, patterns, path_of=lambda f: f.path)


def filter_suggestions(
    suggestions: Sequence[ReviewSuggestion], patterns: Iterable[str] | None
) -> list[ReviewSuggestion]:
    return _filter_by_path(suggestions, patterns, path_of=lambda s: s.file)


def filter_review(review: ReviewResult, patterns: Iterable[str] | None) -> ReviewResult:
    """Drop findings and suggestions that point at ignored files.

    Findings without any file reference are kept.
    """

    pats = _clean_patterns(patterns)
    if not pats:
        return review
    return ReviewResult(
        summary=review.summary,
        findings=_filter_by_path(
            review.findings, pats, path_of=lambda f: f.effective_file()
        ),
        suggestions=filter_suggestions(review.suggestions, pats),
    )


@lru_cache(maxsize=4096)
def _match_path_glob(path: str, pattern: str) -> bool:
    """Match a normalized path against a glob pattern.

    Semantics:
    - Split on '/'
    - `*` / `?` / `[...]` do not cross directory boundaries
    - `**` (as a full segment) matches zero or more path segments
    - a leading '/' in the pattern anchors nothing extra (paths are relative)
    """

    path_segs = tuple(s for s in path.strip("/").split("/") if s)
    pat_segs = tuple(s for s in pattern.strip("/").split("/") if s)
    if not pat_segs:
        return False

    @lru_cache(maxsize=None)
    def dp(i: int, j: int) -> bool:
        if j >= len(pat_segs):
            return i >= len(path_segs)

        seg = pat_segs[j]
        if seg == "**":
            if dp(i, j + 1):
                return True
            return i < len(path_segs) and dp(i + 1, j)

        if i >= len(path_segs):
            return False

        if not fnmatch.fnmatchcase(path_segs[i], seg):
            return False

        return dp(i + 1, j + 1)

    return dp(0, 0)
