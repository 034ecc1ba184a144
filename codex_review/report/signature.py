"""Comment signatures and the hidden last-reviewed-commit marker.

A signature identifies one logical feedback item:

    <normalized path>::<start line>::<end line>::<trimmed content>

It carries nothing run-specific, so the same text posted at the same anchor
by two different runs produces the same signature. Previously posted
comments have their review-head markers stripped before signing.
"""

from __future__ import annotations

import re

from ..models import ReviewSuggestion

REVIEW_HEAD_MARKER_RE = re.compile(
    r"<!--\s*codex-review-head:\s*([0-9a-f]{7,40})\s*-->", re.IGNORECASE
)


def normalize_thread_file_path(path: str) -> str:
    """Return `path` with forward slashes and exactly one leading '/'."""

    p = (path or "").replace("\\", "/").lstrip("/")
    return f"/{p}"


def comment_signature(
    content: str | None,
    *,
    file_path: str | None = None,
    start_line: int | None = None,
    end_line: int | None = None,
) -> str | None:
    """Return the dedup key for a comment, or None when it has no content."""

    if not content:
        return None
    normalized = content.strip()
    if not normalized:
        return None

    path = normalize_thread_file_path(file_path) if file_path else ""
    start = start_line if isinstance(start_line, int) else 0
    if isinstance(end_line, int):
        end = end_line
    else:
        end = start
    return f"{path}::{start}::{end}::{normalized}"


def suggestion_signature(suggestion: ReviewSuggestion, body: str) -> str | None:
    return comment_signature(
        body,
        file_path=suggestion.file,
        start_line=suggestion.start_line,
        end_line=suggestion.end_line,
    )


def strip_review_head_markers(content: str) -> str:
    return REVIEW_HEAD_MARKER_RE.sub("", content or "")


def extract_review_head_sha(content: str | None) -> str | None:
    if not content:
        return None
    m = REVIEW_HEAD_MARKER_RE.search(content)
    if m is None:
        return None
    return m.group(1)


def format_review_head_marker(sha: str) -> str:
    return f"<!-- codex-review-head: {sha} -->"


def append_review_head_marker(text: str, sha: str | None) -> str:
    if not sha:
        return text
    return f"{text}\n\n{format_review_head_marker(sha)}"
