"""Read projections of pull-request threads already on the host."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, cast

from ..models import ExistingCommentSummary
from ..report.signature import (
    comment_signature,
    extract_review_head_sha,
    normalize_thread_file_path,
    strip_review_head_markers,
)


@dataclass(frozen=True)
class ExistingFeedback:
    summaries: list[ExistingCommentSummary] = field(default_factory=list)
    signatures: set[str] = field(default_factory=set)


def _as_mapping(value: object) -> Mapping[str, Any]:
    if isinstance(value, Mapping):
        return cast(Mapping[str, Any], value)
    return {}


def _int_or_none(value: object) -> int | None:
    if isinstance(value, bool):
        return None
    return value if isinstance(value, int) else None


def _position_line(context: Mapping[str, Any], key: str) -> int | None:
    return _int_or_none(_as_mapping(context.get(key)).get("line"))


def _first_line(context: Mapping[str, Any], keys: Sequence[str]) -> int | None:
    for key in keys:
        line = _position_line(context, key)
        if line is not None:
            return line
    return None


def _thread_anchor(thread: Mapping[str, Any]) -> tuple[str | None, int | None, int | None]:
    context = _as_mapping(thread.get("threadContext"))
    raw_path = context.get("filePath")
    path = (
        normalize_thread_file_path(raw_path)
        if isinstance(raw_path, str) and raw_path.strip()
        else None
    )
    start = _first_line(
        context, ("rightFileStart", "leftFileStart", "rightFileEnd", "leftFileEnd")
    )
    end = _first_line(
        context, ("rightFileEnd", "leftFileEnd", "rightFileStart", "leftFileStart")
    )
    return path, start, end


def is_text_comment(comment: Mapping[str, Any]) -> bool:
    if "commentType" not in comment or comment.get("commentType") is None:
        return True
    value = comment.get("commentType")
    if isinstance(value, str):
        return value.lower() == "text"
    if isinstance(value, int) and not isinstance(value, bool):
        return value == 1
    return False


def _text_comments(thread: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    raw = thread.get("comments")
    if not isinstance(raw, list):
        return []
    out: list[Mapping[str, Any]] = []
    for c in raw:
        comment = _as_mapping(c)
        if comment.get("isDeleted") is True:
            continue
        content = comment.get("content")
        if not isinstance(content, str) or not content:
            continue
        if not is_text_comment(comment):
            continue
        out.append(comment)
    return out


def summarize_threads(threads: Sequence[Mapping[str, Any]]) -> ExistingFeedback:
    """Build summaries and dedup signatures from fetched threads.

    Each thread contributes a summary of its first text comment; every text
    comment contributes a signature. Review-head markers are stripped before
    signing so they never affect equality.
    """

    feedback = ExistingFeedback()
    for thread in threads:
        if thread.get("isDeleted") is True:
            continue
        comments = _text_comments(thread)
        if not comments:
            continue

        path, start, end = _thread_anchor(thread)
        for comment in comments:
            content = strip_review_head_markers(str(comment["content"]))
            signature = comment_signature(
                content, file_path=path, start_line=start, end_line=end
            )
            if signature:
                feedback.signatures.add(signature)

        first = comments[0]
        raw_content = str(first["content"])
        feedback.summaries.append(
            ExistingCommentSummary(
                content=strip_review_head_markers(raw_content).strip(),
                raw_content=raw_content,
                review_head_sha=extract_review_head_sha(raw_content),
                file_path=path,
                start_line=start,
                end_line=end,
                thread_id=_int_or_none(thread.get("id")),
                comment_id=_int_or_none(first.get("id")),
            )
        )
    return feedback
