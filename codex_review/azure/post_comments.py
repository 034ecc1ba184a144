"""Post suggestion threads and the overall review comment.

Posting is strictly sequential and fail-fast: the first failed post raises
and the remaining items of the batch are not attempted. `signatures` is
updated after every successful post so later items that render
identically in the same run are skipped too.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any, Protocol

from ..glob import should_ignore
from ..models import ReviewResult, ReviewSuggestion
from ..report.format_md import format_overall_comment
from ..report.signature import (
    append_review_head_marker,
    comment_signature,
    normalize_thread_file_path,
    suggestion_signature,
)
from ..suggest.render import render_suggestion
from ..suggest.segment import SegmentReader

THREAD_STATUS_ACTIVE = 1
COMMENT_TYPE_TEXT = 1


class _ThreadClient(Protocol):
    def create_thread(
        self, *, repository_id: str, pr_id: int, thread: dict[str, Any]
    ) -> dict[str, Any]: ...


def _comment(content: str) -> dict[str, Any]:
    return {"content": content, "commentType": COMMENT_TYPE_TEXT}


def build_suggestion_thread(suggestion: ReviewSuggestion, body: str) -> dict[str, Any]:
    return {
        "status": THREAD_STATUS_ACTIVE,
        "comments": [_comment(body)],
        "threadContext": {
            "filePath": normalize_thread_file_path(suggestion.file),
            "rightFileStart": {"line": suggestion.start_line, "offset": 1},
            "rightFileEnd": {"line": suggestion.end_line, "offset": 1},
        },
    }


def build_overall_thread(content: str) -> dict[str, Any]:
    return {"status": THREAD_STATUS_ACTIVE, "comments": [_comment(content)]}


def _loc(s: ReviewSuggestion) -> str:
    return f"{s.file}:{s.start_line}-{s.end_line}"


def post_suggestions(
    review: ReviewResult,
    *,
    client: _ThreadClient | None,
    repository_id: str | None,
    pr_id: int | None,
    reader: SegmentReader,
    signatures: set[str],
    ignore_patterns: Iterable[str] | None = None,
    dry_run: bool = False,
    logger: logging.Logger,
) -> dict[str, int]:
    counts = {"posted": 0, "duplicate": 0, "empty": 0, "ignored": 0, "dry_run": 0}
    if not review.suggestions:
        logger.info("No suggestions to post.")
        return counts

    if not dry_run:
        if pr_id is None:
            logger.info("No pull request ID detected; skipping inline suggestion threads.")
            return counts
        if client is None or not repository_id:
            logger.warning(
                "Repository ID unavailable; skipping inline suggestion threads. "
                "Provide --repository-id or --repository."
            )
            return counts

    patterns = list(ignore_patterns or [])
    for suggestion in review.suggestions:
        if should_ignore(suggestion.file, patterns):
            logger.debug("Skipping suggestion for ignored file %s", suggestion.file)
            counts["ignored"] += 1
            continue

        rendered = render_suggestion(suggestion, reader)
        if rendered is None:
            logger.debug("Skipping suggestion with empty replacement for %s", _loc(suggestion))
            counts["empty"] += 1
            continue

        signature = suggestion_signature(suggestion, rendered.body)
        if signature and signature in signatures:
            logger.info("Skipping already-posted suggestion for %s", _loc(suggestion))
            counts["duplicate"] += 1
            continue

        if dry_run:
            logger.info(
                "Dry-run: would post suggestion to %s\n%s", _loc(suggestion), rendered.body
            )
            counts["dry_run"] += 1
        elif client is not None and repository_id and pr_id is not None:
            logger.info("Posting suggestion thread to %s", _loc(suggestion))
            client.create_thread(
                repository_id=repository_id,
                pr_id=pr_id,
                thread=build_suggestion_thread(suggestion, rendered.body),
            )
            counts["posted"] += 1

        if signature:
            signatures.add(signature)
    return counts


def post_overall_comment(
    review: ReviewResult,
    *,
    client: _ThreadClient | None,
    repository_id: str | None,
    pr_id: int | None,
    signatures: set[str],
    reviewed_sha: str | None = None,
    dry_run: bool = False,
    logger: logging.Logger,
) -> str:
    """Post the summary comment, tagged with the reviewed commit.

    Returns "posted", "duplicate", "dry_run" or "skipped".
    """

    text = format_overall_comment(review)
    final_text = append_review_head_marker(text, reviewed_sha)

    if dry_run:
        logger.info("Dry-run: overall review comment would be:\n%s", final_text)
        return "dry_run"
    if pr_id is None:
        logger.info("No pull request ID detected; skipping overall review comment.")
        return "skipped"
    if client is None or not repository_id:
        logger.warning(
            "Repository ID unavailable; cannot post overall comment. "
            "Provide --repository-id or --repository."
        )
        return "skipped"

    signature = comment_signature(text)
    if signature and signature in signatures:
        logger.info("Skipping overall comment; identical content already posted.")
        return "duplicate"

    logger.info("Posting overall review comment to PR %s", pr_id)
    client.create_thread(
        repository_id=repository_id, pr_id=pr_id, thread=build_overall_thread(final_text)
    )
    if signature:
        signatures.add(signature)
    return "posted"
