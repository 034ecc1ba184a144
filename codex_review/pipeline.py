"""One review run, from existing feedback to posted comments.

Every step runs in sequence. Collaborators (host client, diff loader, model,
segment reader, logger) are passed in by the caller.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Protocol

from .artifacts import write_raw_review_json
from .azure.pr_input import fetch_pull_request_metadata
from .azure.threads import ExistingFeedback, summarize_threads
from .azure.post_comments import post_overall_comment, post_suggestions
from .config import ReviewOptions
from .diff.budget import TRUNCATION_MARKER, truncate_files
from .diff.parse import parse_unified_diff
from .errors import CodexReviewError
from .git.diff import LoadedDiff
from .glob import filter_file_diffs, filter_review
from .llm.codex_runner import ReviewModel
from .models import PullRequestMetadata
from .prompt import assemble_review_prompt, build_diff_prompt
from .report.format_md import format_review_log
from .report.incremental import last_reviewed_sha
from .suggest.segment import FileSegmentReader, SegmentReader
from .validate.review_json import parse_review


class HostClient(Protocol):
    def show_pull_request(self, *, pr_id: int) -> dict[str, Any]: ...

    def repository_id(self, *, repository: str) -> str: ...

    def list_threads(self, *, repository_id: str, pr_id: int) -> list[dict[str, Any]]: ...

    def create_thread(
        self, *, repository_id: str, pr_id: int, thread: dict[str, Any]
    ) -> dict[str, Any]: ...


class DiffLoader(Protocol):
    def __call__(
        self, since_commit: str | None, metadata: PullRequestMetadata | None
    ) -> LoadedDiff: ...


def _prefetch_feedback(
    options: ReviewOptions,
    client: HostClient | None,
    metadata: PullRequestMetadata | None,
    logger: logging.Logger,
) -> ExistingFeedback:
    repository_id = options.repository_id or (
        metadata.repository_id if metadata is not None else None
    )
    if client is None or options.pr_id is None or not repository_id:
        return ExistingFeedback()
    try:
        threads = client.list_threads(repository_id=repository_id, pr_id=options.pr_id)
    except CodexReviewError as exc:
        logger.warning("Failed to load existing PR feedback for prompt context: %s", exc)
        return ExistingFeedback()
    return summarize_threads(threads)


def _fetch_metadata(
    options: ReviewOptions, client: HostClient | None, logger: logging.Logger
) -> PullRequestMetadata | None:
    if client is None or options.pr_id is None:
        return None
    try:
        return fetch_pull_request_metadata(client=client, pr_id=options.pr_id)
    except CodexReviewError as exc:
        logger.warning("Failed to load pull request metadata: %s", exc)
        return None


def _resolve_repository_id(
    options: ReviewOptions,
    client: HostClient,
    metadata: PullRequestMetadata | None,
) -> str | None:
    if options.repository_id:
        return options.repository_id
    if metadata is not None and metadata.repository_id:
        return metadata.repository_id
    if options.repository:
        return client.repository_id(repository=options.repository)
    return None


def run_review(
    options: ReviewOptions,
    *,
    logger: logging.Logger,
    client: HostClient | None,
    diff_loader: DiffLoader,
    model: ReviewModel,
    reader: SegmentReader | None = None,
) -> dict[str, Any]:
    """Run one review and return a summary of what happened.

    `status` is "no_changes" (nothing new to review), "all_ignored" (every
    changed file matched an ignore pattern) or "reviewed".
    """

    metadata = _fetch_metadata(options, client, logger)
    feedback = _prefetch_feedback(options, client, metadata, logger)
    previous_sha = last_reviewed_sha(feedback.summaries)
    if previous_sha:
        logger.info("Last reviewed commit: %s", previous_sha[:12])

    loaded = diff_loader(previous_sha, metadata)
    if not loaded.diff_text.strip():
        if loaded.base_sha:
            logger.info(
                "No changes detected since last reviewed commit %s; skipping review.",
                loaded.base_sha[:12],
            )
        else:
            logger.warning("Diff contained no changes; skipping review.")
        return {"status": "no_changes", "base_sha": loaded.base_sha}

    files = parse_unified_diff(loaded.diff_text)
    kept = filter_file_diffs(files, options.ignore_files)
    if not kept:
        logger.info(
            "All changed files are ignored by configured patterns; skipping Codex review."
        )
        return {"status": "all_ignored", "files": len(files)}
    if len(kept) < len(files):
        logger.info("Ignored %d of %d changed file(s).", len(files) - len(kept), len(files))

    budgeted = truncate_files(
        kept, max_files=options.max_files, max_chars=options.max_diff_chars
    )
    if len(budgeted) < len(kept) or any(
        f.diff.endswith(TRUNCATION_MARKER) for f in budgeted
    ):
        logger.info(
            "Diff truncated to %d file(s) within %d characters.",
            len(budgeted),
            options.max_diff_chars,
        )

    prompt = assemble_review_prompt(
        build_diff_prompt(budgeted), feedback.summaries, previous_sha, metadata
    )
    raw_json = model.review(prompt)
    review = filter_review(parse_review(raw_json), options.ignore_files)

    if options.output_json:
        path = write_raw_review_json(options.output_json, raw_json)
        logger.info("Wrote raw review JSON to %s", path)

    for line in format_review_log(review):
        logger.info("%s", line)

    repository_id: str | None = None
    signatures = set(feedback.signatures)
    if not options.dry_run and client is not None and options.pr_id is not None:
        repository_id = _resolve_repository_id(options, client, metadata)
        if repository_id:
            refreshed = summarize_threads(
                client.list_threads(repository_id=repository_id, pr_id=options.pr_id)
            )
            signatures |= refreshed.signatures

    segment_reader = reader if reader is not None else FileSegmentReader(Path.cwd())
    suggestion_counts = post_suggestions(
        review,
        client=client,
        repository_id=repository_id,
        pr_id=options.pr_id,
        reader=segment_reader,
        signatures=signatures,
        ignore_patterns=options.ignore_files,
        dry_run=options.dry_run,
        logger=logger,
    )
    overall = post_overall_comment(
        review,
        client=client,
        repository_id=repository_id,
        pr_id=options.pr_id,
        signatures=signatures,
        reviewed_sha=loaded.source_sha or None,
        dry_run=options.dry_run,
        logger=logger,
    )
    return {
        "status": "reviewed",
        "files": len(budgeted),
        "findings": len(review.findings),
        "suggestions": suggestion_counts,
        "overall_comment": overall,
    }
