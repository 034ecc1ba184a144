"""CLI entrypoint for codex-review."""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

from .azure.az import AzClient
from .config import (
    DEFAULT_MAX_DIFF_CHARS,
    DEFAULT_MAX_FILES,
    ReviewOptions,
    options_from_args,
    parse_max_diff_chars,
    parse_max_files,
    parse_pr_id,
    parse_repository_id,
    parse_time_budget,
)
from .errors import BlockedError, ExecFailureError, ExitCode
from .git.diff import (
    GitRunner,
    LoadedDiff,
    determine_target_branch,
    load_diff_file,
    load_git_diff,
)
from .llm.codex_runner import CodexRunner, ResponseFileModel, ReviewModel
from .log import build_logger
from .models import PullRequestMetadata
from .pipeline import DiffLoader, run_review
from .suggest.segment import FileSegmentReader


@dataclass(frozen=True)
class ParserExit(Exception):
    code: int
    message: str = ""


class ThrowingArgumentParser(argparse.ArgumentParser):
    def exit(self, status: int = 0, message: str | None = None) -> NoReturn:  # type: ignore[override]
        if message:
            self._print_message(message, sys.stderr if status else sys.stdout)
        raise ParserExit(status, message or "")

    def error(self, message: str) -> NoReturn:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self._print_message(f"{self.prog}: error: {message}\n", sys.stderr)
        raise ParserExit(2, f"{self.prog}: error: {message}\n")


def build_parser() -> ThrowingArgumentParser:
    parser = ThrowingArgumentParser(prog="codex-review")
    sub = parser.add_subparsers(dest="command", required=True)

    review = sub.add_parser(
        "review", help="Review an Azure DevOps pull request with Codex"
    )
    review.add_argument("--pr-id", type=parse_pr_id)
    review.add_argument("--organization", help="Organization URL or name")
    review.add_argument("--project")
    review.add_argument("--repository", help="Repository name")
    review.add_argument("--repository-id", type=parse_repository_id)
    review.add_argument("--target-branch")
    review.add_argument("--diff-file", help="Review this unified diff instead of git")
    review.add_argument("--max-files", type=parse_max_files, default=DEFAULT_MAX_FILES)
    review.add_argument(
        "--max-diff-chars", type=parse_max_diff_chars, default=DEFAULT_MAX_DIFF_CHARS
    )
    review.add_argument("--dry-run", action="store_true")
    review.add_argument("--debug", action="store_true")
    review.add_argument("--output-json", help="Write the raw model JSON here")
    review.add_argument("--codex-response-file", help="Replay a saved model response")
    review.add_argument("--review-time-budget", type=parse_time_budget, metavar="MINUTES")
    review.add_argument("--azure-token")
    review.add_argument("--openai-api-key")
    review.add_argument(
        "--ignore-files",
        action="append",
        default=[],
        metavar="GLOB",
        help="Skip files matching this glob (repeatable)",
    )
    review.add_argument("--prompt", help="Replace the default system instruction")
    review.set_defaults(_handler=handle_review)

    return parser


def _host_client(options: ReviewOptions) -> AzClient | None:
    if options.organization and options.project:
        return AzClient.from_env(
            organization=options.organization,
            project=options.project,
            token=options.azure_token,
        )
    if options.pr_id is not None and not options.dry_run:
        raise BlockedError(
            "Azure DevOps organization and project are required to post comments. "
            "Pass --organization and --project."
        )
    return None


def _diff_loader(options: ReviewOptions, logger: logging.Logger) -> DiffLoader:
    if options.diff_file:
        path = options.diff_file

        def from_file(
            since_commit: str | None, metadata: PullRequestMetadata | None
        ) -> LoadedDiff:
            logger.info("Reading diff from %s", path)
            return load_diff_file(path)

        return from_file

    git = GitRunner.from_env()

    def from_git(
        since_commit: str | None, metadata: PullRequestMetadata | None
    ) -> LoadedDiff:
        target = determine_target_branch(
            explicit=options.target_branch,
            pr_target_ref=metadata.target_ref_name if metadata else None,
            logger=logger,
        )
        logger.info(
            "Using target branch %s for PR #%s", target, options.pr_id or "<unknown>"
        )
        return load_git_diff(
            target_branch=target, since_commit=since_commit, git=git, logger=logger
        )

    return from_git


def _model(options: ReviewOptions, logger: logging.Logger) -> ReviewModel:
    if options.codex_response_file:
        return ResponseFileModel(path=options.codex_response_file, logger=logger)
    return CodexRunner.from_env(
        api_key=options.openai_api_key,
        time_budget_minutes=options.review_time_budget,
        instruction_override=options.prompt,
        logger=logger,
    )


def handle_review(args: argparse.Namespace) -> dict[str, Any]:
    options = options_from_args(args)
    logger = build_logger(options.debug)
    if options.debug:
        logger.debug(
            "CLI options: %s", json.dumps(options.redacted(), indent=2, sort_keys=True)
        )

    t0 = time.monotonic()
    result = run_review(
        options,
        logger=logger,
        client=_host_client(options),
        diff_loader=_diff_loader(options, logger),
        model=_model(options, logger),
        reader=FileSegmentReader(Path.cwd()),
    )
    logger.info("Review finished in %.1fs (%s).", time.monotonic() - t0, result["status"])
    return result


def main(argv: Iterable[str] | None = None) -> int:
    argv_list = list(argv) if argv is not None else sys.argv[1:]

    try:
        parser = build_parser()
        args = parser.parse_args(argv_list)
        handler = getattr(args, "_handler", None)
        if handler is None:
            raise BlockedError("No handler configured for this command")
        handler(args)
        return int(ExitCode.SUCCESS)
    except ParserExit as exc:
        # argparse already printed usage/help.
        return int(ExitCode.SUCCESS if exc.code == 0 else ExitCode.EXEC_FAILURE)
    except BlockedError as exc:
        print(f"[codex-review] BLOCKED: {exc}", file=sys.stderr)
        return int(ExitCode.BLOCKED)
    except ExecFailureError as exc:
        print(f"[codex-review] ERROR: {exc}", file=sys.stderr)
        return int(ExitCode.EXEC_FAILURE)
    except Exception as exc:  # noqa: BLE001
        print(f"[codex-review] ERROR: {type(exc).__name__}: {exc}", file=sys.stderr)
        return int(ExitCode.EXEC_FAILURE)


if __name__ == "__main__":
    raise SystemExit(main())
