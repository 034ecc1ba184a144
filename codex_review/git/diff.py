"""Load the pull-request diff from the local checkout.

The diff is computed with `git` against the fetched target branch, or
incrementally from the last reviewed commit when one is known and present
locally.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from ..errors import BlockedError, ExecFailureError
from ..report.incremental import is_already_reviewed

TARGET_BRANCH_ENV_VARS = ("SYSTEM_PULLREQUEST_TARGETBRANCH", "BUILD_SOURCEBRANCH")
DIFF_CONTEXT_LINES = 1


def _git_bin() -> str:
    return os.environ.get("CODEX_REVIEW_GIT_BIN", "git")


def _truncate(s: str, max_chars: int = 2000) -> str:
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 20] + "... [truncated]"


@dataclass(frozen=True)
class LoadedDiff:
    diff_text: str
    source_ref: str
    source_sha: str
    target_ref: str
    target_sha: str
    base_sha: str | None = None
    comparison: str = ""


@dataclass(frozen=True)
class GitRunner:
    """Minimal `git` wrapper bound to one working tree."""

    bin_path: str = "git"
    cwd: str | None = None
    timeout_s: int = 120

    @classmethod
    def from_env(cls, cwd: str | None = None) -> "GitRunner":
        return cls(bin_path=_git_bin(), cwd=cwd)

    def _run(self, args: list[str]) -> str:
        try:
            p = subprocess.run(
                [self.bin_path, *args],
                cwd=self.cwd,
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
                timeout=self.timeout_s,
            )
        except FileNotFoundError as exc:
            raise BlockedError(
                "`git` is required. Install git and ensure it is on PATH."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExecFailureError(f"`git` timed out after {self.timeout_s}s") from exc

        if p.returncode != 0:
            stderr = (p.stderr or "").strip()
            msg = stderr or f"`git {args[0]}` failed (exit={p.returncode})"
            raise ExecFailureError(_truncate(msg))
        return p.stdout

    def rev_parse(self, ref: str) -> str:
        return self._run(["rev-parse", ref]).strip()

    def commit_exists(self, ref: str) -> bool:
        try:
            self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        except ExecFailureError:
            return False
        return True

    def fetch(self, remote: str, branch: str) -> None:
        self._run(["fetch", remote, branch])

    def diff(self, comparison: str) -> str:
        return self._run(["diff", f"--unified={DIFF_CONTEXT_LINES}", comparison])


def normalize_branch_ref(ref: str | None) -> str | None:
    """Return `ref` as a `refs/heads/...` name.

    Bare and `origin/`-prefixed names are qualified; other `refs/` namespaces
    (tags, pull merges) are not branches and yield None.
    """

    s = (ref or "").strip()
    if not s:
        return None
    if s.startswith("refs/heads/"):
        return s
    if s.startswith("refs/"):
        return None
    if s.startswith("origin/"):
        s = s[len("origin/") :]
    return f"refs/heads/{s}"


def determine_target_branch(
    *,
    explicit: str | None = None,
    pr_target_ref: str | None = None,
    env: Mapping[str, str] | None = None,
    logger: logging.Logger,
) -> str:
    """Pick the branch the pull request merges into.

    Order: explicit option, pull-request metadata, then pipeline variables.
    """

    for candidate in (explicit, pr_target_ref):
        normalized = normalize_branch_ref(candidate)
        if normalized:
            return normalized

    environ = os.environ if env is None else env
    for name in TARGET_BRANCH_ENV_VARS:
        normalized = normalize_branch_ref(environ.get(name))
        if normalized:
            logger.debug("Using target branch from %s", name)
            return normalized

    raise BlockedError(
        "Unable to determine pull-request target branch. "
        "Pass --target-branch or run inside an Azure Pipelines PR build."
    )


def _branch_name(target_branch: str) -> str:
    if target_branch.startswith("refs/heads/"):
        return target_branch[len("refs/heads/") :]
    if target_branch.startswith("origin/"):
        return target_branch[len("origin/") :]
    return target_branch


def load_git_diff(
    *,
    target_branch: str,
    since_commit: str | None,
    git: GitRunner,
    logger: logging.Logger,
) -> LoadedDiff:
    """Diff HEAD against `origin/<target>` or against `since_commit`.

    When `since_commit` already names HEAD, the diff is empty and `base_sha`
    is set, which callers treat as "nothing new since the last review".
    """

    branch = _branch_name(target_branch)
    if not branch:
        raise ExecFailureError(
            f"Unable to compute branch name from target ref: {target_branch}"
        )
    fetch_ref = f"origin/{branch}"

    logger.info("Fetching %s", fetch_ref)
    git.fetch("origin", branch)
    target_sha = git.rev_parse(fetch_ref)

    if not git.commit_exists("HEAD"):
        raise ExecFailureError(
            "Source ref not available. Ensure the repository has a HEAD commit."
        )
    source_sha = git.rev_parse("HEAD")

    since = (since_commit or "").strip()
    if since and is_already_reviewed(since, source_sha):
        logger.info("HEAD %s was already reviewed.", source_sha[:12])
        return LoadedDiff(
            diff_text="",
            source_ref="HEAD",
            source_sha=source_sha,
            target_ref=fetch_ref,
            target_sha=target_sha,
            base_sha=source_sha,
            comparison=f"{source_sha}...{source_sha}",
        )

    if since:
        if git.commit_exists(since):
            base_sha = git.rev_parse(since)
            comparison = f"{base_sha}...{source_sha}"
            logger.info(
                "Computing incremental git diff %s...%s",
                base_sha[:12],
                source_sha[:12],
            )
            diff_text = git.diff(comparison)
            if not diff_text.strip():
                logger.info("No changes detected since %s.", base_sha[:12])
            return LoadedDiff(
                diff_text=diff_text,
                source_ref="HEAD",
                source_sha=source_sha,
                target_ref=fetch_ref,
                target_sha=target_sha,
                base_sha=base_sha,
                comparison=comparison,
            )
        logger.warning(
            "Previous review commit %s not found locally; falling back to full diff.",
            since,
        )

    comparison = f"{fetch_ref}...HEAD"
    logger.info("Computing git diff %s", comparison)
    diff_text = git.diff(comparison)
    if not diff_text.strip():
        logger.info("git diff returned no changes.")
    return LoadedDiff(
        diff_text=diff_text,
        source_ref="HEAD",
        source_sha=source_sha,
        target_ref=fetch_ref,
        target_sha=target_sha,
        comparison=comparison,
    )


def load_diff_file(path: str) -> LoadedDiff:
    """Read a pre-computed unified diff. No commit information is known."""

    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as exc:
        raise ExecFailureError(f"Failed to read diff file: {str(p)!r}") from exc
    return LoadedDiff(
        diff_text=text,
        source_ref=str(p),
        source_sha="",
        target_ref="",
        target_sha="",
        comparison=str(p),
    )
