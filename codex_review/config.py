"""Run configuration: CLI argument validators and environment fallbacks."""

from __future__ import annotations

import argparse
import os
import re
from collections.abc import Mapping, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

DEFAULT_MAX_FILES = 20
DEFAULT_MAX_DIFF_CHARS = 16000
MAX_FILES_LIMIT = 100
MAX_TIME_BUDGET_MINUTES = 120

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)

ENV_FALLBACKS: dict[str, tuple[str, ...]] = {
    "pr_id": ("SYSTEM_PULLREQUEST_PULLREQUESTID",),
    "organization": ("AZURE_DEVOPS_ORG_URL", "SYSTEM_COLLECTIONURI"),
    "project": ("AZURE_DEVOPS_PROJECT", "SYSTEM_TEAMPROJECT"),
    "repository": ("BUILD_REPOSITORY_NAME",),
    "repository_id": ("BUILD_REPOSITORY_ID",),
    "target_branch": ("SYSTEM_PULLREQUEST_TARGETBRANCH",),
    "azure_token": ("AZURE_DEVOPS_PAT", "SYSTEM_ACCESSTOKEN"),
    "openai_api_key": ("OPENAI_API_KEY",),
}

_SECRET_FIELDS = ("azure_token", "openai_api_key")


def _bounded_int(value: str, *, flag: str, lo: int, hi: int | None = None) -> int:
    try:
        n = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"{flag} must be an integer") from exc
    if n < lo:
        raise argparse.ArgumentTypeError(f"{flag} must be >= {lo}")
    if hi is not None and n > hi:
        raise argparse.ArgumentTypeError(f"{flag} must be <= {hi}")
    return n


def parse_pr_id(value: str) -> int:
    return _bounded_int(value, flag="--pr-id", lo=1)


def parse_max_files(value: str) -> int:
    return _bounded_int(value, flag="--max-files", lo=1, hi=MAX_FILES_LIMIT)


def parse_max_diff_chars(value: str) -> int:
    return _bounded_int(value, flag="--max-diff-chars", lo=1)


def parse_time_budget(value: str) -> int:
    return _bounded_int(
        value, flag="--review-time-budget", lo=1, hi=MAX_TIME_BUDGET_MINUTES
    )


def parse_repository_id(value: str) -> str:
    v = value.strip()
    if not _UUID_RE.match(v):
        raise argparse.ArgumentTypeError("--repository-id must be a UUID")
    return v


def mask_secret(value: str | None) -> str | None:
    """Mask a credential for display, keeping two characters at each end."""

    if not value:
        return value
    if len(value) <= 4:
        return "***"
    return f"{value[:2]}***{value[-2:]}"


@dataclass(frozen=True)
class ReviewOptions:
    pr_id: int | None = None
    organization: str | None = None
    project: str | None = None
    repository: str | None = None
    repository_id: str | None = None
    target_branch: str | None = None
    diff_file: str | None = None
    max_files: int = DEFAULT_MAX_FILES
    max_diff_chars: int = DEFAULT_MAX_DIFF_CHARS
    dry_run: bool = False
    debug: bool = False
    output_json: str | None = None
    codex_response_file: str | None = None
    review_time_budget: int | None = None
    azure_token: str | None = None
    openai_api_key: str | None = None
    ignore_files: tuple[str, ...] = field(default_factory=tuple)
    prompt: str | None = None

    def redacted(self) -> dict[str, Any]:
        data = asdict(self)
        for name in _SECRET_FIELDS:
            data[name] = mask_secret(data[name])
        data["ignore_files"] = list(self.ignore_files)
        return data


def _env_value(env: Mapping[str, str], names: Sequence[str]) -> str | None:
    for name in names:
        v = (env.get(name) or "").strip()
        if v:
            return v
    return None


def _env_int(env: Mapping[str, str], names: Sequence[str]) -> int | None:
    raw = _env_value(env, names)
    if raw is None:
        return None
    try:
        n = int(raw)
    except ValueError:
        return None
    return n if n >= 1 else None


def options_from_args(
    args: argparse.Namespace, env: Mapping[str, str] | None = None
) -> ReviewOptions:
    """Merge parsed arguments with environment fallbacks.

    Flags win over the environment. Pipeline variables that do not parse
    (for example a non-numeric pull-request id outside a PR build) are
    ignored rather than rejected.
    """

    environ = os.environ if env is None else env

    def pick(name: str) -> str | None:
        v = getattr(args, name, None)
        if isinstance(v, str) and v.strip():
            return v.strip()
        return _env_value(environ, ENV_FALLBACKS.get(name, ()))

    pr_id = getattr(args, "pr_id", None)
    if pr_id is None:
        pr_id = _env_int(environ, ENV_FALLBACKS["pr_id"])

    repository_id = pick("repository_id")
    if repository_id and not _UUID_RE.match(repository_id):
        repository_id = None

    return ReviewOptions(
        pr_id=pr_id,
        organization=pick("organization"),
        project=pick("project"),
        repository=pick("repository"),
        repository_id=repository_id,
        target_branch=pick("target_branch"),
        diff_file=getattr(args, "diff_file", None),
        max_files=getattr(args, "max_files", DEFAULT_MAX_FILES),
        max_diff_chars=getattr(args, "max_diff_chars", DEFAULT_MAX_DIFF_CHARS),
        dry_run=bool(getattr(args, "dry_run", False)),
        debug=bool(getattr(args, "debug", False)),
        output_json=getattr(args, "output_json", None),
        codex_response_file=getattr(args, "codex_response_file", None),
        review_time_budget=getattr(args, "review_time_budget", None),
        azure_token=pick("azure_token"),
        openai_api_key=pick("openai_api_key"),
        ignore_files=tuple(getattr(args, "ignore_files", None) or ()),
        prompt=getattr(args, "prompt", None),
    )
