"""Azure CLI (`az`) wrapper.

This module provides a thin wrapper around `az` subprocess execution for the
Azure DevOps pull-request endpoints the reviewer needs.
"""

from __future__ import annotations

import json
import os
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Any

from ..errors import BlockedError, ExecFailureError

API_VERSION = "7.0"


def _az_bin() -> str:
    return os.environ.get("CODEX_REVIEW_AZ_BIN", "az")


def _is_auth_blocked(stderr: str) -> bool:
    s = stderr.lower()
    return (
        "az login" in s
        or "az devops login" in s
        or "unauthorized" in s
        or "authentication" in s
        or "tf400813" in s
        or "personal access token" in s
    )


def _truncate(s: str, max_chars: int = 2000) -> str:
    if len(s) <= max_chars:
        return s
    return s[: max_chars - 20] + "... [truncated]"


def resolve_organization_url(org: str) -> str:
    """Accept an organization name or URL and return the organization URL."""

    s = (org or "").strip()
    if s.startswith("http"):
        return s.rstrip("/")
    return f"https://dev.azure.com/{s.lstrip('/')}"


@dataclass(frozen=True)
class AzClient:
    """Minimal `az` client scoped to one organization and project."""

    organization_url: str
    project: str
    token: str | None = None
    bin_path: str = "az"
    timeout_s: int = 120

    @classmethod
    def from_env(
        cls, *, organization: str, project: str, token: str | None = None
    ) -> "AzClient":
        return cls(
            organization_url=resolve_organization_url(organization),
            project=project,
            token=token,
            bin_path=_az_bin(),
        )

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.token:
            env["AZURE_DEVOPS_EXT_PAT"] = self.token
        return env

    def _run(self, args: list[str]) -> str:
        try:
            p = subprocess.run(
                [self.bin_path, *args],
                text=True,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
                timeout=self.timeout_s,
                env=self._env(),
            )
        except FileNotFoundError as exc:
            raise BlockedError(
                "`az` is required. Install Azure CLI with the azure-devops "
                "extension and ensure it is on PATH."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ExecFailureError(f"`az` timed out after {self.timeout_s}s") from exc

        if p.returncode != 0:
            stderr = (p.stderr or "").strip()
            msg = stderr or f"`az` failed (exit={p.returncode})"
            msg = _truncate(msg)
            if _is_auth_blocked(stderr):
                raise BlockedError(msg)
            raise ExecFailureError(msg)

        return p.stdout

    def _run_json(self, args: list[str], *, what: str) -> Any:
        raw = self._run([*args, "--output", "json"])
        try:
            return json.loads(raw or "null")
        except json.JSONDecodeError as exc:
            raise ExecFailureError(f"`{what}` returned invalid JSON") from exc

    def _invoke_threads(
        self,
        *,
        repository_id: str,
        pr_id: int,
        method: str,
        in_file: str | None = None,
    ) -> Any:
        args = [
            "devops",
            "invoke",
            "--area",
            "git",
            "--resource",
            "pullRequestThreads",
            "--route-parameters",
            f"project={self.project}",
            f"repositoryId={repository_id}",
            f"pullRequestId={pr_id}",
            "--http-method",
            method,
            "--api-version",
            API_VERSION,
            "--org",
            self.organization_url,
        ]
        if in_file is not None:
            args.extend(["--in-file", in_file])
        return self._run_json(args, what="az devops invoke")

    def show_pull_request(self, *, pr_id: int) -> dict[str, Any]:
        data = self._run_json(
            [
                "repos",
                "pr",
                "show",
                "--id",
                str(pr_id),
                "--org",
                self.organization_url,
            ],
            what="az repos pr show",
        )
        if not isinstance(data, dict):
            raise ExecFailureError("Unexpected JSON shape from `az repos pr show`")
        return data

    def repository_id(self, *, repository: str) -> str:
        data = self._run_json(
            [
                "repos",
                "show",
                "--repository",
                repository,
                "--project",
                self.project,
                "--org",
                self.organization_url,
            ],
            what="az repos show",
        )
        repo_id = data.get("id") if isinstance(data, dict) else None
        if not isinstance(repo_id, str) or not repo_id.strip():
            raise ExecFailureError(f"Could not resolve repository ID for {repository}")
        return repo_id.strip()

    def list_threads(self, *, repository_id: str, pr_id: int) -> list[dict[str, Any]]:
        data = self._invoke_threads(
            repository_id=repository_id, pr_id=pr_id, method="GET"
        )
        if isinstance(data, dict):
            items = data.get("value")
            if isinstance(items, list):
                return [x for x in items if isinstance(x, dict)]
        if isinstance(data, list):
            return [x for x in data if isinstance(x, dict)]
        raise ExecFailureError("Unexpected JSON shape from pull request threads API")

    def create_thread(
        self, *, repository_id: str, pr_id: int, thread: dict[str, Any]
    ) -> dict[str, Any]:
        with tempfile.TemporaryDirectory(prefix="codex-review-") as td:
            in_file = os.path.join(td, "thread.json")
            with open(in_file, "w", encoding="utf-8") as fh:
                json.dump(thread, fh, ensure_ascii=False)
            data = self._invoke_threads(
                repository_id=repository_id,
                pr_id=pr_id,
                method="POST",
                in_file=in_file,
            )
        if not isinstance(data, dict):
            raise ExecFailureError("Unexpected JSON shape from create thread API")
        return data
