"""Pull-request metadata fetcher."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from ..models import PullRequestMetadata


class _PullRequestClient(Protocol):
    def show_pull_request(self, *, pr_id: int) -> dict[str, Any]: ...


def _opt_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    s = value.strip()
    return s or None


def _nested_str(data: Mapping[str, Any], outer: str, inner: str) -> str | None:
    obj = data.get(outer)
    if not isinstance(obj, Mapping):
        return None
    return _opt_str(obj.get(inner))


def parse_pull_request_metadata(data: Mapping[str, Any]) -> PullRequestMetadata:
    return PullRequestMetadata(
        title=_opt_str(data.get("title")),
        description=_opt_str(data.get("description")),
        source_ref_name=_opt_str(data.get("sourceRefName")),
        target_ref_name=_opt_str(data.get("targetRefName")),
        repository_id=_nested_str(data, "repository", "id"),
    )


def fetch_pull_request_metadata(
    *, client: _PullRequestClient, pr_id: int
) -> PullRequestMetadata:
    return parse_pull_request_metadata(client.show_pull_request(pr_id=pr_id))
