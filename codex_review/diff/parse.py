"""Split a multi-file unified diff into per-file sections.

Each section keeps its raw text (header, hunks and all) so it can be sent to
the model as-is. Only `diff --git` headed sections are recognized.
"""

from __future__ import annotations

from dataclasses import dataclass
import re
import shlex

from ..errors import DiffParseError


@dataclass(frozen=True)
class FileDiff:
    """One file's section of a unified diff."""

    path: str
    diff: str


_LINE_SPLIT_RE = re.compile(r"\r?\n")

_DIFF_GIT_PREFIX = "diff --git "
_PLUS_B_PREFIX = "+++ b/"


def _parse_diff_git_paths(line: str) -> tuple[str, str] | None:
    """Parse `diff --git <a> <b>` and return raw tokens.

    Supports quoted paths emitted by git for whitespace/special characters.
    """

    rest = line[len(_DIFF_GIT_PREFIX) :]
    try:
        parts = shlex.split(rest, posix=True)
    except ValueError:
        return None

    if len(parts) != 2:
        return None
    return parts[0], parts[1]


def _provisional_path(line: str) -> str:
    """Path from the `diff --git` header, stripped of its `a/` prefix.

    The header is ambiguous for renames and unquoted paths with spaces, so
    this is only a fallback until the `+++ b/` marker is seen.
    """

    toks = _parse_diff_git_paths(line)
    if toks is not None:
        a_tok = toks[0]
    else:
        parts = line.split(" ")
        if len(parts) < 4:
            return "unknown"
        a_tok = parts[2]
    return a_tok[2:] if a_tok.startswith("a/") else a_tok


def _target_path(line: str) -> str:
    """Path from a `+++ b/<path>` marker, or "" when the line is not one."""

    raw = line[4:]
    try:
        parts = shlex.split(raw, posix=True)
    except ValueError:
        parts = []
    if len(parts) == 1 and parts[0].startswith("b/"):
        return parts[0][2:]

    if line.startswith(_PLUS_B_PREFIX):
        return line[len(_PLUS_B_PREFIX) :].strip()
    return ""


def parse_unified_diff(diff_text: str) -> list[FileDiff]:
    """Split `diff_text` into ordered `FileDiff` records.

    Raises DiffParseError when no file section is found.
    """

    files: list[FileDiff] = []
    cur_path: str | None = None
    cur_lines: list[str] = []

    def flush() -> None:
        nonlocal cur_lines
        if cur_path and cur_lines:
            files.append(FileDiff(path=cur_path, diff="\n".join(cur_lines)))
        cur_lines = []

    text = "" if diff_text is None else str(diff_text)
    for line in _LINE_SPLIT_RE.split(text):
        if line.startswith(_DIFF_GIT_PREFIX):
            flush()
            cur_path = _provisional_path(line)
            cur_lines = [line]
            continue

        if cur_path is None:
            # Preamble before the first file header.
            continue

        cur_lines.append(line)
        if line.startswith("+++ "):
            target = _target_path(line)
            if target:
                cur_path = target

    flush()

    if not files:
        raise DiffParseError("No file diffs detected in diff payload.")
    return files
