"""Application errors and exit codes."""

from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes (fixed contract).

    - 0: Success (including "nothing to review")
    - 1: Blocked (missing tool, credentials, or host settings)
    - 2: Execution failure (invalid input / runtime failure)
    """

    SUCCESS = 0
    BLOCKED = 1
    EXEC_FAILURE = 2


class CodexReviewError(Exception):
    """Base application error."""


class BlockedError(CodexReviewError):
    """Action is blocked until a prerequisite is satisfied."""


class ExecFailureError(CodexReviewError):
    """Execution failed due to invalid input or runtime failure."""


class DiffParseError(ExecFailureError):
    """No file sections could be read from the diff text."""


class DiffBudgetError(ExecFailureError):
    """Size limits leave no file representable in the prompt."""


class ReviewSchemaError(ExecFailureError):
    """Model output is not JSON or does not match the review schema."""
