"""Codex runner (headless subprocess).

Runs `codex exec` with the review prompt on stdin, constrains the final
message to `codex-output.schema.json` and returns that message verbatim.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..errors import BlockedError, ExecFailureError
from ..log import null_logger
from ..validate.review_json import schemas_dir

DEFAULT_SYSTEM_INSTRUCTION = (
    "You are an autonomous code-review assistant focused on actionable feedback."
)
TASK_INSTRUCTION = (
    "Analyze the provided unified diff for a pull request and respond in JSON "
    "that conforms to the supplied schema."
)
NEW_LINES_ONLY_INSTRUCTION = (
    "When emitting suggestion replacement text, include only the new lines "
    "exactly as they should appear in the file; do not repeat the "
    "original/removed code inside the suggestion block."
)

_NULL_LOGGER = null_logger()


def _codex_bin() -> str:
    return os.environ.get("CODEX_REVIEW_CODEX_BIN", "codex")


def _truncate_tail(s: str, max_chars: int = 2000) -> str:
    if len(s) <= max_chars:
        return s
    keep = max_chars - 20
    return "... [truncated]" + s[-keep:]


def _redact_secrets(text: str) -> str:
    if not text:
        return text

    out = text
    out = re.sub(r"(?i)\bBearer\s+[A-Za-z0-9._\-]+", "Bearer <REDACTED>", out)
    out = re.sub(r"\bsk-[A-Za-z0-9_\-]{8,}", "sk-<REDACTED>", out)
    out = re.sub(
        r"(?im)\b([A-Z0-9_]{2,64}_(?:TOKEN|KEY|SECRET|PAT))\b\s*[:=]\s*\S+",
        r"\1=<REDACTED>",
        out,
    )
    return out


class ReviewModel(Protocol):
    def review(self, prompt: str) -> str: ...


def build_instructions(
    prompt: str,
    *,
    time_budget_minutes: int | None = None,
    instruction_override: str | None = None,
) -> str:
    parts = [(instruction_override or "").strip() or DEFAULT_SYSTEM_INSTRUCTION]
    if time_budget_minutes is not None and time_budget_minutes > 0:
        parts.append(
            "Work efficiently and limit your analysis to what you can cover in at "
            f"most {time_budget_minutes} minutes; prioritize the most important "
            "issues first."
        )
    parts.append(TASK_INSTRUCTION)
    parts.append(NEW_LINES_ONLY_INSTRUCTION)
    parts.append(prompt)
    return "\n".join(parts)


@dataclass(frozen=True)
class CodexRunner:
    bin_path: str = "codex"
    api_key: str | None = None
    time_budget_minutes: int | None = None
    instruction_override: str | None = None
    cwd: str | None = None
    logger: logging.Logger = _NULL_LOGGER

    @classmethod
    def from_env(
        cls,
        *,
        api_key: str | None = None,
        time_budget_minutes: int | None = None,
        instruction_override: str | None = None,
        cwd: str | None = None,
        logger: logging.Logger = _NULL_LOGGER,
    ) -> "CodexRunner":
        return cls(
            bin_path=_codex_bin(),
            api_key=api_key,
            time_budget_minutes=time_budget_minutes,
            instruction_override=instruction_override,
            cwd=cwd,
            logger=logger,
        )

    def _build_cmd(self, output_path: str) -> list[str]:
        return [
            self.bin_path,
            "exec",
            "--skip-git-repo-check",
            "--output-schema",
            str(schemas_dir() / "codex-output.schema.json"),
            "--output-last-message",
            output_path,
            "-",
        ]

    def _env(self) -> dict[str, str]:
        env = os.environ.copy()
        if self.api_key:
            env["CODEX_API_KEY"] = self.api_key
            env["OPENAI_API_KEY"] = self.api_key
        return env

    def review(self, prompt: str) -> str:
        """Run one Codex turn and return its final message.

        Raises BlockedError when `codex` is missing and ExecFailureError when it
        fails or produces no output.
        """

        if not self.api_key:
            raise BlockedError(
                "OpenAI API key not provided. Set OPENAI_API_KEY or pass --openai-api-key."
            )

        message = build_instructions(
            prompt,
            time_budget_minutes=self.time_budget_minutes,
            instruction_override=self.instruction_override,
        )
        self.logger.info("Requesting review from Codex agent")
        self.logger.debug("Codex prompt:\n%s", message)

        with tempfile.TemporaryDirectory(prefix="codex-review-") as td:
            output_path = os.path.join(td, "last-message.json")
            cmd = self._build_cmd(output_path)
            try:
                p = subprocess.run(
                    cmd,
                    input=message,
                    text=True,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    check=False,
                    cwd=self.cwd,
                    env=self._env(),
                )
            except FileNotFoundError as exc:
                raise BlockedError(
                    "`codex` is required. Install the Codex CLI and ensure it is on PATH."
                ) from exc
            except OSError as exc:
                raise ExecFailureError(
                    f"Codex subprocess failed: {type(exc).__name__}: {exc}"
                ) from exc

            if p.returncode != 0:
                stderr = _redact_secrets((p.stderr or "").strip())
                msg = stderr or f"Codex failed (exit={p.returncode})"
                raise ExecFailureError(_truncate_tail(msg))

            try:
                raw_output = Path(output_path).read_text(encoding="utf-8")
            except FileNotFoundError:
                raw_output = p.stdout or ""
            except OSError as exc:
                raise ExecFailureError(
                    f"Failed to read Codex output: {type(exc).__name__}: {exc}"
                ) from exc

        if not raw_output.strip():
            raise ExecFailureError("Codex response was empty.")
        self.logger.debug("Raw model output:\n%s", raw_output)
        return raw_output


@dataclass(frozen=True)
class ResponseFileModel:
    """Replays a recorded model response instead of calling Codex."""

    path: str
    logger: logging.Logger = _NULL_LOGGER

    def review(self, prompt: str) -> str:
        p = Path(self.path).resolve()
        self.logger.info("Using Codex response fixture from %s", p)
        try:
            return p.read_text(encoding="utf-8")
        except OSError as exc:
            raise ExecFailureError(
                f"Failed to read Codex response file: {str(p)!r}"
            ) from exc
