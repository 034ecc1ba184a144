from __future__ import annotations

import unittest
from typing import Any

from codex_review.errors import ExecFailureError
from codex_review.log import null_logger
from codex_review.models import Finding, OriginFinding, ReviewResult, ReviewSuggestion

REPO_ID = "11111111-2222-3333-4444-555555555555"


class _FakeAzClient:
    def __init__(self, *, fail_on_call: int | None = None) -> None:
        self.threads: list[dict[str, Any]] = []
        self.calls = 0
        self._fail_on_call = fail_on_call

    def create_thread(
        self, *, repository_id: str, pr_id: int, thread: dict[str, Any]
    ) -> dict[str, Any]:
        self.calls += 1
        if self._fail_on_call is not None and self.calls == self._fail_on_call:
            raise ExecFailureError("POST failed")
        stored = dict(thread, id=len(self.threads) + 1)
        self.threads.append(stored)
        return stored


class _StaticReader:
    def read(self, path: str, start_line: int, end_line: int) -> str | None:
        return None


def _suggestion(file: str = "src/a.ts", start: int = 10, end: int = 11, **kw: Any) -> ReviewSuggestion:
    return ReviewSuggestion(
        file=file,
        start_line=start,
        end_line=end,
        comment=kw.get("comment", "Add guard clause."),
        replacement=kw.get("replacement", "if (!value) {\n  return;\n}"),
        origin_finding=kw.get("origin"),
    )


def _review(*suggestions: ReviewSuggestion, findings: list[Finding] | None = None) -> ReviewResult:
    return ReviewResult(summary="Done.", findings=findings or [], suggestions=list(suggestions))


def _post(review: ReviewResult, client: _FakeAzClient | None, **kw: Any) -> dict[str, int]:
    from codex_review.azure.post_comments import post_suggestions

    return post_suggestions(
        review,
        client=client,
        repository_id=kw.get("repository_id", REPO_ID),
        pr_id=kw.get("pr_id", 42),
        reader=kw.get("reader", _StaticReader()),
        signatures=kw.get("signatures", set()),
        ignore_patterns=kw.get("ignore_patterns"),
        dry_run=kw.get("dry_run", False),
        logger=null_logger(),
    )


class TestPostSuggestions(unittest.TestCase):
    def test_thread_payload_shape(self) -> None:
        client = _FakeAzClient()

        counts = _post(_review(_suggestion(origin=OriginFinding(title="Missing guard"))), client)

        self.assertEqual(counts["posted"], 1)
        thread = client.threads[0]
        self.assertEqual(thread["status"], 1)
        self.assertEqual(
            thread["threadContext"],
            {
                "filePath": "/src/a.ts",
                "rightFileStart": {"line": 10, "offset": 1},
                "rightFileEnd": {"line": 11, "offset": 1},
            },
        )
        comment = thread["comments"][0]
        self.assertEqual(comment["commentType"], 1)
        self.assertEqual(
            comment["content"],
            "Missing guard\n\nAdd guard clause.\n\n"
            "```suggestion\nif (!value) {\r\n  return;\r\n}\n```",
        )

    def test_same_suggestion_twice_in_one_run_posts_once(self) -> None:
        client = _FakeAzClient()

        counts = _post(_review(_suggestion(), _suggestion()), client)

        self.assertEqual((counts["posted"], counts["duplicate"]), (1, 1))
        self.assertEqual(len(client.threads), 1)

    def test_previously_posted_signature_is_skipped(self) -> None:
        from codex_review.azure.threads import summarize_threads

        first = _FakeAzClient()
        _post(_review(_suggestion()), first)
        existing = summarize_threads(first.threads)

        second = _FakeAzClient()
        counts = _post(_review(_suggestion()), second, signatures=set(existing.signatures))

        self.assertEqual(counts["duplicate"], 1)
        self.assertEqual(second.calls, 0)

    def test_empty_after_sanitizing_is_not_posted(self) -> None:
        class _Reader:
            def read(self, path: str, start_line: int, end_line: int) -> str | None:
                return "doWork();"

        client = _FakeAzClient()

        counts = _post(_review(_suggestion(replacement="doWork();\n")), client, reader=_Reader())

        self.assertEqual(counts["empty"], 1)
        self.assertEqual(client.calls, 0)

    def test_ignored_files_are_not_posted(self) -> None:
        client = _FakeAzClient()

        counts = _post(
            _review(_suggestion(file="tests/a.test.ts"), _suggestion(file="src/b.ts")),
            client,
            ignore_patterns=["tests/**"],
        )

        self.assertEqual((counts["ignored"], counts["posted"]), (1, 1))
        self.assertEqual(client.threads[0]["threadContext"]["filePath"], "/src/b.ts")

    def test_first_failure_stops_the_batch(self) -> None:
        client = _FakeAzClient(fail_on_call=2)
        review = _review(
            _suggestion(start=1, end=1), _suggestion(start=5, end=5), _suggestion(start=9, end=9)
        )

        with self.assertRaises(ExecFailureError):
            _post(review, client)

        self.assertEqual(client.calls, 2)
        self.assertEqual(len(client.threads), 1)

    def test_dry_run_makes_no_calls(self) -> None:
        client = _FakeAzClient()

        counts = _post(_review(_suggestion(), _suggestion()), client, dry_run=True)

        self.assertEqual((counts["dry_run"], counts["duplicate"]), (1, 1))
        self.assertEqual(client.calls, 0)

    def test_dry_run_works_without_host(self) -> None:
        counts = _post(_review(_suggestion()), None, repository_id=None, pr_id=None, dry_run=True)

        self.assertEqual(counts["dry_run"], 1)

    def test_without_pr_or_repository_nothing_is_posted(self) -> None:
        client = _FakeAzClient()

        self.assertEqual(_post(_review(_suggestion()), client, pr_id=None)["posted"], 0)
        self.assertEqual(_post(_review(_suggestion()), client, repository_id=None)["posted"], 0)
        self.assertEqual(client.calls, 0)


class TestPostOverallComment(unittest.TestCase):
    def _post_overall(self, client: _FakeAzClient, signatures: set[str], **kw: Any) -> str:
        from codex_review.azure.post_comments import post_overall_comment

        review = _review(findings=[Finding(file="src/a.ts", line=3, title="Bug")])
        return post_overall_comment(
            review,
            client=client,
            repository_id=REPO_ID,
            pr_id=42,
            signatures=signatures,
            reviewed_sha=kw.get("reviewed_sha"),
            dry_run=kw.get("dry_run", False),
            logger=null_logger(),
        )

    def test_posts_summary_with_review_head_marker(self) -> None:
        client = _FakeAzClient()

        status = self._post_overall(client, set(), reviewed_sha="abc1234")

        self.assertEqual(status, "posted")
        thread = client.threads[0]
        self.assertNotIn("threadContext", thread)
        self.assertEqual(
            thread["comments"][0]["content"],
            "Done.\n\n### Findings\n- src/a.ts:3 - Bug\n\n<!-- codex-review-head: abc1234 -->",
        )

    def test_repeat_run_with_new_head_is_duplicate(self) -> None:
        from codex_review.azure.threads import summarize_threads

        first = _FakeAzClient()
        self._post_overall(first, set(), reviewed_sha="abc1234")
        existing = summarize_threads(first.threads)

        second = _FakeAzClient()
        status = self._post_overall(second, set(existing.signatures), reviewed_sha="def5678")

        self.assertEqual(status, "duplicate")
        self.assertEqual(second.calls, 0)

    def test_dry_run(self) -> None:
        client = _FakeAzClient()

        self.assertEqual(self._post_overall(client, set(), dry_run=True), "dry_run")
        self.assertEqual(client.calls, 0)


if __name__ == "__main__":
    unittest.main()
