from __future__ import annotations

import unittest


class TestShouldIgnore(unittest.TestCase):
    def test_normalizes_dot_slash_and_backslashes(self) -> None:
        from codex_review.glob import should_ignore

        for path in ("./tests/math.test.ts", "tests\\math.test.ts", "tests/math.test.ts"):
            with self.subTest(path=path):
                self.assertTrue(should_ignore(path, ["tests/**"]))

    def test_double_star_matches_hidden_directories(self) -> None:
        from codex_review.glob import should_ignore

        self.assertTrue(should_ignore(".github/workflows/ci.yml", [".github/**"]))
        self.assertTrue(should_ignore("src/.env.local", ["**/.env*"]))

    def test_star_does_not_cross_directory(self) -> None:
        from codex_review.glob import should_ignore

        self.assertTrue(should_ignore("docs/a.md", ["docs/*.md"]))
        self.assertFalse(should_ignore("docs/sub/a.md", ["docs/*.md"]))
        self.assertTrue(should_ignore("docs/sub/a.md", ["docs/**/*.md"]))

    def test_no_patterns_ignores_nothing(self) -> None:
        from codex_review.glob import should_ignore

        self.assertFalse(should_ignore("src/a.ts", []))
        self.assertFalse(should_ignore("src/a.ts", None))
        self.assertFalse(should_ignore("src/a.ts", ["", "   "]))

    def test_pattern_is_normalized_too(self) -> None:
        from codex_review.glob import should_ignore

        self.assertTrue(should_ignore("vendor/lib.js", ["./vendor/**"]))
        self.assertTrue(should_ignore("vendor/lib.js", ["vendor\\**"]))


class TestFilters(unittest.TestCase):
    def test_filter_file_diffs_identity_without_patterns(self) -> None:
        from codex_review.diff.parse import FileDiff
        from codex_review.glob import filter_file_diffs

        files = [FileDiff(path="a.ts", diff="d1"), FileDiff(path="b.ts", diff="d2")]

        self.assertEqual(filter_file_diffs(files, []), files)
        self.assertEqual(
            [f.path for f in filter_file_diffs(files, ["b.*"])],
            ["a.ts"],
        )

    def test_filter_review_uses_effective_file_and_keeps_unanchored(self) -> None:
        from codex_review.glob import filter_review
        from codex_review.models import (
            Finding,
            ReviewResult,
            ReviewSuggestion,
            SuggestionDetails,
        )

        nested = SuggestionDetails(
            file="tests/a.test.ts", start_line=1, end_line=1, comment="c", replacement="r"
        )
        review = ReviewResult(
            summary="s",
            findings=[
                Finding(file="tests/x.ts", line=1, title="ignored by own file"),
                Finding(title="ignored by suggestion file", suggestion=nested),
                Finding(title="general"),
                Finding(file="src/a.ts", line=3, title="kept"),
            ],
            suggestions=[
                ReviewSuggestion(
                    file="tests/a.test.ts", start_line=1, end_line=1, comment="c", replacement="r"
                ),
                ReviewSuggestion(
                    file="src/a.ts", start_line=3, end_line=3, comment="c", replacement="r"
                ),
            ],
        )

        got = filter_review(review, ["tests/**"])

        self.assertEqual([f.title for f in got.findings], ["general", "kept"])
        self.assertEqual([s.file for s in got.suggestions], ["src/a.ts"])
        self.assertEqual(got.summary, "s")


if __name__ == "__main__":
    unittest.main()
