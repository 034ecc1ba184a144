from __future__ import annotations

import unittest


class TestDiffParse(unittest.TestCase):
    def test_splits_files_in_order_and_keeps_raw_text(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = (
            "diff --git a/src/a.ts b/src/a.ts\n"
            "index 1111111..2222222 100644\n"
            "--- a/src/a.ts\n"
            "+++ b/src/a.ts\n"
            "@@ -10,2 +10,3 @@\n"
            "-old\n"
            "+new\n"
            "diff --git a/README.md b/README.md\n"
            "--- a/README.md\n"
            "+++ b/README.md\n"
            "@@ -1 +1 @@\n"
            "-x\n"
            "+y"
        )

        files = parse_unified_diff(diff)

        self.assertEqual([f.path for f in files], ["src/a.ts", "README.md"])
        self.assertTrue(files[0].diff.startswith("diff --git a/src/a.ts b/src/a.ts\n"))
        self.assertTrue(files[0].diff.endswith("+new"))
        self.assertNotIn("README.md", files[0].diff)
        self.assertEqual(files[1].diff.splitlines()[-1], "+y")

    def test_target_marker_overrides_header_path_for_renames(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = (
            "diff --git a/old/name.py b/new/name.py\n"
            "similarity index 90%\n"
            "rename from old/name.py\n"
            "rename to new/name.py\n"
            "--- a/old/name.py\n"
            "+++ b/new/name.py\n"
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )

        files = parse_unified_diff(diff)

        self.assertEqual([f.path for f in files], ["new/name.py"])

    def test_paths_with_spaces_resolve_from_quoted_target_marker(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = (
            'diff --git "a/docs/my file.md" "b/docs/my file.md"\n'
            '--- "a/docs/my file.md"\n'
            '+++ "b/docs/my file.md"\n'
            "@@ -1 +1 @@\n"
            "-a\n"
            "+b\n"
        )

        files = parse_unified_diff(diff)

        self.assertEqual(files[0].path, "docs/my file.md")

    def test_deleted_file_keeps_header_path(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = (
            "diff --git a/gone.txt b/gone.txt\n"
            "deleted file mode 100644\n"
            "--- a/gone.txt\n"
            "+++ /dev/null\n"
            "@@ -1 +0,0 @@\n"
            "-bye\n"
        )

        files = parse_unified_diff(diff)

        self.assertEqual(files[0].path, "gone.txt")

    def test_preamble_before_first_header_is_skipped(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = (
            "From 123 Mon Sep 17 00:00:00 2001\n"
            "Subject: [PATCH] change\n"
            "\n"
            "diff --git a/x.txt b/x.txt\n"
            "--- a/x.txt\n"
            "+++ b/x.txt\n"
            "@@ -1 +1 @@\n"
            "-1\n"
            "+2\n"
        )

        files = parse_unified_diff(diff)

        self.assertEqual(len(files), 1)
        self.assertNotIn("Subject", files[0].diff)

    def test_crlf_input_is_split_on_lines(self) -> None:
        from codex_review.diff.parse import parse_unified_diff

        diff = "diff --git a/x.txt b/x.txt\r\n--- a/x.txt\r\n+++ b/x.txt\r\n+2\r\n"

        files = parse_unified_diff(diff)

        self.assertEqual(files[0].path, "x.txt")
        self.assertNotIn("\r", files[0].diff)

    def test_empty_or_headerless_input_raises(self) -> None:
        from codex_review.diff.parse import parse_unified_diff
        from codex_review.errors import DiffParseError, ExecFailureError

        for text in ("", "just some text\n", "--- a/x\n+++ b/x\n@@ -1 +1 @@\n"):
            with self.subTest(text=text):
                with self.assertRaises(DiffParseError):
                    parse_unified_diff(text)

        self.assertTrue(issubclass(DiffParseError, ExecFailureError))


if __name__ == "__main__":
    unittest.main()
