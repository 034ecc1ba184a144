from __future__ import annotations

import argparse
import unittest


def _args(**kw: object) -> argparse.Namespace:
    base: dict[str, object] = {
        "pr_id": None,
        "organization": None,
        "project": None,
        "repository": None,
        "repository_id": None,
        "target_branch": None,
        "diff_file": None,
        "max_files": 20,
        "max_diff_chars": 16000,
        "dry_run": False,
        "debug": False,
        "output_json": None,
        "codex_response_file": None,
        "review_time_budget": None,
        "azure_token": None,
        "openai_api_key": None,
        "ignore_files": [],
        "prompt": None,
    }
    base.update(kw)
    return argparse.Namespace(**base)


class TestValidators(unittest.TestCase):
    def test_bounded_integers(self) -> None:
        from codex_review.config import parse_max_files, parse_pr_id, parse_time_budget

        self.assertEqual(parse_pr_id("42"), 42)
        self.assertEqual(parse_max_files("100"), 100)
        self.assertEqual(parse_time_budget("120"), 120)
        for fn, value in (
            (parse_pr_id, "0"),
            (parse_pr_id, "abc"),
            (parse_max_files, "0"),
            (parse_max_files, "101"),
            (parse_time_budget, "121"),
        ):
            with self.subTest(fn=fn.__name__, value=value):
                with self.assertRaises(argparse.ArgumentTypeError):
                    fn(value)

    def test_repository_id_must_be_uuid(self) -> None:
        from codex_review.config import parse_repository_id

        uuid = "11111111-2222-3333-4444-555555555555"
        self.assertEqual(parse_repository_id(f" {uuid} "), uuid)
        with self.assertRaises(argparse.ArgumentTypeError):
            parse_repository_id("my-repo")

    def test_mask_secret(self) -> None:
        from codex_review.config import mask_secret

        self.assertEqual(mask_secret("abcdefyz"), "ab***yz")
        self.assertEqual(mask_secret("abc"), "***")
        self.assertIsNone(mask_secret(None))


class TestOptionsFromArgs(unittest.TestCase):
    def test_flags_win_over_environment(self) -> None:
        from codex_review.config import options_from_args

        env = {
            "SYSTEM_PULLREQUEST_PULLREQUESTID": "7",
            "SYSTEM_COLLECTIONURI": "https://dev.azure.com/env-org/",
            "SYSTEM_TEAMPROJECT": "env-project",
        }

        options = options_from_args(_args(pr_id=3, project="cli-project"), env)

        self.assertEqual(options.pr_id, 3)
        self.assertEqual(options.project, "cli-project")
        self.assertEqual(options.organization, "https://dev.azure.com/env-org/")

    def test_pipeline_variables_fill_gaps(self) -> None:
        from codex_review.config import options_from_args

        env = {
            "SYSTEM_PULLREQUEST_PULLREQUESTID": "17",
            "AZURE_DEVOPS_ORG_URL": "https://dev.azure.com/acme",
            "SYSTEM_COLLECTIONURI": "https://dev.azure.com/other",
            "AZURE_DEVOPS_PROJECT": "web",
            "BUILD_REPOSITORY_NAME": "frontend",
            "BUILD_REPOSITORY_ID": "11111111-2222-3333-4444-555555555555",
            "SYSTEM_ACCESSTOKEN": "pipeline-token",
            "OPENAI_API_KEY": "sk-env",
        }

        options = options_from_args(_args(), env)

        self.assertEqual(options.pr_id, 17)
        self.assertEqual(options.organization, "https://dev.azure.com/acme")
        self.assertEqual(options.project, "web")
        self.assertEqual(options.repository, "frontend")
        self.assertEqual(options.repository_id, "11111111-2222-3333-4444-555555555555")
        self.assertEqual(options.azure_token, "pipeline-token")
        self.assertEqual(options.openai_api_key, "sk-env")

    def test_unparseable_pipeline_values_are_ignored(self) -> None:
        from codex_review.config import options_from_args

        env = {
            "SYSTEM_PULLREQUEST_PULLREQUESTID": "$(System.PullRequest.PullRequestId)",
            "BUILD_REPOSITORY_ID": "not-a-uuid",
        }

        options = options_from_args(_args(), env)

        self.assertIsNone(options.pr_id)
        self.assertIsNone(options.repository_id)

    def test_redacted_masks_credentials(self) -> None:
        from codex_review.config import options_from_args

        options = options_from_args(
            _args(azure_token="pat-secret-value", openai_api_key="sk-secret", ignore_files=["a/**"]),
            {},
        )

        data = options.redacted()
        self.assertEqual(data["azure_token"], "pa***ue")
        self.assertEqual(data["openai_api_key"], "sk***et")
        self.assertEqual(data["ignore_files"], ["a/**"])
        self.assertEqual(options.ignore_files, ("a/**",))


if __name__ == "__main__":
    unittest.main()
