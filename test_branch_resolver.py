# test_branch_resolver.py
import unittest

from branch_resolver import normalize_branch, parse_name_rev_output, resolve_branches
from git_utils import NonZeroExitError, ProcessLaunchError, ProcessResult


class RecordingRunner:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def __call__(self, args, repo_path, stdin=None, **kwargs):
        self.calls.append((list(args), repo_path, stdin))
        if self.error:
            raise self.error
        return self.result


class TestNormalizeBranch(unittest.TestCase):

    def test_remote_origin_with_ancestor_suffix(self):
        self.assertEqual(normalize_branch("remotes/origin/feature/login~2"), "feature/login")

    def test_other_remote(self):
        self.assertEqual(normalize_branch("remotes/upstream/main^0"), "upstream/main")

    def test_local_branch(self):
        self.assertEqual(normalize_branch("main~12^2"), "main")

    def test_undefined(self):
        self.assertIsNone(normalize_branch("undefined"))
        self.assertIsNone(normalize_branch(""))

    def test_idempotent(self):
        for raw in (
            "remotes/origin/feature/login~2",
            "remotes/origin/remotes/x",
            "remotes/upstream/dev",
            "main",
        ):
            once = normalize_branch(raw)
            self.assertEqual(normalize_branch(once), once, raw)


class TestResolveBranches(unittest.TestCase):

    def test_parse_output(self):
        output = (
            "abc123 (remotes/origin/feature/login~2)\n"
            "def456 (main)\n"
            "0a0a0a (undefined)\n"
            "not a name-rev line\n"
        )
        self.assertEqual(
            parse_name_rev_output(output), {"abc123": "feature/login", "def456": "main"}
        )

    def test_single_batched_call_over_stdin(self):
        runner = RecordingRunner(
            ProcessResult(0, "abc123 (remotes/origin/feature/login~2)\ndef456 (main)\n", "")
        )
        result = resolve_branches(["abc123", "def456"], "/repo", runner)
        self.assertEqual(result, {"abc123": "feature/login", "def456": "main"})
        self.assertEqual(len(runner.calls), 1)
        args, repo_path, stdin = runner.calls[0]
        self.assertEqual(args[:2], ["name-rev", "--stdin"])
        self.assertEqual(stdin, "abc123\ndef456\n")

    def test_empty_list_spawns_nothing(self):
        runner = RecordingRunner(ProcessResult(0, "", ""))
        self.assertEqual(resolve_branches([], "/repo", runner), {})
        self.assertEqual(runner.calls, [])

    def test_failures_degrade_to_empty_map(self):
        failing = RecordingRunner(error=ProcessLaunchError("git not found"))
        self.assertEqual(resolve_branches(["abc"], "/repo", failing), {})

        non_zero = RecordingRunner(ProcessResult(128, "", "fatal: not a git repository"))
        self.assertEqual(resolve_branches(["abc"], "/repo", non_zero), {})

        raising = RecordingRunner(error=NonZeroExitError("boom"))
        self.assertEqual(resolve_branches(["abc"], "/repo", raising), {})


if __name__ == "__main__":
    unittest.main()
