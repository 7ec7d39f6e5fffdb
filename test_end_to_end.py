# test_end_to_end.py
import os
import shutil
import subprocess
import tempfile
import unittest
from unittest import mock

import report_builder
from collector import collect_commits
from config import GlobalConfig
from data_sources.local_git import LocalGitDataSource
from git_utils import OUTPUT_TOO_LARGE


def git(repo, *args, env=None):
    subprocess.run(
        ["git", "-c", "commit.gpgsign=false", *args],
        cwd=repo,
        env=env,
        check=True,
        capture_output=True,
    )


def commit(repo, author, message, when):
    env = dict(os.environ)
    env.update(
        {
            "GIT_AUTHOR_NAME": author,
            "GIT_AUTHOR_EMAIL": f"{author.lower().replace(' ', '.')}@example.com",
            "GIT_COMMITTER_NAME": author,
            "GIT_COMMITTER_EMAIL": f"{author.lower().replace(' ', '.')}@example.com",
            "GIT_AUTHOR_DATE": when,
            "GIT_COMMITTER_DATE": when,
        }
    )
    git(repo, "commit", "--allow-empty", "-q", "-m", message, env=env)


@unittest.skipUnless(shutil.which("git"), "git 不在 PATH 中")
class TestRealRepository(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp, True)
        self.repo = os.path.join(self.tmp, "webapp")
        os.makedirs(self.repo)
        git(self.repo, "init", "-q")
        git(self.repo, "checkout", "-q", "-b", "feature/login")
        commit(self.repo, "Alice", "feat: add login\n\n- form ||| api", "2024-01-01T12:00:00+0000")
        commit(self.repo, "Bob Smith", "fix: crash", "2024-01-02T12:00:00+0000")
        commit(self.repo, "Alice", "chore: outside range", "2024-02-01T12:00:00+0000")

    def test_collect_and_render(self):
        result = collect_commits(self.repo, "2024-01-01", "2024-01-07")
        self.assertEqual(result.warnings, [])
        by_message = {c.message: c for c in result.commits}
        self.assertEqual(set(by_message), {"feat: add login\n\n- form ||| api", "fix: crash"})

        login = by_message["feat: add login\n\n- form ||| api"]
        self.assertEqual(login.date, "2024-01-01")
        self.assertEqual(login.author, "Alice")
        self.assertEqual(login.branch, "feature/login")
        self.assertEqual(login.repo_name, "webapp")
        self.assertEqual(len(login.hash), 40)

        reports = report_builder.render_reports(
            result.commits, [], None, None, "2024-01-01", "2024-01-07"
        )
        self.assertIn("TOTAL-2024-01-01~07-webapp.txt", reports)
        total = reports["TOTAL-2024-01-01~07-webapp.txt"]
        self.assertLess(total.index("【2024-01-01】"), total.index("【2024-01-02】"))
        self.assertIn("    🌿 分支: feature/login", total)
        self.assertIn("         - form ||| api", total)

    def test_missing_repository_is_a_warning(self):
        missing = os.path.join(self.tmp, "gone")
        result = collect_commits([self.repo, missing], "2024-01-01", "2024-01-07")
        self.assertEqual(len(result.commits), 2)
        self.assertEqual([w.repo_path for w in result.warnings], [missing])

    def test_local_repository_without_remote(self):
        source = LocalGitDataSource(self.repo)
        self.assertIsNone(source.get_remote_url())
        self.assertFalse(source.check_updates())

    def test_diff_and_output_ceiling(self):
        with open(os.path.join(self.repo, "notes.txt"), "w", encoding="utf-8") as f:
            f.write("line\n" * 50)
        git(self.repo, "add", "notes.txt")
        commit(self.repo, "Alice", "docs: notes", "2024-01-03T12:00:00+0000")
        head = subprocess.run(
            ["git", "rev-parse", "HEAD"], cwd=self.repo, capture_output=True, text=True, check=True
        ).stdout.strip()

        source = LocalGitDataSource(self.repo)
        diff = source.get_diff(head)
        self.assertIn("+line", diff)
        with mock.patch.object(GlobalConfig, "MAX_OUTPUT_BYTES", 16):
            self.assertIs(source.get_diff(head), OUTPUT_TOO_LARGE)
        self.assertIsNone(source.get_diff("0" * 40))


if __name__ == "__main__":
    unittest.main()
