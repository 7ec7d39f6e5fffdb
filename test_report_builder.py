# test_report_builder.py
import fnmatch
import os
import shutil
import sys
import tempfile
import unittest
from datetime import datetime

import report_builder
from config import GlobalConfig
from models import AuthorAlias, Commit

GENERATED_AT = datetime(2024, 1, 8, 9, 30, 0)


def make_commit(date, author, repo, branch, message, h):
    return Commit(date=date, hash=h, author=author, message=message, branch=branch, repo_name=repo)


class TestNaming(unittest.TestCase):

    def test_date_range_labels(self):
        self.assertEqual(report_builder.format_date_range("2024-01-01", "2024-01-07"), "2024-01-01~07")
        self.assertEqual(report_builder.format_date_range("2024-01-28", "2024-02-03"), "2024-01-28~02-03")
        self.assertEqual(
            report_builder.format_date_range("2024-12-30", "2025-01-05"), "2024-12-30~2025-01-05"
        )

    def test_repo_label(self):
        one = [make_commit("2024-01-01", "A", "app", "main", "m", "h1")]
        two = one + [make_commit("2024-01-01", "A", "lib", "main", "m", "h2")]
        self.assertEqual(report_builder.repo_label(one), "app")
        self.assertEqual(report_builder.repo_label(two), "AllProjects")
        self.assertEqual(report_builder.repo_label([]), "Unknown")

    def test_filename(self):
        self.assertEqual(
            report_builder.report_filename("Alice", "2024-01-01", "2024-01-07", "app"),
            "Alice-2024-01-01~07-app.txt",
        )
        self.assertEqual(
            report_builder.report_filename("a/b", "2024-01-01", "2024-01-07", "app"),
            "a_b-2024-01-01~07-app.txt",
        )


class TestRenderReport(unittest.TestCase):

    def setUp(self):
        self.commits = [
            make_commit("2024-01-02", "Alice", "app", "main", "fix: later day", "h3"),
            make_commit(
                "2024-01-01", "Alice", "app", "feature/login", "feat: add login\n\n- form\n- api", "h1"
            ),
            make_commit("2024-01-01", "Alice", "app", "feature/login", "test: login", "h2"),
        ]

    def test_author_report_layout(self):
        text = report_builder.render_report(
            self.commits, "Alice", "2024-01-01", "2024-01-07", generated_at=GENERATED_AT
        )
        lines = text.split("\n")
        self.assertEqual(lines[0], "作者: Alice")
        self.assertEqual(lines[1], "时间范围: 2024-01-01 至 2024-01-07")
        self.assertEqual(lines[2], "生成时间: 2024-01-08 09:30:00")
        self.assertEqual(lines[3], "-" * 40)
        self.assertIn("【2024-01-01】", lines)
        self.assertIn("  📂 项目: app", lines)
        self.assertIn("    🌿 分支: feature/login", lines)
        self.assertIn("      1. feat: add login", lines)
        self.assertIn("         - form", lines)
        self.assertIn("      2. test: login", lines)
        # 日期升序
        self.assertLess(text.index("【2024-01-01】"), text.index("【2024-01-02】"))

    def test_total_report_header(self):
        text = report_builder.render_report(
            self.commits, "ALL", "2024-01-01", "2024-01-07", is_total=True, generated_at=GENERATED_AT
        )
        self.assertTrue(text.startswith("汇总报告 (所有作者: ALL)\n"))

    def test_crlf_message_lines(self):
        commits = [make_commit("2024-01-01", "Alice", "app", "main", "fix: crlf\r\n\r\nbody line", "h9")]
        text = report_builder.render_report(
            commits, "Alice", "2024-01-01", "2024-01-07", generated_at=GENERATED_AT
        )
        self.assertNotIn("\r", text)
        self.assertIn("      1. fix: crlf\n", text)
        self.assertIn("         body line\n", text)


class TestRenderReports(unittest.TestCase):

    def setUp(self):
        self.commits = [
            make_commit("2024-01-01", "Alice", "app", "main", "feat: a", "h1"),
            make_commit("2024-01-02", "alice@laptop", "lib", "main", "fix: b", "h2"),
            make_commit("2024-01-02", "Bob Smith", "app", "dev", "docs: c", "h3"),
        ]
        self.aliases = [AuthorAlias(original="alice@laptop", alias="Alice")]

    def test_one_report_per_display_name_plus_total(self):
        reports = report_builder.render_reports(
            self.commits, self.aliases, None, None, "2024-01-01", "2024-01-07",
            generated_at=GENERATED_AT,
        )
        self.assertEqual(
            sorted(reports),
            [
                "Alice-2024-01-01~07-AllProjects.txt",
                "Bob Smith-2024-01-01~07-app.txt",
                "TOTAL-2024-01-01~07-AllProjects.txt",
            ],
        )
        self.assertIn("fix: b", reports["Alice-2024-01-01~07-AllProjects.txt"])

    def test_author_named_total_keeps_own_report(self):
        commits = [
            make_commit("2024-01-01", "TOTAL", "X", "main", "feat: t", "h1"),
            make_commit("2024-01-02", "Bob", "X", "main", "fix: b", "h2"),
        ]
        reports = report_builder.render_reports(
            commits, [], None, None, "2024-01-01", "2024-01-02", generated_at=GENERATED_AT
        )
        self.assertEqual(
            sorted(reports),
            [
                "Bob-2024-01-01~02-X.txt",
                "TOTAL-2024-01-01~02-X-2.txt",
                "TOTAL-2024-01-01~02-X.txt",
            ],
        )
        self.assertTrue(reports["TOTAL-2024-01-01~02-X.txt"].startswith("汇总报告"))
        self.assertTrue(reports["TOTAL-2024-01-01~02-X-2.txt"].startswith("作者: TOTAL"))

    def test_names_equal_after_sanitizing_get_suffix(self):
        commits = [
            make_commit("2024-01-01", "a/b", "X", "main", "feat: slash", "h1"),
            make_commit("2024-01-01", "a_b", "X", "main", "feat: underscore", "h2"),
        ]
        reports = report_builder.render_reports(
            commits, [], None, None, "2024-01-01", "2024-01-07", generated_at=GENERATED_AT
        )
        self.assertEqual(len(reports), 3)
        self.assertIn("a_b-2024-01-01~07-X.txt", reports)
        self.assertIn("a_b-2024-01-01~07-X-2.txt", reports)

    def test_filters_apply_to_raw_author(self):
        reports = report_builder.render_reports(
            self.commits, self.aliases, ["alice", "bob"], ["smith"], "2024-01-01", "2024-01-07",
            generated_at=GENERATED_AT,
        )
        self.assertEqual(
            sorted(reports),
            ["Alice-2024-01-01~07-AllProjects.txt", "TOTAL-2024-01-01~07-AllProjects.txt"],
        )
        self.assertNotIn("docs: c", reports["TOTAL-2024-01-01~07-AllProjects.txt"])

    def test_nothing_left_after_filter(self):
        reports = report_builder.render_reports(
            self.commits, self.aliases, ["nobody"], None, "2024-01-01", "2024-01-07"
        )
        self.assertEqual(reports, {})

    def test_save_reports(self):
        export_dir = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, export_dir)
        reports = {"Alice-2024-01-01~07-app.txt": "作者: Alice\n"}
        saved = report_builder.save_reports(reports, export_dir, "2024-01-01", "2024-01-07")
        expected = os.path.join(export_dir, "2024-01-01~2024-01-07", "Alice-2024-01-01~07-app.txt")
        self.assertEqual(saved, [expected])
        with open(expected, encoding="utf-8") as f:
            self.assertEqual(f.read(), "作者: Alice\n")


class TestHtmlOverview(unittest.TestCase):

    def test_overview_escapes_messages(self):
        commits = [
            make_commit("2024-01-01", "Alice", "app", "main", "feat: <script>alert(1)</script>", "h1"),
            make_commit("2024-01-02", "Bob", "app", "main", "fix: b", "h2"),
        ]
        page = report_builder.generate_html_overview(
            commits, [], "2024-01-01", "2024-01-07", generated_at=GENERATED_AT
        )
        self.assertIn("<html", page)
        self.assertNotIn("<script>alert(1)</script>", page)
        self.assertIn("&lt;script&gt;", page)
        self.assertIn("Alice", page)


@unittest.skipIf(sys.version_info < (3, 11), "需要 tomllib (Python 3.11+)")
class TestPackaging(unittest.TestCase):
    """非 editable 安装时模板与插件目录也要随包安装到 config.py 同级"""

    def setUp(self):
        import tomllib

        with open(os.path.join(GlobalConfig.SCRIPT_BASE_PATH, "pyproject.toml"), "rb") as f:
            self.setuptools = tomllib.load(f)["tool"]["setuptools"]

    def test_templates_are_package_data(self):
        self.assertIn(GlobalConfig.TEMPLATES_DIR_NAME, self.setuptools["packages"])
        patterns = self.setuptools["package-data"][GlobalConfig.TEMPLATES_DIR_NAME]
        templates_dir = os.path.join(GlobalConfig.SCRIPT_BASE_PATH, GlobalConfig.TEMPLATES_DIR_NAME)
        for name in (GlobalConfig.REPORT_TEMPLATE, GlobalConfig.OVERVIEW_TEMPLATE):
            self.assertTrue(os.path.exists(os.path.join(templates_dir, name)))
            self.assertTrue(any(fnmatch.fnmatch(name, p) for p in patterns), name)

    def test_plugins_dir_is_installed(self):
        self.assertIn(GlobalConfig.PLUGINS_DIR_NAME, self.setuptools["packages"])


if __name__ == "__main__":
    unittest.main()
