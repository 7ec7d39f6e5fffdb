# data_sources/local_git.py
import logging
import os
from typing import Dict, Iterable, List, Optional

from .base import DataSource
from config import GlobalConfig
from models import CommitStats, ParsedCommit
import branch_resolver
import commit_parser
import git_utils  # 复用现有的 git_utils
from git_utils import GitCommandError, ProcessLaunchError

logger = logging.getLogger(__name__)


def _has_pending_updates(dry_run_stderr: str) -> bool:
    """
    `git fetch --all --dry-run` 把结果写到 stderr。
    "Fetching <remote>" 只是进度提示，除此之外还有输出就说明有更新。
    """
    for line in dry_run_stderr.splitlines():
        line = line.strip()
        if line and not line.startswith("Fetching "):
            return True
    return False


class LocalGitDataSource(DataSource):
    """
    [V1.0] 本地 Git 数据源实现。
    通过调用 git 命令行工具分析本地仓库。
    """

    def __init__(self, repo_path: str, runner=git_utils.run_git):
        super().__init__(repo_path)
        self.runner = runner

    def validate(self) -> None:
        if not os.path.isdir(self.repo_path):
            raise ProcessLaunchError(f"路径不存在: {self.repo_path}", cwd=self.repo_path)
        if not git_utils.is_git_repository(self.repo_path):
            raise GitCommandError(
                f"指定路径不是 Git 仓库: {self.repo_path}", cwd=self.repo_path
            )

    def get_commits(self, start_date: str, end_date: str) -> List[ParsedCommit]:
        args = git_utils.build_log_args(start_date, end_date)
        result = self.runner(args, self.repo_path).check("获取Git提交历史")
        return commit_parser.parse_git_log(result.stdout)

    def get_stats(self, start_date: str, end_date: str) -> Dict[str, CommitStats]:
        args = git_utils.build_stats_args(start_date, end_date)
        result = self.runner(args, self.repo_path).check("获取Git统计信息")
        return commit_parser.parse_numstat_log(result.stdout)

    def get_branches(self, hashes: Iterable[str]) -> Dict[str, str]:
        return branch_resolver.resolve_branches(hashes, self.repo_path, self.runner)

    def get_diff(self, commit_hash: str):
        return git_utils.get_commit_diff(self.repo_path, commit_hash)

    def check_updates(self) -> bool:
        result = self.runner(
            GlobalConfig.GIT_CHECK_UPDATES_ARGS,
            self.repo_path,
            timeout=GlobalConfig.GIT_FETCH_TIMEOUT_SECONDS,
        ).check("检查远程更新")
        return _has_pending_updates(result.stderr)

    def fetch(self) -> None:
        self.runner(
            GlobalConfig.GIT_FETCH_ARGS,
            self.repo_path,
            timeout=GlobalConfig.GIT_FETCH_TIMEOUT_SECONDS,
        ).check("拉取远程引用")

    def get_remote_url(self) -> Optional[str]:
        try:
            result = self.runner(["remote", "get-url", "origin"], self.repo_path)
            if result.ok and result.stdout.strip():
                return result.stdout.strip()

            # origin 不存在时退回到第一个远程
            remotes = self.runner(["remote"], self.repo_path)
            if not remotes.ok:
                return None
            names = [line.strip() for line in remotes.stdout.splitlines() if line.strip()]
            if not names:
                return None
            result = self.runner(["remote", "get-url", names[0]], self.repo_path)
            if result.ok and result.stdout.strip():
                return result.stdout.strip()
        except GitCommandError as e:
            logger.warning(f"⚠️ 获取远程地址失败 ({self.repo_path}): {e}")
        return None
