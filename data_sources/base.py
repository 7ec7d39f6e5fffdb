# data_sources/base.py
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from models import CommitStats, ParsedCommit


class DataSource(ABC):
    """
    [V1.0] 单个仓库的数据源抽象基类
    采集器与更新协调器只通过此接口访问仓库，测试中可替换为内存实现。
    所有方法在失败时抛出 git_utils.GitCommandError 的子类，
    由调用方在仓库边界处捕获并降级。
    """

    def __init__(self, repo_path: str):
        self.repo_path = repo_path

    @abstractmethod
    def validate(self) -> None:
        """
        验证数据源是否可用 (路径存在且为 Git 仓库)。
        不可用时抛出 GitCommandError。
        """

    @abstractmethod
    def get_commits(self, start_date: str, end_date: str) -> List[ParsedCommit]:
        """获取 [start 00:00:00, end 23:59:59] 内的非合并提交"""

    @abstractmethod
    def get_stats(self, start_date: str, end_date: str) -> Dict[str, CommitStats]:
        """获取每个提交的增删行数与时间戳"""

    @abstractmethod
    def get_branches(self, hashes: Iterable[str]) -> Dict[str, str]:
        """批量解析分支名 (尽力而为，失败返回空映射)"""

    @abstractmethod
    def get_diff(self, commit_hash: str):
        """获取指定提交的 Diff 内容，输出过大时返回 OUTPUT_TOO_LARGE"""

    @abstractmethod
    def check_updates(self) -> bool:
        """检查远程是否有新的提交 (只读)"""

    @abstractmethod
    def fetch(self) -> None:
        """拉取所有远程引用，失败时抛出 GitCommandError"""

    @abstractmethod
    def get_remote_url(self) -> Optional[str]:
        """获取远程仓库地址 (尽力而为)"""
