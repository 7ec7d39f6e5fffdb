# update_coordinator.py
"""
[V1.0] 更新 / 拉取协调器
每个仓库的状态: 未知 (None) → 有更新 (True) / 已最新 (False)
- check: 只读的远程比对，带新鲜度窗口 (手动检查可绕过)
- fetch: 拉取远程引用，成功后 有更新 → 已最新
所有任务并行执行，结果先收集到本地字典，再一次性合并成新的 RepoGroup。
"""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from config import GlobalConfig
from data_sources.base import DataSource
from data_sources.factory import get_data_source
from git_utils import GitCommandError
from models import RepoGroup, RepoItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UpdateCheck:
    has_updates: bool
    remote_url: Optional[str] = None


@dataclass(frozen=True)
class FetchResult:
    repo_path: str
    success: bool
    error: Optional[str] = None


@dataclass
class GroupCheckResult:
    group: RepoGroup
    checked: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


@dataclass
class GroupFetchResult:
    group: RepoGroup
    fetched: List[str] = field(default_factory=list)
    errors: Dict[str, str] = field(default_factory=dict)


def check_repo_updates(
    repo_path: str, source_factory: Callable[[str], DataSource] = get_data_source
) -> UpdateCheck:
    """
    检查单个仓库是否有远程更新。
    远程地址的获取是尽力而为的，失败不影响检查结果。
    检查本身失败时抛出 GitCommandError。
    """
    source = source_factory(repo_path)
    source.validate()
    has_updates = source.check_updates()
    remote_url = None
    try:
        remote_url = source.get_remote_url()
    except GitCommandError as e:
        logger.warning(f"⚠️ 获取远程地址失败 ({repo_path}): {e}")
    return UpdateCheck(has_updates=has_updates, remote_url=remote_url)


def fetch_repo(
    repo_path: str, source_factory: Callable[[str], DataSource] = get_data_source
) -> FetchResult:
    """拉取单个仓库，失败时返回 success=False 而不是抛异常"""
    try:
        source = source_factory(repo_path)
        source.validate()
        source.fetch()
    except GitCommandError as e:
        logger.warning(f"⚠️ 无法拉取 {repo_path}: {e}")
        return FetchResult(repo_path=repo_path, success=False, error=str(e))
    logger.info(f"✅ 已拉取 {repo_path}")
    return FetchResult(repo_path=repo_path, success=True)


def is_fresh(repo: RepoItem, now: float, window: float) -> bool:
    return repo.last_checked is not None and now - repo.last_checked < window


class UpdateCoordinator:
    """
    (V1.0) 针对 RepoGroup 的批量检查与拉取。
    不修改传入的分组，总是返回新的 RepoGroup。
    """

    def __init__(
        self,
        source_factory: Callable[[str], DataSource] = get_data_source,
        freshness_window: float = GlobalConfig.FRESHNESS_WINDOW_SECONDS,
        max_workers: int = GlobalConfig.MAX_WORKERS,
        clock: Callable[[], float] = time.time,
    ):
        self.source_factory = source_factory
        self.freshness_window = freshness_window
        self.max_workers = max_workers
        self.clock = clock

    def _check_task(self, repo_path: str) -> Tuple[str, Optional[UpdateCheck], Optional[str]]:
        try:
            return repo_path, check_repo_updates(repo_path, self.source_factory), None
        except GitCommandError as e:
            logger.warning(f"⚠️ 检查更新失败 ({repo_path}): {e}")
            return repo_path, None, str(e)

    def _run_all(self, task, paths: Sequence[str]) -> list:
        if not paths:
            return []
        workers = max(1, min(self.max_workers, len(paths)))
        with ThreadPoolExecutor(max_workers=workers) as ex:
            futs = [ex.submit(task, path) for path in paths]
            return [fut.result() for fut in futs]

    def check_group(
        self, group: RepoGroup, force: bool = False, now: Optional[float] = None
    ) -> GroupCheckResult:
        """
        检查分组内的仓库。force=False 时跳过新鲜度窗口内检查过的仓库。
        检查失败的仓库保持原状态。
        """
        now = self.clock() if now is None else now
        to_check: List[str] = []
        skipped: List[str] = []
        for repo in group.repos:
            if not force and is_fresh(repo, now, self.freshness_window):
                skipped.append(repo.path)
            else:
                to_check.append(repo.path)

        logger.info(
            f"🔄 [{group.name}] 检查 {len(to_check)} 个仓库，跳过 {len(skipped)} 个"
        )
        outcomes: Dict[str, Tuple[Optional[UpdateCheck], Optional[str]]] = {}
        for path, check, error in self._run_all(self._check_task, to_check):
            outcomes[path] = (check, error)

        # 单次合并
        new_repos = []
        result = GroupCheckResult(group=group, skipped=skipped)
        for repo in group.repos:
            check, error = outcomes.get(repo.path, (None, None))
            if error:
                result.errors[repo.path] = error
            if check is None:
                new_repos.append(repo)
                continue
            result.checked.append(repo.path)
            new_repos.append(
                replace(
                    repo,
                    has_updates=check.has_updates,
                    last_checked=now,
                    remote_url=check.remote_url or repo.remote_url,
                )
            )
        # 全部跳过或失败时不刷新分组的检查时间
        last_checked = now if result.checked else group.last_checked
        result.group = replace(group, repos=new_repos, last_checked=last_checked)
        return result

    def _fetch_task(self, repo_path: str) -> FetchResult:
        return fetch_repo(repo_path, self.source_factory)

    def fetch_paths(self, paths: Sequence[str]) -> List[FetchResult]:
        return self._run_all(self._fetch_task, list(paths))

    def fetch_group(
        self, group: RepoGroup, only_flagged: bool = True, now: Optional[float] = None
    ) -> GroupFetchResult:
        """
        拉取分组内的仓库 (默认只拉取标记为有更新的)。
        单个仓库失败不会中断批量拉取，失败的仓库保持原状态。
        """
        now = self.clock() if now is None else now
        targets = [
            repo.path
            for repo in group.repos
            if not only_flagged or repo.has_updates is True
        ]
        if not targets:
            logger.info(f"ℹ️ [{group.name}] 该分组下没有需要更新的仓库。")
            return GroupFetchResult(group=group)

        results = {r.repo_path: r for r in self.fetch_paths(targets)}
        return self._merge_fetch_results(group, results, now)

    def _merge_fetch_results(
        self, group: RepoGroup, results: Dict[str, FetchResult], now: float
    ) -> GroupFetchResult:
        outcome = GroupFetchResult(group=group)
        new_repos = []
        for repo in group.repos:
            fetched = results.get(repo.path)
            if fetched is None:
                new_repos.append(repo)
            elif fetched.success:
                outcome.fetched.append(repo.path)
                new_repos.append(replace(repo, has_updates=False, last_checked=now))
            else:
                outcome.errors[repo.path] = fetched.error or "fetch failed"
                new_repos.append(repo)
        outcome.group = replace(group, repos=new_repos)
        return outcome

    def fetch_before_analysis(
        self, groups: Sequence[RepoGroup], now: Optional[float] = None
    ) -> Tuple[List[RepoGroup], Dict[str, str]]:
        """
        分析前的拉取：对选中分组中状态不是 "已最新" 的仓库执行拉取。
        返回 (新的分组列表, {失败路径: 错误})；同一路径在多个分组中只拉取一次。
        """
        now = self.clock() if now is None else now
        targets: List[str] = []
        for group in groups:
            if not group.selected:
                continue
            for repo in group.repos:
                if repo.has_updates is not False and repo.path not in targets:
                    targets.append(repo.path)

        if not targets:
            return list(groups), {}

        results = {r.repo_path: r for r in self.fetch_paths(targets)}
        new_groups = [
            self._merge_fetch_results(group, results, now).group if group.selected else group
            for group in groups
        ]
        errors = {path: r.error or "fetch failed" for path, r in results.items() if not r.success}
        return new_groups, errors
