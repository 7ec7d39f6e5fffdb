# collector.py
"""
[V1.0] 多仓库采集器
对每个仓库并行执行 log → 解析 → 分支解析，最后在调用线程里一次性合并。
单个仓库失败只会产生一条警告，不影响其它仓库。
"""
import logging
import os
import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Iterable, List, Optional, Sequence, Tuple, Union

from aggregator import AuthorFilter
from config import GlobalConfig
from data_sources.base import DataSource
from data_sources.factory import get_data_source
from git_utils import GitCommandError, OutputTooLargeError
from models import Commit

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ValidationError(ValueError):
    """请求级校验失败，在启动任何进程前抛出"""


@dataclass(frozen=True)
class RepoWarning:
    repo_path: str
    message: str


@dataclass
class CollectionResult:
    commits: List[Commit] = field(default_factory=list)
    warnings: List[RepoWarning] = field(default_factory=list)


def normalize_repo_paths(selected: Union[None, str, Iterable[str]]) -> List[str]:
    """
    把目录选择结果 (单个字符串或序列) 统一为有序、去重的路径列表
    """
    if selected is None:
        return []
    if isinstance(selected, str):
        selected = [selected]
    paths: List[str] = []
    seen = set()
    for path in selected:
        if not path or not str(path).strip():
            continue
        path = str(path).strip()
        if path not in seen:
            seen.add(path)
            paths.append(path)
    return paths


def validate_date(value: str, name: str) -> date:
    if not isinstance(value, str) or not DATE_PATTERN.match(value):
        raise ValidationError(f"{name} 格式错误，请使用 YYYY-MM-DD 格式: {value!r}")
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValidationError(f"{name} 不是有效日期: {value!r}") from None


def validate_request(repo_paths: Sequence[str], start_date: str, end_date: str) -> None:
    if not repo_paths:
        raise ValidationError("请至少选择一个仓库。")
    start = validate_date(start_date, "开始时间")
    end = validate_date(end_date, "结束时间")
    if start > end:
        raise ValidationError(f"开始时间 {start_date} 晚于结束时间 {end_date}")


def validate_author_filter(author_filter: AuthorFilter) -> None:
    """specific 模式下必须至少提供一个包含或排除关键字"""
    if author_filter.is_active and not (author_filter.include or author_filter.exclude):
        raise ValidationError("请输入作者姓名。")


def repo_name_for(repo_path: str) -> str:
    return os.path.basename(os.path.normpath(repo_path))


def collect_repo(
    source: DataSource,
    start_date: str,
    end_date: str,
    collect_stats: bool = GlobalConfig.COLLECT_STATS,
) -> List[Commit]:
    """
    采集单个仓库。解析完成后才开始分支解析 (数据依赖)。
    失败时抛出 GitCommandError，由 collect_commits 在仓库边界处捕获。
    """
    repo_name = repo_name_for(source.repo_path)
    source.validate()
    parsed = source.get_commits(start_date, end_date)
    if not parsed:
        return []

    branch_map = source.get_branches([c.hash for c in parsed])

    stats = {}
    if collect_stats:
        try:
            stats = source.get_stats(start_date, end_date)
        except GitCommandError as e:
            logger.warning(f"⚠️ [{repo_name}] 获取增删统计失败，忽略: {e}")

    commits = []
    for c in parsed:
        stat = stats.get(c.hash)
        commits.append(
            Commit(
                date=c.date,
                hash=c.hash,
                author=c.author,
                message=c.message,
                branch=branch_map.get(c.hash, GlobalConfig.UNKNOWN_BRANCH),
                repo_name=repo_name,
                insertions=stat.insertions if stat else None,
                deletions=stat.deletions if stat else None,
                timestamp=stat.timestamp if stat else None,
            )
        )
    return commits


def _collect_task(
    repo_path: str,
    start_date: str,
    end_date: str,
    source_factory: Callable[[str], DataSource],
    collect_stats: bool,
) -> Tuple[str, List[Commit], Optional[str]]:
    repo_name = repo_name_for(repo_path)
    try:
        commits = collect_repo(
            source_factory(repo_path), start_date, end_date, collect_stats
        )
    except OutputTooLargeError as e:
        logger.error(f"❌ [{repo_name}] git log 输出过大: {e}")
        return repo_path, [], f"输出过大: {e}"
    except GitCommandError as e:
        logger.error(f"❌ [{repo_name}] 执行 git 命令出错: {e}")
        return repo_path, [], str(e)
    logger.info(f"✅ [{repo_name}] 找到 {len(commits)} 条提交记录")
    return repo_path, commits, None


def collect_commits(
    repo_paths: Union[str, Iterable[str]],
    start_date: str,
    end_date: str,
    source_factory: Callable[[str], DataSource] = get_data_source,
    max_workers: Optional[int] = None,
    collect_stats: bool = GlobalConfig.COLLECT_STATS,
) -> CollectionResult:
    """
    (V1.0) 并行采集多个仓库的提交
    - 先做请求级校验，失败抛出 ValidationError
    - 每个仓库一个任务，返回 (path, commits, warning)
    - 结果按输入路径顺序拼接，不依赖完成顺序，不做跨仓库去重
    """
    paths = normalize_repo_paths(repo_paths)
    validate_request(paths, start_date, end_date)

    workers = max(1, min(max_workers or GlobalConfig.MAX_WORKERS, len(paths)))
    logger.info(f"🔍 正在查询 {len(paths)} 个仓库 ({start_date} 至 {end_date})...")

    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = [
            ex.submit(
                _collect_task, path, start_date, end_date, source_factory, collect_stats
            )
            for path in paths
        ]
        outcomes = [fut.result() for fut in futs]

    result = CollectionResult()
    for path, commits, warning in outcomes:
        result.commits.extend(commits)
        if warning:
            result.warnings.append(RepoWarning(repo_path=path, message=warning))

    logger.info(
        f"📊 共采集 {len(result.commits)} 条提交，{len(result.warnings)} 个仓库失败"
    )
    return result
