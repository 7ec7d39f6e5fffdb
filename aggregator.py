# aggregator.py
"""
[V1.0] 聚合器
- AliasTable: 作者别名解析 (精确匹配优先，其次大小写不敏感，先出现者优先)
- AuthorFilter: 包含 / 排除关键字过滤 (仅 specific 模式生效)
- aggregate: 日期 → 仓库 → 分支 → 提交信息 的嵌套结构，各层键均已排序
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence

from models import AuthorAlias, Commit

logger = logging.getLogger(__name__)

AUTHOR_MODE_ALL = "all"
AUTHOR_MODE_SPECIFIC = "specific"

AggregatedReport = Dict[str, Dict[str, Dict[str, List[str]]]]


class AliasTable:
    """作者别名查找表。它只负责显示名，不代表真实身份"""

    def __init__(self, aliases: Optional[Iterable[AuthorAlias]] = None):
        self.aliases: List[AuthorAlias] = list(aliases or [])

    def resolve(self, author: str) -> str:
        clean = author.strip()
        for entry in self.aliases:
            if entry.original.strip() == clean:
                return entry.alias
        lowered = clean.lower()
        for entry in self.aliases:
            if entry.original.strip().lower() == lowered:
                return entry.alias
        return author

    def __len__(self) -> int:
        return len(self.aliases)


def _normalize_keywords(keywords: Optional[Iterable[str]]) -> List[str]:
    return [k.strip().lower() for k in (keywords or []) if k and k.strip()]


@dataclass
class AuthorFilter:
    mode: str = AUTHOR_MODE_ALL
    include: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.include = _normalize_keywords(self.include)
        self.exclude = _normalize_keywords(self.exclude)

    @property
    def is_active(self) -> bool:
        return self.mode == AUTHOR_MODE_SPECIFIC

    def matches(self, author: str) -> bool:
        if not self.is_active:
            return True
        lowered = author.lower()
        included = not self.include or any(k in lowered for k in self.include)
        excluded = any(k in lowered for k in self.exclude)
        return included and not excluded


def filter_commits(commits: Iterable[Commit], author_filter: AuthorFilter) -> List[Commit]:
    return [c for c in commits if author_filter.matches(c.author)]


def preview_filter(
    commits: Iterable[Commit], author: str = "all", repo: str = "all"
) -> List[Commit]:
    """预览/导出前的精确筛选，'all' 表示不限"""
    return [
        c
        for c in commits
        if (author == "all" or c.author == author) and (repo == "all" or c.repo_name == repo)
    ]


def aggregate(commits: Iterable[Commit]) -> AggregatedReport:
    """
    按 日期 → 仓库 → 分支 分组，同一分支内保持输入顺序。
    日期为 YYYY-MM-DD 格式，字典序即时间顺序。
    """
    buckets: Dict[str, Dict[str, Dict[str, List[str]]]] = {}
    for commit in commits:
        buckets.setdefault(commit.date, {}).setdefault(commit.repo_name, {}).setdefault(
            commit.branch, []
        ).append(commit.message)

    return {
        day: {
            repo: {branch: list(repos[repo][branch]) for branch in sorted(repos[repo])}
            for repo in sorted(repos)
        }
        for day, repos in sorted(buckets.items())
    }


def group_by_author(
    commits: Iterable[Commit], aliases: Optional[AliasTable] = None
) -> Dict[str, List[Commit]]:
    """按显示名分组 (别名会合并多个 git 身份)，键按字典序排列"""
    aliases = aliases or AliasTable()
    grouped: Dict[str, List[Commit]] = {}
    for commit in commits:
        grouped.setdefault(aliases.resolve(commit.author), []).append(commit)
    return {name: grouped[name] for name in sorted(grouped)}


def build_author_filter(
    mode: str,
    include: Optional[Sequence[str]] = None,
    exclude: Optional[Sequence[str]] = None,
) -> AuthorFilter:
    if mode not in (AUTHOR_MODE_ALL, AUTHOR_MODE_SPECIFIC):
        raise ValueError(f"未知的作者模式: {mode}")
    return AuthorFilter(mode=mode, include=list(include or []), exclude=list(exclude or []))
