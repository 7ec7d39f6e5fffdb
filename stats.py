# stats.py
"""
[V1.1] 概览统计 (提交类型分布、每日趋势、活跃作者)
"""
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from aggregator import AliasTable
from models import Commit

KNOWN_COMMIT_TYPES = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "perf",
    "test",
    "chore",
    "build",
    "ci",
    "revert",
)


@dataclass(frozen=True)
class OverviewStats:
    total_commits: int
    active_days: int
    author_count: int
    insertions: int
    deletions: int


def commit_type(message: str) -> str:
    """约定式提交类型，例如 'feat(login): ...' → 'feat'"""
    head = message.split(":")[0].split("(")[0].strip().lower()
    return head if head in KNOWN_COMMIT_TYPES else "other"


def commit_type_distribution(commits: Iterable[Commit]) -> List[Tuple[str, int]]:
    counts = Counter(commit_type(c.message) for c in commits)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


def daily_trend(commits: Iterable[Commit]) -> List[Tuple[str, int]]:
    counts = Counter(c.date for c in commits)
    return sorted(counts.items())


def top_authors(
    commits: Iterable[Commit], aliases: Optional[AliasTable] = None, limit: int = 5
) -> List[Tuple[str, int]]:
    aliases = aliases or AliasTable()
    counts = Counter(aliases.resolve(c.author) for c in commits)
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))[:limit]


def summarize(commits: Iterable[Commit], aliases: Optional[AliasTable] = None) -> OverviewStats:
    commits = list(commits)
    aliases = aliases or AliasTable()
    return OverviewStats(
        total_commits=len(commits),
        active_days=len({c.date for c in commits}),
        author_count=len({aliases.resolve(c.author) for c in commits}),
        insertions=sum(c.insertions or 0 for c in commits),
        deletions=sum(c.deletions or 0 for c in commits),
    )
