# commit_parser.py
"""
[V1.0] 提交解析器
git log 输出使用两级分隔：
  - 字段分隔符 '|||' (日期 / hash / 作者 / 提交信息)
  - 提交终止符 '^^^^^COMMIT^^^^^' (只有它能结束一条记录，提交信息可包含换行)
"""
import logging
from typing import Dict, List, Optional

from config import GlobalConfig
from models import CommitStats, ParsedCommit

logger = logging.getLogger(__name__)


def parse_commit_block(
    block: str, field_separator: str = GlobalConfig.FIELD_SEPARATOR
) -> Optional[ParsedCommit]:
    """
    解析单个提交块。
    提交信息取第三个分隔符之后的全部剩余内容，不再继续切分。
    缺少日期或 hash 的块返回 None。
    """
    parts = block.split(field_separator, 3)
    if len(parts) < 2:
        return None

    date = parts[0].strip()
    commit_hash = parts[1].strip()
    if not date or not commit_hash:
        return None

    author = parts[2].strip() if len(parts) > 2 else ""
    message = parts[3].strip() if len(parts) > 3 else ""
    return ParsedCommit(date=date, hash=commit_hash, author=author, message=message)


def parse_git_log(
    raw: str,
    field_separator: str = GlobalConfig.FIELD_SEPARATOR,
    terminator: str = GlobalConfig.COMMIT_TERMINATOR,
) -> List[ParsedCommit]:
    """解析 git log 输出，保持原始顺序"""
    commits: List[ParsedCommit] = []
    if not raw or not raw.strip():
        return commits

    for block in raw.split(terminator):
        if not block.strip():
            continue
        commit = parse_commit_block(block, field_separator)
        if commit:
            commits.append(commit)
    return commits


def _parse_count(value: str) -> int:
    # 二进制文件的 numstat 显示为 '-'
    return int(value) if value.isdigit() else 0


def parse_numstat_log(
    raw: str,
    marker: str = GlobalConfig.STAT_MARKER,
    field_separator: str = GlobalConfig.FIELD_SEPARATOR,
) -> Dict[str, CommitStats]:
    """
    (V1.1) 解析 `git log --numstat --pretty=format:<marker>%H|||%at` 的输出
    返回 {hash: CommitStats}
    """
    stats: Dict[str, CommitStats] = {}
    if not raw:
        return stats

    for block in raw.split(marker):
        if not block.strip():
            continue
        lines = block.split("\n")
        header = lines[0].split(field_separator)
        commit_hash = header[0].strip()
        if not commit_hash:
            continue
        timestamp: Optional[int] = None
        if len(header) > 1 and header[1].strip().isdigit():
            timestamp = int(header[1].strip())

        insertions = 0
        deletions = 0
        for line in lines[1:]:
            parts = line.strip().split()
            if len(parts) >= 2:
                insertions += _parse_count(parts[0])
                deletions += _parse_count(parts[1])
        stats[commit_hash] = CommitStats(
            timestamp=timestamp, insertions=insertions, deletions=deletions
        )
    return stats
