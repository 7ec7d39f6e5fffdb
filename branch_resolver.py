# branch_resolver.py
"""
[V1.0] 分支解析器
通过一次 `git name-rev --stdin` 调用，把一批提交 hash 映射为可读的分支名。
分支解析只用于展示和分组，失败时降级为空映射 (调用方回退为 "Unknown Branch")。
"""
import logging
import re
from typing import Callable, Dict, Iterable, Optional

from config import GlobalConfig
from git_utils import GitCommandError, ProcessResult, run_git

logger = logging.getLogger(__name__)

# 输出格式: "<hash> (<ref-description>)"
NAME_REV_LINE = re.compile(r"^([0-9a-fA-F]+)\s+\((.+)\)$")
ANCESTOR_SUFFIX = re.compile(r"[\^~].*$")


def normalize_branch(description: str) -> Optional[str]:
    """
    规范化 name-rev 给出的引用描述:
    1. 去掉 remotes/origin/ 前缀
    2. 否则去掉 remotes/ 前缀 (其它远程)
    3. 去掉 ~N / ^N 祖先距离后缀
    结果为空或为 "undefined" 时返回 None
    """
    branch = description.strip()
    # 循环剥离，保证对结果再次规范化不会改变它
    while branch.startswith("remotes/"):
        if branch.startswith("remotes/origin/"):
            branch = branch[len("remotes/origin/"):]
        else:
            branch = branch[len("remotes/"):]
    branch = ANCESTOR_SUFFIX.sub("", branch)
    if not branch or branch == "undefined":
        return None
    return branch


def parse_name_rev_output(output: str) -> Dict[str, str]:
    branch_map: Dict[str, str] = {}
    for line in output.splitlines():
        match = NAME_REV_LINE.match(line.strip())
        if not match:
            continue
        branch = normalize_branch(match.group(2))
        if branch:
            branch_map[match.group(1)] = branch
    return branch_map


GitRunner = Callable[..., ProcessResult]


def resolve_branches(
    hashes: Iterable[str], repo_path: str, runner: GitRunner = run_git
) -> Dict[str, str]:
    """
    (V1.0) 批量解析分支
    - hash 列表为空时直接返回 {}，不启动进程
    - hash 通过 stdin 逐行传入，避免命令行长度限制
    - 启动失败或非零退出时记录警告并返回 {}
    """
    hash_list = [h for h in hashes if h]
    if not hash_list:
        return {}

    try:
        result = runner(
            GlobalConfig.GIT_NAME_REV_ARGS,
            repo_path,
            stdin="\n".join(hash_list) + "\n",
        )
    except GitCommandError as e:
        logger.warning(f"⚠️ 获取分支信息失败 ({repo_path}): {e}")
        return {}

    if not result.ok:
        logger.warning(f"⚠️ 获取分支信息失败 ({repo_path}): {result.stderr.strip()}")
        return {}

    return parse_name_rev_output(result.stdout)
