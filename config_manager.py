# config_manager.py
"""
[V1.0] 应用状态管理器
- 负责仓库分组与作者别名的 JSON 加载 / 保存 (显式的持久化边界)
- 分组、仓库、别名的编辑操作均为纯函数：接收 AppState，返回新的 AppState
- [V1.1] 兼容旧版只保存 repoPaths 的状态文件
"""

import json
import logging
import os
import uuid
from dataclasses import replace
from typing import Any, Dict, Iterable, List, Optional, Union

import git_utils
from collector import normalize_repo_paths
from models import AppState, AuthorAlias, RepoGroup, RepoItem

logger = logging.getLogger(__name__)

DEFAULT_GROUP_ID = "default"
DEFAULT_GROUP_NAME = "默认分组"
NEW_GROUP_NAME = "新分组"


def generate_id() -> str:
    return uuid.uuid4().hex[:9]


def default_state() -> AppState:
    return AppState(
        groups=[RepoGroup(id=DEFAULT_GROUP_ID, name=DEFAULT_GROUP_NAME, selected=True)]
    )


def state_from_dict(data: Dict[str, Any]) -> AppState:
    """从 JSON 结构构建 AppState，必要时迁移旧版 repoPaths"""
    groups: List[RepoGroup] = []
    if "repoGroups" in data:
        groups = [RepoGroup.from_dict(g) for g in data.get("repoGroups") or []]
    elif "repoPaths" in data:
        legacy = data.get("repoPaths") or []
        repos = [
            RepoItem(path=item) if isinstance(item, str) else RepoItem.from_dict(item)
            for item in legacy
        ]
        if repos:
            logger.info(f"ℹ️ 已将旧版 repoPaths ({len(repos)} 个仓库) 迁移到默认分组")
            groups = [
                RepoGroup(
                    id=DEFAULT_GROUP_ID, name=DEFAULT_GROUP_NAME, selected=True, repos=repos
                )
            ]
    if not groups:
        groups = default_state().groups
    aliases = [AuthorAlias.from_dict(a) for a in data.get("authorAliases") or []]
    return AppState(groups=groups, aliases=aliases)


def load_app_state(state_path: str) -> AppState:
    """加载状态文件，不存在或损坏时返回默认状态"""
    if not os.path.exists(state_path):
        return default_state()
    try:
        with open(state_path, "r", encoding="utf-8") as f:
            return state_from_dict(json.load(f))
    except (OSError, ValueError, KeyError, TypeError) as e:
        logger.error(f"❌ 加载状态文件 {state_path} 失败: {e}")
        return default_state()


def save_app_state(state_path: str, state: AppState) -> bool:
    """保存状态文件"""
    try:
        directory = os.path.dirname(state_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(state_path, "w", encoding="utf-8") as f:
            json.dump(state.to_dict(), f, indent=4, ensure_ascii=False)
        return True
    except OSError as e:
        logger.error(f"❌ 保存状态文件 {state_path} 失败: {e}")
        return False


def find_group(state: AppState, group_ref: str) -> Optional[RepoGroup]:
    """按 id 或名称查找分组"""
    for group in state.groups:
        if group.id == group_ref:
            return group
    for group in state.groups:
        if group.name == group_ref:
            return group
    return None


def _replace_group(state: AppState, updated: RepoGroup) -> AppState:
    return replace(
        state, groups=[updated if g.id == updated.id else g for g in state.groups]
    )


def replace_groups(state: AppState, groups: Iterable[RepoGroup]) -> AppState:
    """用更新后的分组 (按 id 匹配) 替换状态中的分组"""
    by_id = {g.id: g for g in groups}
    return replace(state, groups=[by_id.get(g.id, g) for g in state.groups])


def add_group(state: AppState, name: str = NEW_GROUP_NAME) -> AppState:
    group = RepoGroup(id=generate_id(), name=name, selected=True)
    return replace(state, groups=[*state.groups, group])


def remove_group(state: AppState, group_id: str) -> AppState:
    return replace(state, groups=[g for g in state.groups if g.id != group_id])


def rename_group(state: AppState, group_id: str, name: str) -> AppState:
    return replace(
        state,
        groups=[replace(g, name=name) if g.id == group_id else g for g in state.groups],
    )


def toggle_group(state: AppState, group_id: str, selected: bool) -> AppState:
    return replace(
        state,
        groups=[
            replace(g, selected=selected) if g.id == group_id else g for g in state.groups
        ],
    )


def add_repos(
    state: AppState,
    group_id: str,
    selected: Union[str, Iterable[str], None],
    remote_urls: Optional[Dict[str, str]] = None,
) -> AppState:
    """
    向分组添加仓库
    - selected 可以是单个路径或路径序列 (目录选择器的两种返回形态)
    - 不是 Git 仓库的路径被跳过并记录警告
    - 分组内已存在的路径不会重复添加
    """
    group = next((g for g in state.groups if g.id == group_id), None)
    if group is None:
        logger.error(f"❌ 分组 {group_id} 不存在")
        return state

    existing = set(group.paths)
    new_items = []
    for path in normalize_repo_paths(selected):
        path = os.path.abspath(path)
        if not git_utils.is_git_repository(path):
            logger.warning(f"⚠️ 警告: {path} 不是一个 Git 仓库。")
            continue
        if path in existing:
            continue
        existing.add(path)
        new_items.append(RepoItem(path=path, remote_url=(remote_urls or {}).get(path)))

    if not new_items:
        return state
    return _replace_group(state, replace(group, repos=[*group.repos, *new_items]))


def remove_repo(state: AppState, group_id: str, path: str) -> AppState:
    return replace(
        state,
        groups=[
            replace(g, repos=[r for r in g.repos if r.path != path]) if g.id == group_id else g
            for g in state.groups
        ],
    )


def selected_repo_paths(state: AppState) -> List[str]:
    """选中分组中的全部仓库路径 (保持顺序，去重)"""
    return normalize_repo_paths(
        repo.path for group in state.groups if group.selected for repo in group.repos
    )


def add_alias(state: AppState, original: str, alias: str) -> AppState:
    """
    添加作者别名。
    同一个原名 (去空白、大小写不敏感) 只保留最先添加的别名，重复添加会被忽略。
    """
    original = original.strip()
    alias = alias.strip()
    if not original or not alias:
        logger.error("❌ 原名和别名都不能为空")
        return state
    for entry in state.aliases:
        if entry.original.strip().lower() == original.lower():
            logger.warning(
                f"⚠️ 原名 '{original}' 已有别名 '{entry.alias}'，忽略新的别名 '{alias}'"
            )
            return state
    new_alias = AuthorAlias(original=original, alias=alias, id=generate_id())
    return replace(state, aliases=[*state.aliases, new_alias])


def remove_alias(state: AppState, alias_id: str) -> AppState:
    return replace(state, aliases=[a for a in state.aliases if a.id != alias_id])
