# models.py
"""
[V1.0] 数据模型
- Commit: 解析后的不可变提交记录
- RepoItem / RepoGroup / AuthorAlias: 由 UI 层持有的应用状态
- AppState: 显式的应用状态对象 (见 config_manager 的加载/保存边界)
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class Commit:
    """Git 提交数据模型 (hash + repo_name 才是唯一标识)"""

    date: str
    hash: str
    author: str
    message: str
    branch: str
    repo_name: str
    insertions: Optional[int] = None
    deletions: Optional[int] = None
    timestamp: Optional[int] = None

    @property
    def key(self) -> tuple:
        return (self.hash, self.repo_name)

    @property
    def subject(self) -> str:
        """提交信息首行"""
        lines = self.message.split("\n")
        return lines[0] if lines else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date,
            "hash": self.hash,
            "author": self.author,
            "message": self.message,
            "branch": self.branch,
            "repo_name": self.repo_name,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class ParsedCommit:
    """Commit Parser 的输出：尚未补充分支和仓库信息的部分记录"""

    date: str
    hash: str
    author: str
    message: str


@dataclass(frozen=True)
class CommitStats:
    """numstat 统计结果"""

    timestamp: Optional[int]
    insertions: int
    deletions: int


@dataclass(frozen=True)
class RepoItem:
    """单个仓库。has_updates 为三态: None (未知) / True / False"""

    path: str
    has_updates: Optional[bool] = None
    last_checked: Optional[float] = None
    remote_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path}
        if self.has_updates is not None:
            data["hasUpdates"] = self.has_updates
        if self.last_checked is not None:
            data["lastChecked"] = self.last_checked
        if self.remote_url is not None:
            data["remoteUrl"] = self.remote_url
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoItem":
        return cls(
            path=str(data["path"]),
            has_updates=data.get("hasUpdates"),
            last_checked=data.get("lastChecked"),
            remote_url=data.get("remoteUrl"),
        )


@dataclass(frozen=True)
class RepoGroup:
    """仓库分组：选择与批量更新的单位"""

    id: str
    name: str
    selected: bool = True
    repos: List[RepoItem] = field(default_factory=list)
    last_checked: Optional[float] = None

    @property
    def paths(self) -> List[str]:
        return [repo.path for repo in self.repos]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "selected": self.selected,
            "repos": [repo.to_dict() for repo in self.repos],
        }
        if self.last_checked is not None:
            data["lastChecked"] = self.last_checked
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepoGroup":
        repos = []
        for item in data.get("repos", []):
            # 兼容旧格式：仓库直接存为路径字符串
            if isinstance(item, str):
                repos.append(RepoItem(path=item))
            else:
                repos.append(RepoItem.from_dict(item))
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            selected=bool(data.get("selected", True)),
            repos=repos,
            last_checked=data.get("lastChecked"),
        )


@dataclass(frozen=True)
class AuthorAlias:
    """作者别名：original 为 git 作者名 (大小写不敏感匹配)，alias 为显示名"""

    original: str
    alias: str
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "original": self.original, "alias": self.alias}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuthorAlias":
        return cls(
            original=str(data.get("original", "")),
            alias=str(data.get("alias", "")),
            id=str(data.get("id", "")),
        )


@dataclass(frozen=True)
class AppState:
    """显式的应用状态：传入核心操作并由其返回新的实例"""

    groups: List[RepoGroup] = field(default_factory=list)
    aliases: List[AuthorAlias] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repoGroups": [group.to_dict() for group in self.groups],
            "authorAliases": [alias.to_dict() for alias in self.aliases],
        }
