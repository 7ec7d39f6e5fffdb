# context.py
"""
[V1.0] 运行时配置的数据模型
"""
from dataclasses import dataclass
from typing import List
from config import GlobalConfig


@dataclass
class RunContext:
    """
    (V1.0) 封装一次导出运行所需的所有配置。
    这是从 CLI 传递到 Orchestrator 的唯一对象。
    """

    # --- 仓库选择 ---
    # 显式传入的路径 (-r)；为空时使用状态文件中选中的分组
    repo_paths: List[str]
    group_names: List[str]

    # --- 范围参数 ---
    start_date: str
    end_date: str

    # --- 作者过滤 ---
    author_mode: str
    include_authors: List[str]
    exclude_authors: List[str]

    # --- 输出 ---
    export_dir: str
    state_file: str

    # --- 全局配置 ---
    global_config: GlobalConfig

    # --- 标志 ---
    fetch_before: bool = True
    html_overview: bool = False
    preview_author: str = "all"
    preview_repo: str = "all"
