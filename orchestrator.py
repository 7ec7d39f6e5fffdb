# orchestrator.py
"""
[V1.0] 业务逻辑编排器
校验 → (可选) 分析前拉取 → 并行采集 → 作者过滤 → 报告生成 → 导出
[V1.1] 集成 Hook 系统与 HTML 概览
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

import config_manager
import report_builder
from aggregator import AliasTable, build_author_filter, filter_commits, preview_filter
from collector import (
    RepoWarning,
    ValidationError,
    collect_commits,
    normalize_repo_paths,
    validate_author_filter,
    validate_request,
)
from context import RunContext
from data_sources.base import DataSource
from data_sources.factory import get_data_source
from hooks.manager import PluginManager
from models import AppState, Commit, RepoGroup
from update_coordinator import UpdateCoordinator

logger = logging.getLogger(__name__)


@dataclass
class ExportOutcome:
    commits: List[Commit] = field(default_factory=list)
    warnings: List[RepoWarning] = field(default_factory=list)
    fetch_errors: Dict[str, str] = field(default_factory=dict)
    reports: Dict[str, str] = field(default_factory=dict)
    saved_paths: List[str] = field(default_factory=list)
    html_path: Optional[str] = None


class ReportOrchestrator:
    """
    (V1.0) 负责执行一次导出的核心业务流程。
    状态对象 (AppState) 显式传入，run() 结束后可通过 self.state 取回更新后的状态。
    """

    def __init__(
        self,
        context: RunContext,
        state: Optional[AppState] = None,
        source_factory: Callable[[str], DataSource] = get_data_source,
        plugin_manager: Optional[PluginManager] = None,
    ):
        self.context = context
        self.global_config = context.global_config
        self.state = state or config_manager.default_state()
        self.source_factory = source_factory
        self.coordinator = UpdateCoordinator(source_factory=source_factory)

        if plugin_manager is None:
            plugin_manager = PluginManager(context)
            plugin_manager.load_plugins()
        self.plugin_manager = plugin_manager

    def _run_groups(self) -> List[RepoGroup]:
        """
        本次运行使用的分组。
        指定了 -g 时只选中这些分组 (不改写状态文件中的选中标记)。
        """
        names = self.context.group_names
        if not names:
            return list(self.state.groups)
        wanted = set()
        for name in names:
            group = config_manager.find_group(self.state, name)
            if group is None:
                raise ValidationError(f"分组 '{name}' 不存在。")
            wanted.add(group.id)
        return [replace(g, selected=g.id in wanted) for g in self.state.groups]

    def _selected_paths(self) -> List[str]:
        if self.context.repo_paths:
            return normalize_repo_paths(self.context.repo_paths)
        return normalize_repo_paths(
            repo.path for group in self._run_groups() if group.selected for repo in group.repos
        )

    def _fetch_before_analysis(self, repo_paths: List[str]) -> Dict[str, str]:
        if not self.context.fetch_before:
            return {}
        logger.info("🔄 正在检查并拉取最新代码...")
        if self.context.repo_paths:
            results = self.coordinator.fetch_paths(repo_paths)
            return {r.repo_path: r.error or "fetch failed" for r in results if not r.success}

        groups, errors = self.coordinator.fetch_before_analysis(self._run_groups())
        self._merge_groups(groups)
        return errors

    def run(self) -> ExportOutcome:
        """
        (V1.0) 执行核心业务流程。
        请求级校验失败时抛出 ValidationError，此时不会启动任何 git 进程。
        """
        ctx = self.context
        repo_paths = self._selected_paths()
        author_filter = build_author_filter(
            ctx.author_mode, ctx.include_authors, ctx.exclude_authors
        )
        validate_request(repo_paths, ctx.start_date, ctx.end_date)
        validate_author_filter(author_filter)

        # --- [Hook] 流程开始 ---
        self.plugin_manager.trigger("on_start")

        outcome = ExportOutcome()
        outcome.fetch_errors = self._fetch_before_analysis(repo_paths)
        for path, error in outcome.fetch_errors.items():
            logger.warning(f"⚠️ 无法拉取 {path}，将使用本地数据: {error}")

        logger.info("🔍 正在分析提交记录...")
        collected = collect_commits(
            repo_paths, ctx.start_date, ctx.end_date, source_factory=self.source_factory
        )
        outcome.warnings = collected.warnings

        # --- [Hook] 数据就绪 ---
        self.plugin_manager.trigger("on_commits_collected", commits=collected.commits)

        commits = filter_commits(collected.commits, author_filter)
        commits = preview_filter(commits, ctx.preview_author, ctx.preview_repo)
        outcome.commits = commits
        logger.info(f"✅ 分析完成，共找到 {len(commits)} 条提交记录。")

        if not commits:
            logger.warning("⚠️ 未找到任何提交记录。")
            self.plugin_manager.trigger("on_finish")
            return outcome

        aliases = AliasTable(self.state.aliases)
        # 过滤已完成，渲染时不再重复过滤
        reports = report_builder.render_reports(
            commits, aliases, None, None, ctx.start_date, ctx.end_date, author_mode="all"
        )
        # --- [Hook] 报告生成后 (Filter) ---
        outcome.reports = {
            name: self.plugin_manager.filter("on_report_rendered", text)
            for name, text in reports.items()
        }
        outcome.saved_paths = report_builder.save_reports(
            outcome.reports, ctx.export_dir, ctx.start_date, ctx.end_date
        )

        if ctx.html_overview:
            html_content = report_builder.generate_html_overview(
                commits, aliases, ctx.start_date, ctx.end_date
            )
            # --- [Hook] HTML 生成后 (Filter) ---
            html_content = self.plugin_manager.filter("on_html_generated", html_content)
            outcome.html_path = report_builder.save_html_overview(
                html_content, ctx.export_dir, ctx.start_date, ctx.end_date
            )

        # --- [Hook] 流程结束 ---
        self.plugin_manager.trigger("on_finish")
        return outcome

    def check_updates(self, force: bool = False) -> Dict[str, str]:
        """
        (V1.1) 检查选中分组的远程更新，返回 {失败路径: 错误}。
        结果合并回 self.state，由调用方负责保存。
        """
        errors: Dict[str, str] = {}
        checked_groups = []
        for group in self._run_groups():
            if not group.selected:
                continue
            result = self.coordinator.check_group(group, force=force)
            errors.update(result.errors)
            checked_groups.append(result.group)
            flagged = [r.path for r in result.group.repos if r.has_updates]
            logger.info(
                f"📊 [{group.name}] 已检查 {len(result.checked)} 个，"
                f"跳过 {len(result.skipped)} 个，有更新 {len(flagged)} 个"
            )
            for path in flagged:
                logger.info(f"   ⬇️ 有更新: {path}")
        self._merge_groups(checked_groups)
        return errors

    def fetch_updates(self) -> Dict[str, str]:
        """(V1.1) 拉取选中分组中标记为有更新的仓库，返回 {失败路径: 错误}"""
        errors: Dict[str, str] = {}
        fetched_groups = []
        for group in self._run_groups():
            if not group.selected:
                continue
            result = self.coordinator.fetch_group(group, only_flagged=True)
            errors.update(result.errors)
            fetched_groups.append(result.group)
            if result.fetched:
                logger.info(f"✅ [{group.name}] 已拉取 {len(result.fetched)} 个仓库")
        self._merge_groups(fetched_groups)
        return errors

    def _merge_groups(self, groups: List[RepoGroup]):
        # 只合并仓库状态，保留状态文件中原有的选中标记
        selected_flags = {g.id: g.selected for g in self.state.groups}
        self.state = config_manager.replace_groups(
            self.state,
            [replace(g, selected=selected_flags.get(g.id, g.selected)) for g in groups],
        )


__all__ = ["ExportOutcome", "ReportOrchestrator", "ValidationError"]
