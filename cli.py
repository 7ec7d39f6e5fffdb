# cli.py
"""
[V1.0] 命令行界面 (Interface) 层
- 解析参数、加载状态文件、组装 RunContext，然后移交给 Orchestrator
- 分组 / 仓库 / 别名的管理命令直接修改状态文件后退出
[V1.1] 新增 --check / --fetch 更新检查与拉取
"""
import argparse
import logging
import os
import sys
from datetime import date, timedelta
from typing import List, Optional, Sequence, Tuple

import config_manager
from aggregator import AUTHOR_MODE_ALL, AUTHOR_MODE_SPECIFIC
from collector import ValidationError
from config import GlobalConfig
from context import RunContext
from models import AppState
from orchestrator import ReportOrchestrator

logger = logging.getLogger(__name__)


def default_week_range(today: Optional[date] = None) -> Tuple[str, str]:
    """默认时间范围：本周一至本周日"""
    today = today or date.today()
    monday = today - timedelta(days=today.weekday())
    sunday = monday + timedelta(days=6)
    return monday.isoformat(), sunday.isoformat()


def split_csv(values: Optional[Sequence[str]]) -> List[str]:
    """把 'a,b' 形式 (可重复传入) 的参数展开为去空白的列表"""
    result: List[str] = []
    for value in values or []:
        result.extend(part.strip() for part in value.split(",") if part.strip())
    return result


def setup_parser() -> argparse.ArgumentParser:
    """
    (V1.0) 负责所有 argparse 的定义。
    """
    parser = argparse.ArgumentParser(
        prog="git-commit-export",
        description="Git 提交记录导出工具 (多仓库)",
        formatter_class=argparse.RawTextHelpFormatter,
    )

    # --- 仓库选择 ---
    parser.add_argument(
        "-r",
        "--repo-path",
        action="append",
        default=[],
        help="指定要分析的 Git 仓库路径 (可重复)。\n"
        "   (未指定时使用状态文件中选中的分组)",
    )
    parser.add_argument(
        "-g",
        "--group",
        action="append",
        default=[],
        help="只使用指定的分组 (按 id 或名称，可重复)。\n"
        "   (与 --add-repo 连用时表示目标分组)",
    )

    # --- 时间范围 ---
    parser.add_argument("--start", type=str, default=None, help="开始日期 YYYY-MM-DD\n(默认: 本周一)")
    parser.add_argument("--end", type=str, default=None, help="结束日期 YYYY-MM-DD\n(默认: 本周日)")

    # --- 作者过滤 ---
    parser.add_argument(
        "--author",
        action="append",
        default=[],
        help="只包含作者名中含有这些关键字的提交 (逗号分隔)。\n"
        "   (提供 --author 或 --exclude-author 即启用指定作者模式)",
    )
    parser.add_argument(
        "--exclude-author",
        action="append",
        default=[],
        help="排除作者名中含有这些关键字的提交 (逗号分隔，优先于 --author)",
    )

    # --- 输出 ---
    parser.add_argument(
        "--export-dir",
        type=str,
        default=None,
        help=f"报告导出目录\n(默认: {GlobalConfig.DEFAULT_EXPORT_DIR})",
    )
    parser.add_argument("--html", action="store_true", help="同时生成 HTML 概览页")
    parser.add_argument(
        "--state-file",
        type=str,
        default=None,
        help=f"状态文件路径 (分组 / 仓库 / 别名)\n(默认: {GlobalConfig.STATE_FILE})",
    )

    # --- 更新检查与拉取 ---
    parser.add_argument("--check", action="store_true", help="检查选中分组的远程更新后退出")
    parser.add_argument(
        "--force", action="store_true", help="(与 --check 连用) 忽略新鲜度窗口，强制检查"
    )
    parser.add_argument("--fetch", action="store_true", help="拉取标记为有更新的仓库后退出")
    parser.add_argument("--no-fetch", action="store_true", help="导出前不拉取远程代码")

    # --- 状态管理 ---
    parser.add_argument("--add-group", type=str, metavar="NAME", help="新建分组后退出")
    parser.add_argument(
        "--add-repo",
        action="append",
        default=[],
        metavar="PATH",
        help="向分组添加仓库 (可重复) 后退出\n(默认添加到默认分组，可用 -g 指定)",
    )
    parser.add_argument(
        "--add-alias",
        action="append",
        default=[],
        metavar="ORIGINAL=ALIAS",
        help="添加作者别名 (可重复) 后退出",
    )

    return parser


def _save_or_exit(state_file: str, state: AppState):
    if not config_manager.save_app_state(state_file, state):
        sys.exit(1)
    logger.info(f"💾 状态已保存: {state_file}")


def _handle_state_commands(args, state_file: str, state: AppState) -> bool:
    """处理分组 / 仓库 / 别名管理命令，返回是否执行过任何命令"""
    handled = False

    if args.add_group:
        state = config_manager.add_group(state, args.add_group.strip() or config_manager.NEW_GROUP_NAME)
        logger.info(f"📁 已新建分组: {args.add_group}")
        handled = True

    if args.add_repo:
        group_ref = args.group[0] if args.group else config_manager.DEFAULT_GROUP_ID
        group = config_manager.find_group(state, group_ref)
        if group is None:
            logger.error(f"❌ 分组 '{group_ref}' 不存在。")
            sys.exit(1)
        before = len(group.repos)
        state = config_manager.add_repos(state, group.id, args.add_repo)
        after = len(config_manager.find_group(state, group.id).repos)
        logger.info(f"📂 [{group.name}] 新增 {after - before} 个仓库")
        handled = True

    for entry in args.add_alias:
        original, sep, alias = entry.partition("=")
        if not sep:
            logger.error(f"❌ 别名格式应为 ORIGINAL=ALIAS: {entry}")
            sys.exit(1)
        state = config_manager.add_alias(state, original, alias)
        handled = True

    if handled:
        _save_or_exit(state_file, state)
    return handled


def run_cli(argv: Optional[Sequence[str]] = None):
    """
    (V1.0) 主入口点。
    """

    # 1. 解析 Args
    parser = setup_parser()
    args = parser.parse_args(argv)

    # 2. 加载 GlobalConfig 与状态文件
    global_config = GlobalConfig()
    state_file = os.path.abspath(args.state_file or global_config.STATE_FILE)
    state = config_manager.load_app_state(state_file)

    # 3. 管理命令
    if _handle_state_commands(args, state_file, state):
        return

    # 4. 组装 RunContext
    week_start, week_end = default_week_range()
    include_authors = split_csv(args.author)
    exclude_authors = split_csv(args.exclude_author)
    author_mode = (
        AUTHOR_MODE_SPECIFIC if (include_authors or exclude_authors) else AUTHOR_MODE_ALL
    )

    run_context = RunContext(
        repo_paths=[os.path.abspath(p) for p in args.repo_path],
        group_names=list(args.group),
        start_date=args.start or week_start,
        end_date=args.end or week_end,
        author_mode=author_mode,
        include_authors=include_authors,
        exclude_authors=exclude_authors,
        export_dir=os.path.abspath(args.export_dir or global_config.DEFAULT_EXPORT_DIR),
        state_file=state_file,
        global_config=global_config,
        fetch_before=not args.no_fetch,
        html_overview=args.html,
    )
    orchestrator = ReportOrchestrator(run_context, state=state)

    # 5. 特殊模式：--check / --fetch
    if args.check or args.fetch:
        try:
            errors = {}
            if args.check:
                errors.update(orchestrator.check_updates(force=args.force))
            if args.fetch:
                errors.update(orchestrator.fetch_updates())
        except ValidationError as e:
            logger.error(f"❌ {e}")
            sys.exit(1)
        for path, error in errors.items():
            logger.warning(f"⚠️ {path}: {error}")
        _save_or_exit(state_file, orchestrator.state)
        return

    logger.info("=" * 50)
    logger.info("🚀 Git 提交导出启动...")
    logger.info(f"   [时间范围]: {run_context.start_date} 至 {run_context.end_date}")
    if author_mode == AUTHOR_MODE_SPECIFIC:
        logger.info(
            f"   [作者过滤]: 包含 {include_authors or '全部'} / 排除 {exclude_authors or '无'}"
        )
    logger.info(f"   [导出目录]: {run_context.export_dir}")
    logger.info("=" * 50)

    # 6. 运行 Orchestrator
    try:
        outcome = orchestrator.run()
    except ValidationError as e:
        logger.error(f"❌ {e}")
        sys.exit(1)

    for warning in outcome.warnings:
        logger.warning(f"⚠️ 仓库 {warning.repo_path} 读取失败: {warning.message}")

    # 拉取会更新仓库状态
    if run_context.fetch_before and not run_context.repo_paths:
        _save_or_exit(state_file, orchestrator.state)

    if outcome.saved_paths:
        logger.info(f"🎉 导出成功，共 {len(outcome.saved_paths)} 份报告。")
    else:
        logger.warning("⚠️ 没有可导出的记录。")
