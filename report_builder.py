# report_builder.py
"""
[V1.0] 报告生成器 - Jinja2 模板渲染
- 每位作者一份文本报告 + 一份汇总报告 (TOTAL)
- 文件名: <作者|TOTAL>-<日期范围>-<项目标签>.txt
[V1.1] 新增 HTML 概览页 (提交类型分布、每日趋势、活跃作者)
"""
import html
import logging
import os
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Union

import markdown
from jinja2 import Environment, FileSystemLoader, select_autoescape

import stats
from aggregator import (
    AUTHOR_MODE_ALL,
    AUTHOR_MODE_SPECIFIC,
    AliasTable,
    aggregate,
    build_author_filter,
    filter_commits,
    group_by_author,
)
from config import GlobalConfig
from models import AuthorAlias, Commit

logger = logging.getLogger(__name__)

Aliases = Union[AliasTable, Iterable[AuthorAlias], None]


def _get_environment() -> Environment:
    templates_dir = os.path.join(
        GlobalConfig.SCRIPT_BASE_PATH, GlobalConfig.TEMPLATES_DIR_NAME
    )
    return Environment(
        loader=FileSystemLoader(templates_dir),
        autoescape=select_autoescape(["html", "xml", "html.j2"]),
    )


def _as_alias_table(aliases: Aliases) -> AliasTable:
    if isinstance(aliases, AliasTable):
        return aliases
    return AliasTable(aliases)


def format_date_range(start_date: str, end_date: str) -> str:
    """
    紧凑的日期范围标签:
    同年同月 → 2024-01-01~15；同年 → 2024-01-28~02-03；否则 → 2024-12-30~2025-01-05
    """
    start_parts = start_date.split("-")
    end_parts = end_date.split("-")
    if len(start_parts) == 3 and len(end_parts) == 3 and start_parts[0] == end_parts[0]:
        if start_parts[1] == end_parts[1]:
            return f"{start_date}~{end_parts[2]}"
        return f"{start_date}~{end_parts[1]}-{end_parts[2]}"
    return f"{start_date}~{end_date}"


def repo_label(commits: Iterable[Commit]) -> str:
    repos = {c.repo_name for c in commits}
    if len(repos) > 1:
        return GlobalConfig.MULTI_REPO_LABEL
    if repos:
        return next(iter(repos))
    return GlobalConfig.UNKNOWN_REPO_LABEL


def _safe_filename_part(value: str) -> str:
    cleaned = value.strip()
    for sep in ("/", "\\", os.sep):
        cleaned = cleaned.replace(sep, "_")
    return cleaned or "unknown"


def report_filename(subject: str, start_date: str, end_date: str, label: str) -> str:
    return (
        f"{_safe_filename_part(subject)}-{format_date_range(start_date, end_date)}"
        f"-{_safe_filename_part(label)}.txt"
    )


def _unique_filename(filename: str, used: set) -> str:
    """与已占用的文件名冲突时追加序号: Bob-....txt → Bob-...-2.txt"""
    if filename not in used:
        return filename
    stem, ext = os.path.splitext(filename)
    n = 2
    while f"{stem}-{n}{ext}" in used:
        n += 1
    renamed = f"{stem}-{n}{ext}"
    logger.warning(f"⚠️ 报告文件名冲突，已重命名: {filename} → {renamed}")
    return renamed


def render_report(
    commits: Sequence[Commit],
    subject: str,
    start_date: str,
    end_date: str,
    is_total: bool = False,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    生成单份文本报告。
    提交信息首行编号输出，后续行缩进并完整保留。
    """
    aggregated = aggregate(commits)
    # 模板只需要按行拆好的提交信息
    prepared = {
        day: {
            repo: {
                branch: [msg.splitlines() or [""] for msg in messages]
                for branch, messages in branches.items()
            }
            for repo, branches in repos.items()
        }
        for day, repos in aggregated.items()
    }
    template = _get_environment().get_template(GlobalConfig.REPORT_TEMPLATE)
    return template.render(
        subject=subject,
        is_total=is_total,
        start_date=start_date,
        end_date=end_date,
        generated_at=(generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
        aggregated=prepared,
    )


def render_reports(
    commits: Iterable[Commit],
    aliases: Aliases,
    include_authors: Optional[Sequence[str]],
    exclude_authors: Optional[Sequence[str]],
    start_date: str,
    end_date: str,
    author_mode: Optional[str] = None,
    generated_at: Optional[datetime] = None,
) -> Dict[str, str]:
    """
    (V1.0) 生成全部报告，返回 {文件名: 文本内容}
    - author_mode 为空时：提供了任意关键字即为 specific，否则为 all
    - 作者报告以别名 (显示名) 为单位，多个 git 身份会合并
    - 过滤后没有提交时返回空字典
    """
    if author_mode is None:
        author_mode = (
            AUTHOR_MODE_SPECIFIC if (include_authors or exclude_authors) else AUTHOR_MODE_ALL
        )
    author_filter = build_author_filter(author_mode, include_authors, exclude_authors)
    alias_table = _as_alias_table(aliases)
    selected = filter_commits(commits, author_filter)
    if not selected:
        logger.warning("⚠️ 没有可导出的记录。")
        return {}

    generated_at = generated_at or datetime.now()
    # 汇总报告的文件名优先保留，同名作者报告追加序号
    total_name = report_filename(
        GlobalConfig.TOTAL_SUBJECT, start_date, end_date, repo_label(selected)
    )
    used = {total_name}
    reports: Dict[str, str] = {}
    for author, author_commits in group_by_author(selected, alias_table).items():
        filename = _unique_filename(
            report_filename(author, start_date, end_date, repo_label(author_commits)), used
        )
        used.add(filename)
        reports[filename] = render_report(
            author_commits, author, start_date, end_date, False, generated_at
        )

    reports[total_name] = render_report(
        selected, GlobalConfig.ALL_AUTHORS_SUBJECT, start_date, end_date, True, generated_at
    )
    logger.info(f"📝 已生成 {len(reports)} 份报告 (含汇总报告)")
    return reports


def save_reports(
    reports: Dict[str, str], export_dir: str, start_date: str, end_date: str
) -> List[str]:
    """把报告写入 <export_dir>/<start>~<end>/，返回写入的文件路径"""
    output_dir = os.path.join(export_dir, f"{start_date}~{end_date}")
    os.makedirs(output_dir, exist_ok=True)
    saved = []
    for filename, content in reports.items():
        full_path = os.path.join(output_dir, filename)
        try:
            with open(full_path, "w", encoding="utf-8") as f:
                f.write(content)
            logger.info(f"✅ 报告已保存: {full_path}")
            saved.append(full_path)
        except OSError as e:
            logger.error(f"❌ 保存报告失败 ({full_path}): {e}")
    return saved


def _message_html(message: str) -> str:
    return markdown.markdown(html.escape(message), extensions=["sane_lists", "nl2br"])


def generate_html_overview(
    commits: Sequence[Commit],
    aliases: Aliases,
    start_date: str,
    end_date: str,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    (V1.1) 使用 Jinja2 模板生成 HTML 概览页
    """
    alias_table = _as_alias_table(aliases)
    type_distribution = stats.commit_type_distribution(commits)
    trend = stats.daily_trend(commits)
    rows = [
        {
            "date": c.date,
            "repo_name": c.repo_name,
            "branch": c.branch,
            "author": alias_table.resolve(c.author),
            "message_html": _message_html(c.message),
        }
        for c in sorted(commits, key=lambda c: (c.date, c.repo_name, c.branch))
    ]
    template_context = {
        "title": f"Git 提交概览 - {format_date_range(start_date, end_date)}",
        "start_date": start_date,
        "end_date": end_date,
        "generation_time": (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M:%S"),
        "overview": stats.summarize(commits, alias_table),
        "type_distribution": type_distribution,
        "max_type_count": max((n for _, n in type_distribution), default=0),
        "trend": trend,
        "max_day_count": max((n for _, n in trend), default=0),
        "top_authors": stats.top_authors(commits, alias_table),
        "rows": rows,
    }
    template = _get_environment().get_template(GlobalConfig.OVERVIEW_TEMPLATE)
    logger.info(f"🎨 正在渲染 Jinja2 模板: {GlobalConfig.OVERVIEW_TEMPLATE}")
    return template.render(**template_context)


def save_html_overview(
    html_content: str, export_dir: str, start_date: str, end_date: str
) -> Optional[str]:
    """保存 HTML 概览到导出目录"""
    output_dir = os.path.join(export_dir, f"{start_date}~{end_date}")
    filename = (
        f"{GlobalConfig.OUTPUT_FILENAME_PREFIX}_"
        f"{format_date_range(start_date, end_date)}.html"
    )
    full_path = os.path.join(output_dir, filename)
    try:
        os.makedirs(output_dir, exist_ok=True)
        with open(full_path, "w", encoding="utf-8") as f:
            f.write(html_content)
        logger.info(f"✅ HTML 概览已保存: {full_path}")
        return full_path
    except OSError as e:
        logger.error(f"❌ 保存 HTML 概览失败 ({full_path}): {e}")
        return None
