# config.py
"""
[V1.0] 全局配置
[V1.2] 更新：并发、超时与输出上限可通过 .env 覆盖
"""
import os
from dotenv import load_dotenv


# --- 脚本基础路径 ---
SCRIPT_BASE_PATH = os.path.abspath(os.path.dirname(__file__))
env_path = os.path.join(SCRIPT_BASE_PATH, ".env")
if os.path.exists(env_path):
    load_dotenv(env_path)
else:
    load_dotenv()


def _env_int(name: str, default: int) -> int:
    """读取整数环境变量，非法值回退到默认值"""
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw.strip() else default
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in ("1", "true", "yes", "on")


class GlobalConfig:
    """
    (V1.0) 提交导出工具的全局应用配置。
    """

    # --- 路径配置 ---
    SCRIPT_BASE_PATH: str = SCRIPT_BASE_PATH
    TEMPLATES_DIR_NAME: str = "templates"
    PLUGINS_DIR_NAME: str = "plugins"
    DEFAULT_EXPORT_DIR: str = os.getenv(
        "GIT_EXPORT_DIR", os.path.join(SCRIPT_BASE_PATH, "exports")
    )
    STATE_FILE: str = os.getenv(
        "GIT_EXPORT_STATE_FILE", os.path.join(SCRIPT_BASE_PATH, "data", "state.json")
    )

    # --- Git 输出分隔符 ---
    # 字段分隔符不会出现在 hash/日期/作者中；提交终止符足够罕见，不会与提交信息冲突
    FIELD_SEPARATOR: str = "|||"
    COMMIT_TERMINATOR: str = "^^^^^COMMIT^^^^^"
    STAT_MARKER: str = "^^^^^STAT^^^^^"

    # --- Git 命令参数 ---
    GIT_LOG_ARGS = [
        "log",
        "--all",
        "--since={start_date} 00:00:00",
        "--until={end_date} 23:59:59",
        "--no-merges",
        "--date=format:%Y-%m-%d",
        "--pretty=format:%ad|||%H|||%an|||%B^^^^^COMMIT^^^^^",
    ]
    GIT_STATS_ARGS = [
        "log",
        "--all",
        "--since={start_date} 00:00:00",
        "--until={end_date} 23:59:59",
        "--no-merges",
        "--numstat",
        "--pretty=format:^^^^^STAT^^^^^%H|||%at",
    ]
    GIT_NAME_REV_ARGS = [
        "name-rev",
        "--stdin",
        "--refs=refs/heads/*",
        "--refs=refs/remotes/*",
    ]
    GIT_CHECK_UPDATES_ARGS = ["fetch", "--all", "--dry-run"]
    GIT_FETCH_ARGS = ["fetch", "--all"]
    GIT_COMMIT_DIFF_ARGS = ["show", "{commit_hash}", "--pretty=", "--no-color"]

    # --- 资源限制 ---
    GIT_TIMEOUT_SECONDS: int = _env_int("GIT_EXPORT_TIMEOUT", 60)
    GIT_FETCH_TIMEOUT_SECONDS: int = _env_int("GIT_EXPORT_FETCH_TIMEOUT", 120)
    MAX_OUTPUT_BYTES: int = _env_int("GIT_EXPORT_MAX_OUTPUT_BYTES", 10 * 1024 * 1024)
    MAX_WORKERS: int = _env_int("GIT_EXPORT_MAX_WORKERS", 8)

    # --- 更新检查 ---
    # 在此窗口内检查过的仓库不会被自动重复检查 (手动检查可绕过)
    FRESHNESS_WINDOW_SECONDS: int = _env_int("GIT_EXPORT_FRESHNESS_WINDOW", 5 * 60)

    # --- 采集选项 ---
    COLLECT_STATS: bool = _env_bool("GIT_EXPORT_COLLECT_STATS", True)

    # --- 插件选项 ---
    STRIP_COMMIT_TRAILERS: bool = _env_bool("GIT_EXPORT_STRIP_TRAILERS", False)

    # --- 报告常量 ---
    UNKNOWN_BRANCH: str = "Unknown Branch"
    MULTI_REPO_LABEL: str = "AllProjects"
    UNKNOWN_REPO_LABEL: str = "Unknown"
    TOTAL_SUBJECT: str = "TOTAL"
    ALL_AUTHORS_SUBJECT: str = "ALL"
    REPORT_TEMPLATE: str = "report.txt.j2"
    OVERVIEW_TEMPLATE: str = "overview.html.j2"
    OUTPUT_FILENAME_PREFIX: str = "GitExport"
