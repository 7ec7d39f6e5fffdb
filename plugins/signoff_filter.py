# plugins/signoff_filter.py
import logging
import re

from hooks.base import BasePlugin
from context import RunContext

logger = logging.getLogger(__name__)

TRAILER_LINE = re.compile(
    r"^[ \t]*(Signed-off-by|Co-authored-by|Change-Id):.*$\n?", re.IGNORECASE | re.MULTILINE
)


class SignoffFilterPlugin(BasePlugin):
    """
    示例插件：去掉报告中提交信息的 Signed-off-by / Co-authored-by / Change-Id 尾注
    (需在 .env 中设置 GIT_EXPORT_STRIP_TRAILERS=1 启用)
    """

    name = "SignoffFilter"

    def on_report_rendered(self, context: RunContext, report: str) -> str:
        if not report or not context.global_config.STRIP_COMMIT_TRAILERS:
            return report
        filtered, count = TRAILER_LINE.subn("", report)
        if count:
            logger.info(f"🧹 [SignoffFilter] 已去除 {count} 行提交尾注。")
        return filtered
