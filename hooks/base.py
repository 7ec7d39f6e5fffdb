# hooks/base.py
from abc import ABC
from typing import List
from context import RunContext
from models import Commit


class BasePlugin(ABC):
    """
    [V1.0] 插件基类
    定义所有生命周期钩子。用户自定义插件应继承此类。
    """

    # 插件名称 (建议子类覆盖)
    name: str = "BasePlugin"

    def on_start(self, context: RunContext):
        """
        [钩子] 流程开始时调用。
        """
        pass

    def on_commits_collected(self, context: RunContext, commits: List[Commit]):
        """
        [钩子] 所有仓库采集完成、作者过滤之前调用。
        可用于检查数据完整性或统计自定义指标。
        """
        pass

    def on_report_rendered(self, context: RunContext, report: str) -> str:
        """
        [Filter 钩子] 单份文本报告生成后、保存前调用。
        **必须返回字符串**。

        :param report: 原始报告文本
        :return: 修改后的报告 (若不修改请直接返回 report)
        """
        return report

    def on_html_generated(self, context: RunContext, html_content: str) -> str:
        """
        [Filter 钩子] HTML 概览生成后，保存前调用 (仅 --html)。
        """
        return html_content

    def on_finish(self, context: RunContext):
        """
        [钩子] 流程结束时调用。
        """
        pass
