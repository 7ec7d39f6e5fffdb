# hooks/manager.py
import importlib.util
import inspect
import logging
import os
from typing import Any, List, Optional

from context import RunContext
from .base import BasePlugin

logger = logging.getLogger(__name__)


class PluginManager:
    """
    [V1.0] 插件管理器
    从 plugins/ 目录动态加载脚本，并管理钩子调用链。
    插件抛出的异常只记录日志，不会中断导出流程。
    """

    def __init__(self, context: RunContext, plugins_dir: Optional[str] = None):
        self.context = context
        self.plugins_dir = plugins_dir or os.path.join(
            context.global_config.SCRIPT_BASE_PATH,
            context.global_config.PLUGINS_DIR_NAME,
        )
        self.plugins: List[BasePlugin] = []

    def load_plugins(self):
        if not os.path.isdir(self.plugins_dir):
            return

        logger.info(f"🔌 [Hooks] 正在扫描插件目录: {self.plugins_dir}")
        for filename in sorted(os.listdir(self.plugins_dir)):
            if filename.endswith(".py") and not filename.startswith("__"):
                self._load_plugin_from_file(os.path.join(self.plugins_dir, filename))

    def _load_plugin_from_file(self, filepath: str):
        """动态加载单个插件文件，注册其中所有 BasePlugin 子类"""
        module_name = f"git_export_plugin_{os.path.splitext(os.path.basename(filepath))[0]}"
        try:
            spec = importlib.util.spec_from_file_location(module_name, filepath)
            if not spec or not spec.loader:
                return
            module = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(module)
        except Exception as e:
            logger.error(f"❌ [Hooks] 加载插件失败 {filepath}: {e}")
            return

        loaded_count = 0
        for _, obj in inspect.getmembers(module, inspect.isclass):
            if issubclass(obj, BasePlugin) and obj is not BasePlugin and obj.__module__ == module_name:
                plugin_instance = obj()
                self.register(plugin_instance)
                loaded_count += 1
                logger.info(f"   ✅ [Hooks] 已加载插件: {plugin_instance.name}")

        if loaded_count == 0:
            logger.warning(f"   ⚠️ [Hooks] 文件 {filepath} 中未发现 BasePlugin 子类")

    def register(self, plugin: BasePlugin):
        """手动注册插件实例"""
        self.plugins.append(plugin)

    def trigger(self, event_name: str, *args, **kwargs):
        """触发无返回值的通知型钩子 (如 on_start)"""
        for plugin in self.plugins:
            method = getattr(plugin, event_name, None)
            if not method:
                continue
            try:
                method(self.context, *args, **kwargs)
            except Exception as e:
                logger.error(f"❌ [Hooks] 插件 {plugin.name} 执行 {event_name} 失败: {e}")

    def filter(self, event_name: str, initial_value: Any, *args, **kwargs) -> Any:
        """
        触发链式处理型钩子 (如 on_report_rendered)。
        初始值依次经过所有插件；插件返回 None 时保持原值。
        """
        value = initial_value
        for plugin in self.plugins:
            method = getattr(plugin, event_name, None)
            if not method:
                continue
            try:
                new_value = method(self.context, value, *args, **kwargs)
            except Exception as e:
                logger.error(f"❌ [Hooks] 插件 {plugin.name} 执行 {event_name} 失败: {e}")
                continue
            if new_value is not None:
                value = new_value
        return value
