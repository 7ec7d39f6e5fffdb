# data_sources/factory.py
import logging
from .base import DataSource
from .local_git import LocalGitDataSource

logger = logging.getLogger(__name__)


def get_data_source(repo_path: str) -> DataSource:
    """
    [V1.0] 数据源工厂
    采集器和更新协调器通过此函数为每个仓库创建数据源，测试可注入其它工厂。
    """
    logger.debug(f"🔌 [Factory] 初始化数据源: Local Git ({repo_path})")
    return LocalGitDataSource(repo_path)
