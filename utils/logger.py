"""
Logger Configuration
统一日志配置
"""
import logging
import sys
from typing import Iterable, Optional

from rich.logging import RichHandler
from rich.console import Console


# 全局 Console 实例 (stderr, 保持 stdout 只输出 JSON/简报)
console = Console(stderr=True)

# 日志格式
LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"
LOG_FORMAT_SIMPLE = "%(message)s"

# 项目内各包的日志器前缀, 模块内统一使用 logging.getLogger(__name__)
PACKAGE_LOGGERS = ("jobs", "digest", "sources", "webapp", "zipf_monitor")


def setup_logger(
    name: str = "zipf_monitor",
    level: int = logging.INFO,
    use_rich: bool = True,
) -> logging.Logger:
    """
    设置日志记录器

    Args:
        name: 日志记录器名称
        level: 日志级别
        use_rich: 是否使用 Rich 美化输出

    Returns:
        配置好的 Logger 实例
    """
    logger = logging.getLogger(name)
    logger.setLevel(level)

    # 避免重复添加 handler
    if logger.handlers:
        return logger

    if use_rich:
        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))

    handler.setLevel(level)
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def configure_logging(
    level: int = logging.INFO,
    use_rich: bool = True,
    names: Optional[Iterable[str]] = None,
) -> None:
    """为 CLI / Web 入口一次性配置所有包日志器"""
    for name in names or PACKAGE_LOGGERS:
        setup_logger(name, level=level, use_rich=use_rich)


def get_logger(name: str = "zipf_monitor") -> logging.Logger:
    """
    获取日志记录器

    如果没有配置过，进行默认配置
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        return setup_logger(name)
    return logger
