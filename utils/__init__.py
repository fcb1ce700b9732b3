"""
Utils Module
通用工具函数
"""
from .logger import configure_logging, setup_logger, get_logger
from .exceptions import (
    ZipfMonitorError,
    ConfigurationError,
    ZipfAPIError,
    TransientFetchError,
    JobFailedError,
)

__all__ = [
    "configure_logging",
    "setup_logger",
    "get_logger",
    "ZipfMonitorError",
    "ConfigurationError",
    "ZipfAPIError",
    "TransientFetchError",
    "JobFailedError",
]
