"""
Custom Exceptions
自定义异常类
"""
from typing import Any, Optional


class ZipfMonitorError(Exception):
    """监控助手基础异常类"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(ZipfMonitorError):
    """配置错误"""
    pass


class ZipfAPIError(ZipfMonitorError):
    """远程服务调用错误 (非 2xx 响应或网络异常)"""

    def __init__(self, message: str, status_code: Optional[int] = None, **kwargs):
        super().__init__(message, kwargs)
        self.status_code = status_code


class TransientFetchError(ZipfAPIError):
    """可恢复的抓取错误: 网络异常、超时或 5xx"""
    pass


class JobFailedError(ZipfMonitorError):
    """异步任务进入 failed 终态"""

    def __init__(self, message: str, snapshot: Any = None, **kwargs):
        super().__init__(message, kwargs)
        self.snapshot = snapshot
