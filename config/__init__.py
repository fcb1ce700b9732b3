"""
Configuration Management Module
统一配置管理，实现API配置解耦
"""
from .settings import (
    Settings,
    get_settings,
    get_zipf_settings,
    get_poller_settings,
    get_digest_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_zipf_settings",
    "get_poller_settings",
    "get_digest_settings",
]
