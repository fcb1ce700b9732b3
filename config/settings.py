"""
Settings Configuration
使用 Pydantic 进行配置验证和管理
"""
import json
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


DEFAULT_API_BASE_URL = "https://www.zipf.ai/api/v1"
DEFAULT_CONFIG_PATH = Path.home() / ".zipfai" / "config.json"


class ZipfSettings(BaseSettings):
    """ZipfAI API 配置"""
    api_key: Optional[str] = Field(default=None, description="ZipfAI API Key")
    api_base_url: str = Field(default=DEFAULT_API_BASE_URL, description="API 根地址")
    config_path: Path = Field(default=DEFAULT_CONFIG_PATH, description="安装器写入的 API Key 文件")

    class Config:
        env_prefix = "ZIPF_"

    def resolve_api_key(self) -> Optional[str]:
        """环境变量优先，其次读取 ~/.zipfai/config.json"""
        if self.api_key:
            return self.api_key
        try:
            payload = json.loads(self.config_path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return None
        key = str((payload or {}).get("apiKey") or "").strip()
        return key or None


class PollerSettings(BaseSettings):
    """异步任务轮询配置"""
    budget_sec: float = Field(default=60.0, description="默认轮询总时长(秒)")
    min_budget_sec: float = Field(default=5.0, description="轮询时长下限(秒)")
    max_budget_sec: float = Field(default=300.0, description="轮询时长上限(秒)")
    initial_interval_sec: float = Field(default=0.5, description="首次退避间隔(秒)")
    backoff_multiplier: float = Field(default=1.5, description="退避倍数")
    max_interval_sec: float = Field(default=4.0, description="退避间隔上限(秒)")

    class Config:
        env_prefix = "POLLER_"


class DigestSettings(BaseSettings):
    """工作流更新摘要配置"""
    default_window_hours: int = Field(default=24, description="默认水位线窗口(小时)")
    default_max_workflows: int = Field(default=20, description="默认最大工作流数")
    hard_max_workflows: int = Field(default=50, description="工作流数量硬上限")
    max_concurrency: int = Field(default=10, description="并发请求上限")
    timeline_limit: int = Field(default=20, description="每个工作流拉取的执行记录数")
    page_size: int = Field(default=50, description="工作流列表分页大小")

    class Config:
        env_prefix = "DIGEST_"


class GeneralSettings(BaseSettings):
    """通用设置"""
    request_timeout: int = Field(default=30, description="请求超时时间(秒)")
    max_retries: int = Field(default=3, description="连接失败最大重试次数")


class Settings(BaseSettings):
    """主配置类 - 聚合所有子配置"""

    zipf: ZipfSettings = Field(default_factory=ZipfSettings)
    poller: PollerSettings = Field(default_factory=PollerSettings)
    digest: DigestSettings = Field(default_factory=DigestSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """从指定的 .env 文件加载配置"""
        if env_path is None:
            # 默认查找 config/.env
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            zipf=ZipfSettings(),
            poller=PollerSettings(),
            digest=DigestSettings(),
            general=GeneralSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """获取全局配置单例"""
    return Settings.load_from_env_file()


# 便捷访问
def get_zipf_settings() -> ZipfSettings:
    return get_settings().zipf


def get_poller_settings() -> PollerSettings:
    return get_settings().poller


def get_digest_settings() -> DigestSettings:
    return get_settings().digest
