"""应用配置管理."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置（环境变量）."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PUTIO_OPERATOR_",
        extra="ignore",
    )

    # put.io 配置
    putio_api_url: str = "https://api.put.io/v2"
    http_timeout_seconds: float = 30.0
    controller_identity: str = "Kubernetes/putio-operator"

    # Kubernetes 配置
    watch_namespace: str | None = None
    finalizer: str = "feed.skynewz.dev/finalizer"
    event_source: str = "feed-reconciler"
    annotation_prefix: str = "putio.skynewz.dev"

    # 调和配置
    max_workers: int = 4
    reconcile_timeout_seconds: float = 60.0
    handler_timeout_seconds: float | None = None  # 为空时无限重试
    backoff_base_seconds: float = 0.5
    backoff_max_seconds: float = 300.0

    # 准入 webhook 配置
    webhook_host: str = "0.0.0.0"
    webhook_port: int = 9443

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"


@lru_cache
def get_settings() -> Settings:
    """获取缓存的配置实例."""
    return Settings()
