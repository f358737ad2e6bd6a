import os
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/canteen_planner.duckdb"
    # 启动时若食堂表为空，则从该文件导入目录数据
    catalog_seed_path: Optional[str] = None

    # 客户端指纹令牌配置
    client_token_secret: str = "change-me-in-production"
    client_token_algorithm: str = "HS256"
    client_token_expire_days: int = 365

    # 限流配置（limits 语法的滑动窗口额度）
    rate_limit_fingerprint: str = "10 per 30 seconds"
    rate_limit_ip: str = "2 per 30 seconds"

    # 浏览默认值
    default_price_range: List[float] = [5, 150]
    default_page_size: int = 10

    # API配置
    api_title: str = "Canteen Planner API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api/v1"

    # 开发模式
    debug: bool = False

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)


def load_settings() -> Settings:
    """按 APP_ENV 选择配置，development 使用开发库并导入示例目录"""
    if os.getenv("APP_ENV", "").lower() == "development":
        from .environments.development import DevelopmentSettings
        return DevelopmentSettings()
    return Settings()


# 全局设置实例
settings = load_settings()
