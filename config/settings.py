"""全局配置管理

所有可配置项均通过 .env 文件或环境变量设置，运行时自动加载到此处。

使用方式：
    1. 手动创建 .env 文件（例如 DATABASE_URL=sqlite:///data/onboarding.db）
    2. 或直接导出环境变量
"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """应用配置 - 所有字段均可通过 .env 或环境变量覆盖"""

    # ========== 数据库 ==========
    database_url: str = "sqlite:///data/onboarding.db"

    # 可串行化事务（套餐限额创建、诊所状态变更）遇到序列化冲突时的重试次数
    transaction_retries: int = 3

    # ========== 日志 ==========
    log_level: str = "INFO"

    # ========== 业务规则 ==========
    # 视为"未取消的未来预约"的预约状态
    appointment_active_statuses: List[str] = ["scheduled", "confirmed"]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# 全局配置实例
settings = Settings()
