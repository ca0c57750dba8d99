from typing import Any, Dict, List, Optional, Union
import logging

from pydantic import AnyHttpUrl, Field, validator
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

class Settings(BaseSettings):
    PROJECT_NAME: str = "多仓库存台账系统"
    API_PREFIX: str = "/api"

    # CORS配置
    BACKEND_CORS_ORIGINS: List[Union[str, AnyHttpUrl]] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    @validator("BACKEND_CORS_ORIGINS", pre=True)
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, (list, str)):
            return v
        raise ValueError(v)

    # 服务监听
    SERVER_HOST: str = "127.0.0.1"
    SERVER_PORT: int = 8000
    RELOAD: bool = False

    # 数据库配置
    SQLITE_DATABASE_URI: str = "sqlite:///./wms_ledger.db"

    # 日志配置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # 库位锁等待超时（秒），超时返回 Busy，调用方可整单重试
    LOCK_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0, description="锁等待超时")

    # 库存预警定时扫描
    STOCK_ALERT_SCAN_ENABLED: bool = True
    STOCK_ALERT_SCAN_MINUTES: int = Field(default=30, ge=1, description="扫描间隔（分钟）")

    class Config:
        case_sensitive = True
        env_file = ".env"

    @property
    def async_database_uri(self) -> str:
        """异步驱动连接串（sqlite → sqlite+aiosqlite）"""
        if self.SQLITE_DATABASE_URI.startswith("sqlite:///"):
            return self.SQLITE_DATABASE_URI.replace("sqlite:///", "sqlite+aiosqlite:///")
        return self.SQLITE_DATABASE_URI


settings = Settings()
logger.info(f"加载配置: API_PREFIX={settings.API_PREFIX}, DB={settings.SQLITE_DATABASE_URI}")
