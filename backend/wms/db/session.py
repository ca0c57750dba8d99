import os
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from wms.core.config import settings


def create_engine_from_settings(url: str = None):
    """
    创建异步引擎

    SQLite 写锁等待时间与库位锁超时一致，超时后由记录存储转为 BusyError
    """
    return create_async_engine(
        url or settings.async_database_uri,
        # 仅在开发环境打印SQL（通过环境变量控制）
        echo=os.getenv("SQL_DEBUG", "false").lower() == "true",
        connect_args={"timeout": settings.LOCK_TIMEOUT_SECONDS},
        future=True,
    )


def create_session_factory(bind):
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=bind,
        class_=AsyncSession,
        expire_on_commit=False,
    )


# 默认引擎和会话
engine = create_engine_from_settings()
SessionLocal = create_session_factory(engine)
