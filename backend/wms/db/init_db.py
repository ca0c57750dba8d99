import asyncio

from wms.db.session import engine
from wms.db.base import Base

# 导入所有模型，确保表能被创建
import wms.models  # noqa: F401


async def ensure_tables_exist(bind=None) -> None:
    """
    确保数据库表存在（应用启动时调用）
    """
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


if __name__ == "__main__":
    asyncio.run(ensure_tables_exist())
