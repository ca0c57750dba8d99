import os
import tempfile

# 测试期间日志写到临时目录，不启动定时扫描
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="wms-test-logs-"))
os.environ.setdefault("STOCK_ALERT_SCAN_ENABLED", "false")

import pytest
import pytest_asyncio

from wms.db.init_db import ensure_tables_exist
from wms.db.session import create_engine_from_settings, create_session_factory
from wms.services.inventory_service import InventoryService
from wms.services.locks import LockManager
from tests.factories import build_world


@pytest_asyncio.fixture
async def engine(tmp_path):
    # 文件库而不是内存库：并发测试里每个操作有自己的连接
    engine = create_engine_from_settings(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    await ensure_tables_exist(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(session_factory):
    return InventoryService(session_factory, LockManager(timeout=2))


@pytest_asyncio.fixture
async def world(session_factory):
    async with session_factory() as session:
        world = await build_world(session)
        await session.commit()
    return world
