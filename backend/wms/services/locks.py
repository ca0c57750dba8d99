"""
进程内单据锁 / 库位锁

同一单据同时只允许一个执行者；涉及的库位按 ID 升序加锁（调拨同时锁两个库位，
固定顺序避免死锁）。等锁超时抛 BusyError，调用方可整单重试。

锁按键懒创建，并记录每个键的持有者和等待者数量，归零时从表中删除。
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from functools import partial
from typing import Dict, Hashable, List, Optional, Tuple

from wms.core.exceptions import BusyError

logger = logging.getLogger(__name__)


def document_key(kind, document_id: int):
    return ("document", str(getattr(kind, "value", kind)), document_id)


def location_key(location_id: int):
    return ("location", location_id)


class LockManager:
    """按键懒创建 asyncio.Lock"""

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout
        self._locks: Dict[Hashable, asyncio.Lock] = {}
        self._users: Dict[Hashable, int] = {}

    @property
    def key_count(self) -> int:
        """当前有持有者或等待者的键数"""
        return len(self._locks)

    def _checkout(self, key) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _checkin(self, key):
        remaining = self._users[key] - 1
        if remaining:
            self._users[key] = remaining
        else:
            del self._users[key]
            del self._locks[key]

    async def _wait_for(self, lock: asyncio.Lock) -> bool:
        """在超时内获取锁，超时返回 False

        放弃等待时获取可能已经完成，由回调把锁还回去。
        """
        waiter = asyncio.ensure_future(lock.acquire())
        try:
            done, _ = await asyncio.wait({waiter}, timeout=self.timeout)
        except asyncio.CancelledError:
            _abandon(lock, waiter)
            raise
        if waiter in done:
            return waiter.result()
        _abandon(lock, waiter)
        return False

    @asynccontextmanager
    async def acquire(self, *keys):
        """按给定顺序加锁（调用方负责排序），退出时逆序释放"""
        held: List[Tuple[Hashable, asyncio.Lock]] = []
        try:
            for key in keys:
                lock = self._checkout(key)
                try:
                    acquired = await self._wait_for(lock)
                except BaseException:
                    self._checkin(key)
                    raise
                if not acquired:
                    self._checkin(key)
                    logger.warning(f"⏳ 等待锁超时: {key}")
                    raise BusyError(_describe(key))
                held.append((key, lock))
            yield
        finally:
            for key, lock in reversed(held):
                lock.release()
                self._checkin(key)

    def acquire_locations(self, location_ids):
        """库位锁，去重后按 ID 升序"""
        ids = sorted({i for i in location_ids if i is not None})
        return self.acquire(*(location_key(i) for i in ids))


def _abandon(lock: asyncio.Lock, waiter: asyncio.Future):
    if not waiter.cancel():
        _release_if_acquired(lock, waiter)
    else:
        waiter.add_done_callback(partial(_release_if_acquired, lock))


def _release_if_acquired(lock: asyncio.Lock, waiter: asyncio.Future):
    if not waiter.cancelled() and waiter.exception() is None:
        lock.release()


def _describe(key) -> str:
    return ":".join(str(part) for part in key)
