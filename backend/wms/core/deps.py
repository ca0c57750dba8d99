"""依赖注入 - 单机版（无认证）"""
from typing import Optional

from wms.services.inventory_service import InventoryService

_service: Optional[InventoryService] = None


def get_inventory_service() -> InventoryService:
    """
    获取库存服务依赖（进程内单例，锁在各请求间共享）
    """
    global _service
    if _service is None:
        _service = InventoryService()
    return _service
