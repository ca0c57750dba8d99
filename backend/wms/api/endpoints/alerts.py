"""库存预警API"""

from typing import Any, Dict
from fastapi import APIRouter, Depends

from wms.core.deps import get_inventory_service
from wms.models.enums import AlertLevel
from wms.schemas.stock import AlertResponse
from wms.services.inventory_service import InventoryService
from wms.services.scheduler import get_scheduler_status

router = APIRouter()


@router.get("/", response_model=Dict[int, AlertLevel])
async def scan_alerts(
    *,
    service: InventoryService = Depends(get_inventory_service)) -> Any:
    """所有启用物料的预警级别"""
    return await service.scan_alerts()


@router.get("/scheduler")
async def scheduler_status() -> Any:
    """预警定时扫描状态"""
    return get_scheduler_status()


@router.get("/{material_id}", response_model=AlertResponse)
async def get_alert(
    *,
    service: InventoryService = Depends(get_inventory_service),
    material_id: int) -> Any:
    """单个物料的预警级别"""
    return await service.alert_detail(material_id)
