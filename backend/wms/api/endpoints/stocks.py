"""库存查询API"""

from typing import Any, List, Optional
from fastapi import APIRouter, Depends, Query

from wms.core.deps import get_inventory_service
from wms.models.enums import DocumentKind
from wms.schemas.stock import OnHandResponse, StockFlowResponse
from wms.services.inventory_service import InventoryService

router = APIRouter()


@router.get("/on-hand", response_model=OnHandResponse)
async def get_on_hand(
    *,
    service: InventoryService = Depends(get_inventory_service),
    material_id: int = Query(..., description="物料ID"),
    location_id: Optional[int] = Query(None, description="库位ID，为空表示所有库位合计")) -> Any:
    """查询在库数量（基本单位）"""
    return await service.on_hand_detail(material_id, location_id)


@router.get("/flows", response_model=List[StockFlowResponse])
async def list_stock_flows(
    *,
    service: InventoryService = Depends(get_inventory_service),
    material_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    document_kind: Optional[DocumentKind] = Query(None),
    document_id: Optional[int] = Query(None)) -> Any:
    """查询库存流水"""
    return await service.list_flows(
        material_id=material_id,
        location_id=location_id,
        document_kind=document_kind,
        document_id=document_id,
    )
