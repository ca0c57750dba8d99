"""库存查询 / 预警 Schema"""
from typing import Optional, Dict
from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal

from wms.models.enums import AlertLevel


class OnHandResponse(BaseModel):
    """在库数量（基本单位）"""
    material_id: int
    location_id: Optional[int] = Field(None, description="为空表示所有库位合计")
    quantity: Decimal
    by_location: Dict[int, Decimal] = Field(default_factory=dict, description="各库位在库数量")


class StockFlowResponse(BaseModel):
    """库存流水响应"""
    id: int
    material_id: int
    location_id: int
    document_kind: Optional[str] = None
    document_id: Optional[int] = None
    detail_id: Optional[int] = None
    line_no: Optional[int] = None
    flow_type: str
    type_display: str = ""
    quantity_change: Decimal
    frozen_change: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    batch_no: Optional[str] = None
    reason: Optional[str] = None
    operator_id: Optional[int] = None
    operated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AlertResponse(BaseModel):
    """库存预警"""
    material_id: int
    level: AlertLevel
    on_hand: Decimal
    min_stock: Decimal
    max_stock: Optional[Decimal] = None
