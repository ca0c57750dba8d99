"""单据API - 新建、提交执行、审核、取消"""

from typing import Any, Optional
from fastapi import APIRouter, Depends, Query

from wms.core.deps import get_inventory_service
from wms.models.enums import DocumentKind
from wms.schemas.document import DocumentResponse, DocumentResult, DocumentSubmit
from wms.services.inventory_service import InventoryService

router = APIRouter()


@router.post("/{kind}", response_model=DocumentResponse, status_code=201)
async def create_document(
    *,
    service: InventoryService = Depends(get_inventory_service),
    kind: DocumentKind,
    document_in: DocumentSubmit,
    operator_id: Optional[int] = Query(None, description="操作人ID")) -> Any:
    """新建草稿单据（不影响库存）"""
    return await service.create_document(kind, document_in.header, document_in.lines, operator_id)


@router.post("/{kind}/submit", response_model=DocumentResult)
async def submit_document(
    *,
    service: InventoryService = Depends(get_inventory_service),
    kind: DocumentKind,
    document_in: DocumentSubmit,
    operator_id: Optional[int] = Query(None, description="操作人ID")) -> Any:
    """
    提交单据并执行库存变动

    - header.document_id 为空：新建单据并一次执行完毕
    - header.document_id 有值：执行已审核单据，lines 为空表示执行全部剩余数量
    """
    result = await service.submit_document(kind, document_in.header, document_in.lines, operator_id)
    result.raise_for_errors()
    return result


@router.get("/{kind}/{document_id}", response_model=DocumentResponse)
async def get_document(
    *,
    service: InventoryService = Depends(get_inventory_service),
    kind: DocumentKind,
    document_id: int) -> Any:
    """获取单据详情"""
    return await service.get_document(kind, document_id)


@router.post("/{kind}/{document_id}/approve", response_model=DocumentResponse)
async def approve_document(
    *,
    service: InventoryService = Depends(get_inventory_service),
    kind: DocumentKind,
    document_id: int,
    operator_id: Optional[int] = Query(None, description="操作人ID")) -> Any:
    """审核单据（草稿 → 已审核）"""
    return await service.approve(kind, document_id, operator_id)


@router.post("/{kind}/{document_id}/cancel", response_model=DocumentResponse)
async def cancel_document(
    *,
    service: InventoryService = Depends(get_inventory_service),
    kind: DocumentKind,
    document_id: int,
    operator_id: Optional[int] = Query(None, description="操作人ID")) -> Any:
    """取消单据（已执行的库存变动不回退）"""
    return await service.cancel(kind, document_id, operator_id)
