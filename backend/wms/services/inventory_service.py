"""
库存服务 - 对外的统一入口

每个操作使用独立的数据库会话和一个事务；加锁顺序固定为：单据锁 → 库位锁（ID 升序），
锁一直持有到事务提交之后。乐观锁冲突（跨进程并发）统一转为可重试的 BusyError。
"""

import logging
from contextlib import asynccontextmanager
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from wms.core.config import settings
from wms.core.exceptions import BusyError, ConflictError, InventoryError, ValidationError
from wms.db.record_store import RecordStore
from wms.db.session import SessionLocal
from wms.models.enums import AlertLevel, DocumentKind, DocumentStatus, status_display
from wms.schemas.document import (
    AppliedDelta, DocumentDetailResponse, DocumentHeader, DocumentLine, DocumentResponse, DocumentResult
)
from wms.schemas.stock import AlertResponse, OnHandResponse
from wms.services.document_types import get_document_type
from wms.services.ledger_engine import LedgerEngine
from wms.services.locks import LockManager, document_key
from wms.services.quantity_store import QuantityStore
from wms.services.stock_alert import StockAlertEvaluator
from wms.services.unit_resolver import to_decimal

logger = logging.getLogger(__name__)


def build_document_response(kind, header, details) -> DocumentResponse:
    """构建单据响应"""
    kind = DocumentKind(kind)
    doc_type = get_document_type(kind)
    status = DocumentStatus(header.status)

    detail_responses = []
    for detail in details:
        fulfilled = to_decimal(doc_type.counter(detail))
        detail_responses.append(DocumentDetailResponse(
            id=detail.id,
            line_no=detail.line_no,
            material_id=detail.material_id,
            unit_id=detail.unit_id,
            quantity=detail.quantity,
            fulfilled_quantity=fulfilled,
            remaining_quantity=to_decimal(detail.quantity) - fulfilled,
            unit_price=getattr(detail, "unit_price", None),
            amount=getattr(detail, "amount", None),
            location_id=getattr(detail, "location_id", None),
            from_location_id=getattr(detail, "from_location_id", None),
            to_location_id=getattr(detail, "to_location_id", None),
            batch_no=detail.batch_no,
            remark=detail.remark,
        ))

    adjustment_type = getattr(header, "adjustment_type", None)
    return DocumentResponse(
        id=header.id,
        kind=kind.value,
        kind_display=kind.display,
        order_no=header.order_no,
        status=status,
        status_display=status_display(kind, status),
        supplier_id=getattr(header, "supplier_id", None),
        customer_id=getattr(header, "customer_id", None),
        warehouse_id=getattr(header, "warehouse_id", None),
        from_warehouse_id=getattr(header, "from_warehouse_id", None),
        to_warehouse_id=getattr(header, "to_warehouse_id", None),
        adjustment_type=adjustment_type.value if adjustment_type is not None else None,
        total_amount=getattr(header, "total_amount", None),
        total_quantity=getattr(header, "total_quantity", None),
        remark=header.remark,
        created_at=header.created_at,
        approved_at=header.approved_at,
        completed_at=header.completed_at,
        cancelled_at=header.cancelled_at,
        details=detail_responses,
    )


def _invalid_input(error: PydanticValidationError, line_no: Optional[int] = None) -> ValidationError:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or None
    return ValidationError(f"{field}: {first['msg']}", line_no=line_no, field=field)


def _as_header(header) -> DocumentHeader:
    if header is None:
        return DocumentHeader()
    if isinstance(header, dict):
        try:
            return DocumentHeader(**header)
        except PydanticValidationError as e:
            raise _invalid_input(e) from e
    return header


def _as_lines(lines) -> List[DocumentLine]:
    parsed = []
    for index, line in enumerate(lines or [], start=1):
        if isinstance(line, dict):
            try:
                line = DocumentLine(**line)
            except PydanticValidationError as e:
                raise _invalid_input(e, line_no=index) from e
        parsed.append(line)
    return parsed


@asynccontextmanager
async def _conflict_as_busy(resource: str):
    try:
        yield
    except ConflictError as e:
        logger.warning(f"⚠️ 并发写入冲突，按繁忙处理: {resource} ({e.detail})")
        raise BusyError(resource) from e


class InventoryService:
    """库存台账服务"""

    def __init__(self, session_factory=None, locks: Optional[LockManager] = None):
        self.session_factory = session_factory or SessionLocal
        self.locks = locks if locks is not None else LockManager(timeout=settings.LOCK_TIMEOUT_SECONDS)

    # ===== 单据提交 =====

    async def submit_document(self, kind, header=None, lines=None,
                              operator_id: Optional[int] = None) -> DocumentResult:
        """提交单据并执行库存变动

        header.document_id 有值时执行已审核单据，否则新建并一次执行完毕。
        所有库存台账错误都放在返回值的 errors 中，不抛出。
        """
        kind = DocumentKind(kind)
        document_id = None
        try:
            header = _as_header(header)
            lines = _as_lines(lines)
            document_id = header.document_id
            if header.document_id is not None:
                return await self._fulfil(kind, header, lines, operator_id)
            return await self._submit_new(kind, header, lines, operator_id)
        except InventoryError as e:
            logger.warning(f"❌ {kind.display}提交被拒绝: [{e.code}] {e.message} (行 {e.line_no})")
            return DocumentResult.failed(kind.value, e, document_id)

    async def _fulfil(self, kind: DocumentKind, header: DocumentHeader, lines, operator_id) -> DocumentResult:
        document_id = header.document_id
        async with self.locks.acquire(document_key(kind, document_id)):
            async with self.session_factory() as session:
                store = RecordStore(session)
                engine = LedgerEngine(store, operator_id or header.operator_id)

                _, details = await engine.load(kind, document_id)
                location_ids = {header.location_id}
                for detail in details:
                    for name in ("location_id", "from_location_id", "to_location_id"):
                        location_ids.add(getattr(detail, name, None))
                for line in lines:
                    location_ids.add(line.location_id)

                async with self.locks.acquire_locations(location_ids):
                    async with _conflict_as_busy(f"{kind.value}:{document_id}"):
                        async with store.transaction():
                            record, applied = await engine.fulfil(
                                kind, document_id, lines, default_location=header.location_id
                            )

        return self._success(kind, record, applied)

    async def _submit_new(self, kind: DocumentKind, header: DocumentHeader, lines, operator_id) -> DocumentResult:
        location_ids = {header.location_id}
        for line in lines:
            location_ids.update((line.location_id, line.from_location_id, line.to_location_id))

        # 新单据按类型串行分配单号
        async with self.locks.acquire(document_key(kind, "new")):
            async with self.locks.acquire_locations(location_ids):
                async with self.session_factory() as session:
                    store = RecordStore(session)
                    engine = LedgerEngine(store, operator_id or header.operator_id)
                    async with _conflict_as_busy(f"{kind.value}:new"):
                        async with store.transaction():
                            record, applied = await engine.submit_new(kind, header, lines)

        return self._success(kind, record, applied)

    def _success(self, kind: DocumentKind, record, applied) -> DocumentResult:
        status = DocumentStatus(record.status)
        logger.info(
            f"✅ {kind.display} {record.order_no} 已执行 {len(applied)} 条库存变动，"
            f"状态: {status_display(kind, status)}"
        )
        return DocumentResult(
            ok=True,
            kind=kind.value,
            document_id=record.id,
            order_no=record.order_no,
            status=status,
            status_display=status_display(kind, status),
            applied_deltas=[
                AppliedDelta(
                    material_id=d.material_id,
                    location_id=d.location_id,
                    quantity_change=d.quantity,
                    frozen_change=d.frozen,
                    flow_type=d.flow_type.value,
                    line_no=d.line_no,
                    detail_id=d.detail_id,
                )
                for d in applied
            ],
        )

    # ===== 单据维护 =====

    async def create_document(self, kind, header=None, lines=None,
                              operator_id: Optional[int] = None) -> DocumentResponse:
        """新建草稿单据（不影响库存）"""
        kind = DocumentKind(kind)
        header = _as_header(header)
        lines = _as_lines(lines)
        async with self.locks.acquire(document_key(kind, "new")):
            async with self.session_factory() as session:
                store = RecordStore(session)
                engine = LedgerEngine(store, operator_id or header.operator_id)
                async with _conflict_as_busy(f"{kind.value}:new"):
                    async with store.transaction():
                        record, details = await engine.create(kind, header, lines)
        logger.info(f"📝 新建{kind.display}: {record.order_no}")
        return build_document_response(kind, record, details)

    async def get_document(self, kind, document_id: int) -> DocumentResponse:
        kind = DocumentKind(kind)
        async with self.session_factory() as session:
            engine = LedgerEngine(RecordStore(session))
            header, details = await engine.load(kind, document_id)
            return build_document_response(kind, header, details)

    async def approve(self, kind, document_id: int, operator_id: Optional[int] = None) -> DocumentResponse:
        return await self._transition(kind, document_id, "approve", operator_id)

    async def cancel(self, kind, document_id: int, operator_id: Optional[int] = None) -> DocumentResponse:
        return await self._transition(kind, document_id, "cancel", operator_id)

    async def _transition(self, kind, document_id: int, action: str, operator_id) -> DocumentResponse:
        kind = DocumentKind(kind)
        async with self.locks.acquire(document_key(kind, document_id)):
            async with self.session_factory() as session:
                store = RecordStore(session)
                engine = LedgerEngine(store, operator_id)
                async with _conflict_as_busy(f"{kind.value}:{document_id}"):
                    async with store.transaction():
                        if action == "approve":
                            await engine.approve(kind, document_id)
                        else:
                            await engine.cancel(kind, document_id)
                        header, details = await engine.load(kind, document_id)
        status = DocumentStatus(header.status)
        logger.info(f"📋 {kind.display} {header.order_no} → {status_display(kind, status)}")
        return build_document_response(kind, header, details)

    # ===== 库存查询 =====

    async def query_on_hand(self, material_id: int, location_id: Optional[int] = None) -> Decimal:
        """在库数量（基本单位）；不指定库位时为所有库位合计"""
        async with self.session_factory() as session:
            quantities = QuantityStore(RecordStore(session))
            if location_id is not None:
                return await quantities.get(material_id, location_id)
            return await quantities.total_on_hand(material_id)

    async def on_hand_detail(self, material_id: int, location_id: Optional[int] = None) -> OnHandResponse:
        async with self.session_factory() as session:
            quantities = QuantityStore(RecordStore(session))
            by_location = await quantities.on_hand_by_location(material_id)
        if location_id is not None:
            by_location = {location_id: by_location.get(location_id, Decimal("0"))}
        return OnHandResponse(
            material_id=material_id,
            location_id=location_id,
            quantity=sum(by_location.values(), Decimal("0")),
            by_location=by_location,
        )

    async def list_flows(self, **criteria) -> list:
        """库存流水（按时间顺序）"""
        criteria = {k: v for k, v in criteria.items() if v is not None}
        if "document_kind" in criteria:
            criteria["document_kind"] = DocumentKind(criteria["document_kind"]).value
        async with self.session_factory() as session:
            return await RecordStore(session).find("stock_flow", **criteria)

    # ===== 预警 =====

    async def evaluate_alerts(self, material_id: int) -> AlertLevel:
        async with self.session_factory() as session:
            return await StockAlertEvaluator(RecordStore(session)).evaluate(material_id)

    async def alert_detail(self, material_id: int) -> AlertResponse:
        async with self.session_factory() as session:
            level, on_hand, material = await StockAlertEvaluator(RecordStore(session)).evaluate_detail(material_id)
        return AlertResponse(
            material_id=material_id,
            level=level,
            on_hand=on_hand,
            min_stock=material.min_stock,
            max_stock=material.max_stock,
        )

    async def scan_alerts(self) -> Dict[int, AlertLevel]:
        async with self.session_factory() as session:
            return await StockAlertEvaluator(RecordStore(session)).evaluate_all()
