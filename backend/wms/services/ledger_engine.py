"""
库存台账引擎

在一个记录存储事务内完成一张单据的：校验 → 换算基本单位 → 生成库存变动 →
整组提交库存 → 更新明细已执行数量 → 推进单据状态。
任何一步失败都由调用方回滚整个事务，不会留下部分结果。
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from wms.core.exceptions import EmptyDocumentError, ValidationError
from wms.db.record_store import RecordStore, RecordWrite
from wms.models.enums import DocumentKind, DocumentStatus
from wms.services.document_types import DocumentType, get_document_type
from wms.services.quantity_store import QuantityStore, StockDelta
from wms.services.status_machine import OrderStatusMachine, Progress
from wms.services.unit_resolver import UnitConversionResolver, to_decimal
from wms.services.validator import DocumentValidator, LineItem

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

# 表头输入字段 → 各类单据表头列
_HEADER_FIELDS = {
    DocumentKind.PURCHASE: {"supplier_id": "supplier_id", "warehouse_id": "warehouse_id",
                            "document_date": "order_date", "expected_date": "expected_date"},
    DocumentKind.SALES: {"customer_id": "customer_id", "warehouse_id": "warehouse_id",
                         "document_date": "order_date", "expected_date": "expected_date"},
    DocumentKind.STOCK_IN: {"warehouse_id": "warehouse_id", "source_type": "source_type",
                            "source_no": "source_no", "document_date": "in_date"},
    DocumentKind.STOCK_OUT: {"warehouse_id": "warehouse_id", "source_type": "source_type",
                             "source_no": "source_no", "document_date": "out_date"},
    DocumentKind.TRANSFER: {"from_warehouse_id": "from_warehouse_id", "to_warehouse_id": "to_warehouse_id",
                            "document_date": "transfer_date"},
    DocumentKind.ADJUSTMENT: {"warehouse_id": "warehouse_id", "adjustment_type": "adjustment_type",
                              "document_date": "adjustment_date"},
}

# 明细输入字段中各类单据额外保存的列
_DETAIL_FIELDS = {
    DocumentKind.PURCHASE: ("unit_price",),
    DocumentKind.SALES: ("unit_price",),
    DocumentKind.STOCK_IN: ("location_id", "production_date", "expiry_date"),
    DocumentKind.STOCK_OUT: ("location_id",),
    DocumentKind.TRANSFER: ("from_location_id", "to_location_id"),
    DocumentKind.ADJUSTMENT: ("location_id",),
}


class LedgerEngine:
    """单据执行引擎，所有读写都经过同一个 RecordStore"""

    def __init__(self, store: RecordStore, operator_id: Optional[int] = None):
        self.store = store
        self.operator_id = operator_id
        self.resolver = UnitConversionResolver(store)
        self.quantities = QuantityStore(store)
        self.validator = DocumentValidator(store, self.resolver, self.quantities)

    # ===== 单号 =====

    async def generate_order_no(self, kind) -> str:
        """生成单号：前缀 + 年月日 + 3 位序号，如 XS20241202001"""
        doc_type = get_document_type(kind)
        date_str = datetime.now().strftime("%Y%m%d")
        prefix = f"{doc_type.prefix}{date_str}"
        max_no = await self.store.max_value(doc_type.header_type, "order_no", prefix)

        if max_no:
            try:
                seq = int(max_no[-3:]) + 1
            except ValueError:
                seq = 1
        else:
            seq = 1

        return f"{prefix}{seq:03d}"

    # ===== 读取 =====

    async def load(self, kind, document_id: int):
        doc_type = get_document_type(kind)
        header = await self.store.load(doc_type.header_type, document_id)
        details = await self.store.load_children(doc_type.header_type, document_id)
        return header, details

    # ===== 新建 =====

    def _items_from_lines(self, kind: DocumentKind, header, lines, execute: bool) -> List[LineItem]:
        default_location = getattr(header, "location_id", None)
        items = []
        for index, line in enumerate(lines, start=1):
            location_id = line.location_id
            if location_id is None and kind in (DocumentKind.PURCHASE, DocumentKind.SALES):
                location_id = default_location
            items.append(LineItem(
                line_no=index,
                material_id=line.material_id,
                unit_id=line.unit_id,
                ordered=line.quantity,
                quantity=line.quantity if execute else ZERO,
                unit_price=line.unit_price,
                location_id=location_id,
                from_location_id=line.from_location_id,
                to_location_id=line.to_location_id,
                batch_no=line.batch_no,
            ))
        return items

    async def _insert(self, kind: DocumentKind, header, lines, items: List[LineItem]):
        """写入表头和明细（草稿）"""
        doc_type = get_document_type(kind)

        header_fields = {
            column: getattr(header, name, None)
            for name, column in _HEADER_FIELDS[kind].items()
        }
        header_fields.update(
            order_no=await self.generate_order_no(kind),
            status=DocumentStatus.DRAFT,
            remark=header.remark,
            create_user_id=header.operator_id or self.operator_id,
        )
        if doc_type.total_field == "total_amount":
            header_fields["total_amount"] = sum(
                (_amount(item.ordered, item.unit_price) for item in items), ZERO
            )
        elif doc_type.total_field == "total_quantity":
            header_fields["total_quantity"] = sum((to_decimal(item.ordered) for item in items), ZERO)

        record, = await self.store.save_atomic([RecordWrite(doc_type.header_type, None, header_fields)])

        writes = []
        for item, line in zip(items, lines):
            fields = {
                "order_id": record.id,
                "line_no": item.line_no,
                "material_id": item.material_id,
                "unit_id": item.unit_id,
                "quantity": to_decimal(item.ordered),
                "batch_no": line.batch_no,
                "remark": line.remark,
            }
            for name in _DETAIL_FIELDS[kind]:
                fields[name] = getattr(line, name)
            if doc_type.priced:
                fields["unit_price"] = to_decimal(item.unit_price)
                fields["amount"] = _amount(item.ordered, item.unit_price)
            writes.append(RecordWrite(doc_type.detail_type, None, fields))
        details = await self.store.save_atomic(writes)

        for item, detail in zip(items, details):
            item.detail_id = detail.id

        logger.debug(f"单据已写入: {record.order_no}, 明细 {len(details)} 行")
        return record, details

    async def create(self, kind, header, lines):
        """新建草稿单据"""
        kind = DocumentKind(kind)
        items = self._items_from_lines(kind, header, lines, execute=False)
        await self.validator.validate(kind, header, items, execute=False)
        return await self._insert(kind, header, lines, items)

    async def submit_new(self, kind, header, lines) -> Tuple[object, List[StockDelta]]:
        """新建单据并一次执行完毕：草稿 → 已审核 → 已完成"""
        kind = DocumentKind(kind)
        items = self._items_from_lines(kind, header, lines, execute=True)
        deltas = await self.validator.validate(kind, header, items, execute=True)

        record, details = await self._insert(kind, header, lines, items)
        record = await self._approve_record(kind, record)

        detail_ids = {item.line_no: item.detail_id for item in items}
        deltas = [replace(delta, detail_id=detail_ids[delta.line_no]) for delta in deltas]
        return await self._execute(kind, record, details, items, deltas)

    # ===== 执行已有单据 =====

    def _items_for_fulfilment(self, doc_type: DocumentType, header, details, lines,
                              default_location: Optional[int]) -> List[LineItem]:
        by_id = {detail.id: detail for detail in details}

        if not lines:
            requests = [(detail, None, None, None) for detail in details if doc_type.remaining(detail) > 0]
        else:
            requests = []
            seen = set()
            for index, line in enumerate(lines, start=1):
                detail = by_id.get(line.detail_id)
                if detail is None:
                    raise ValidationError(
                        f"明细 {line.detail_id} 不属于单据 {header.order_no}", line_no=index, field="detail_id"
                    )
                if detail.id in seen:
                    raise ValidationError(f"明细 {detail.id} 重复", line_no=detail.line_no, field="detail_id")
                seen.add(detail.id)
                requests.append((detail, line.quantity, line.location_id, line.batch_no))

        items = []
        for detail, quantity, location_id, batch_no in requests:
            if not doc_type.line_location:
                location_id = location_id or default_location
            else:
                location_id = getattr(detail, "location_id", None)
            items.append(LineItem(
                line_no=detail.line_no,
                material_id=detail.material_id,
                unit_id=detail.unit_id,
                ordered=to_decimal(detail.quantity),
                fulfilled=to_decimal(doc_type.counter(detail)),
                quantity=doc_type.remaining(detail) if quantity is None else to_decimal(quantity),
                unit_price=getattr(detail, "unit_price", None),
                location_id=location_id,
                from_location_id=getattr(detail, "from_location_id", None),
                to_location_id=getattr(detail, "to_location_id", None),
                batch_no=batch_no or detail.batch_no,
                detail_id=detail.id,
            ))
        return items

    async def fulfil(self, kind, document_id: int, lines=None,
                     default_location: Optional[int] = None) -> Tuple[object, List[StockDelta]]:
        """执行已审核单据（可部分执行）"""
        kind = DocumentKind(kind)
        doc_type = get_document_type(kind)
        machine = OrderStatusMachine(kind.value)

        header, details = await self.load(kind, document_id)
        if not details:
            raise EmptyDocumentError(kind.value)

        # 已完成的单据先做数量校验，超量执行报校验错误而不是终态错误
        if DocumentStatus(header.status) != DocumentStatus.COMPLETED:
            machine.ensure_can_apply(header)

        items = self._items_for_fulfilment(doc_type, header, details, lines or [], default_location)
        if not items:
            machine.ensure_can_apply(header)
            raise EmptyDocumentError(kind.value)

        deltas = await self.validator.validate(kind, header, items, execute=True)
        machine.ensure_can_apply(header)
        return await self._execute(kind, header, details, items, deltas)

    async def _execute(self, kind: DocumentKind, header, details, items: List[LineItem],
                       deltas: List[StockDelta]):
        doc_type = get_document_type(kind)
        machine = OrderStatusMachine(kind.value)

        applied = await self.quantities.apply(
            deltas,
            document_kind=kind.value,
            document_id=header.id,
            operator_id=self.operator_id,
            reason=f"{kind.display} {header.order_no}",
        )

        counters: Dict[int, Decimal] = {
            detail.id: to_decimal(doc_type.counter(detail)) for detail in details
        }
        writes = []
        for item in items:
            counters[item.detail_id] = to_decimal(item.fulfilled) + to_decimal(item.quantity)
            writes.append(RecordWrite(
                doc_type.detail_type, item.detail_id, {doc_type.counter_field: counters[item.detail_id]}
            ))

        progress = _progress(details, counters)
        fields = machine.apply(header, progress)
        fields["update_user_id"] = self.operator_id
        writes.append(RecordWrite(doc_type.header_type, header.id, fields))
        await self.store.save_atomic(writes)

        logger.debug(f"单据执行: {header.order_no} → {DocumentStatus(header.status).value}")
        return header, applied

    # ===== 状态变更 =====

    async def _approve_record(self, kind: DocumentKind, header):
        doc_type = get_document_type(kind)
        fields = OrderStatusMachine(kind.value).approve(header)
        fields["update_user_id"] = self.operator_id
        record, = await self.store.save_atomic([RecordWrite(doc_type.header_type, header.id, fields)])
        return record

    async def approve(self, kind, document_id: int):
        kind = DocumentKind(kind)
        header, details = await self.load(kind, document_id)
        if not details:
            raise EmptyDocumentError(kind.value)
        return await self._approve_record(kind, header)

    async def cancel(self, kind, document_id: int):
        """取消单据；已执行的库存变动不回退，只关闭剩余部分"""
        kind = DocumentKind(kind)
        doc_type = get_document_type(kind)
        header = await self.store.load(doc_type.header_type, document_id)
        fields = OrderStatusMachine(kind.value).cancel(header)
        fields["update_user_id"] = self.operator_id
        record, = await self.store.save_atomic([RecordWrite(doc_type.header_type, header.id, fields)])
        return record


def _amount(quantity, unit_price) -> Decimal:
    return (to_decimal(quantity) * to_decimal(unit_price or 0)).quantize(CENT)


def _progress(details, counters: Dict[int, Decimal]) -> Progress:
    if all(counters[d.id] >= to_decimal(d.quantity) for d in details):
        return Progress.COMPLETE
    if any(counters[d.id] > 0 for d in details):
        return Progress.PARTIAL
    return Progress.NONE
