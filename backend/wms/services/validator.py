"""
单据校验

在任何写入之前检查整张单据，遇到第一个错误即抛出（带明细行号）：
1. 表头引用的仓库/供应商/客户存在且启用
2. 每行的物料、单位、库位启用；库位的货架、库区、仓库也必须启用，且属于表头仓库
3. 行数量 > 0
4. 累计执行数量不超过订购数量
5. 库存预演（出库/调出/盘亏/冻结后可用数量不为负，入库不超容量）

第 5 步放在最后，预演需要已确认合法的数量和库位。
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Optional

from wms.core.exceptions import EmptyDocumentError, RecordNotFoundError, ValidationError
from wms.db.record_store import RecordStore
from wms.models.enums import AdjustmentType, DocumentKind
from wms.services.document_types import build_deltas, get_document_type
from wms.services.quantity_store import QuantityStore, StockDelta
from wms.services.unit_resolver import UnitConversionResolver, fits_quantity_scale, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class LineItem:
    """待校验/执行的一行

    ordered / fulfilled / quantity 均为明细单位；base_quantity 为本次执行数量换算后的基本单位数量。
    """
    line_no: int
    material_id: Optional[int]
    unit_id: Optional[int] = None
    ordered: Decimal = ZERO
    fulfilled: Decimal = ZERO
    quantity: Decimal = ZERO
    unit_price: Optional[Decimal] = None
    location_id: Optional[int] = None
    from_location_id: Optional[int] = None
    to_location_id: Optional[int] = None
    batch_no: Optional[str] = None
    detail_id: Optional[int] = None
    base_quantity: Decimal = ZERO

    @property
    def location_ids(self) -> List[int]:
        return [i for i in (self.location_id, self.from_location_id, self.to_location_id) if i is not None]


class DocumentValidator:
    """单据校验器（不产生写入）"""

    def __init__(self, store: RecordStore, resolver: Optional[UnitConversionResolver] = None,
                 quantities: Optional[QuantityStore] = None):
        self.store = store
        self.resolver = resolver or UnitConversionResolver(store)
        self.quantities = quantities or QuantityStore(store)
        self._locations: Dict[int, object] = {}

    async def validate(self, kind, header, lines: List[LineItem], *, execute: bool = True) -> List[StockDelta]:
        """校验整张单据

        execute=False 只校验单据本身（保存草稿）；execute=True 还校验本次执行数量并预演库存，
        返回本次执行要提交的库存变动。
        """
        kind = DocumentKind(kind)
        doc_type = get_document_type(kind)
        if not lines:
            raise EmptyDocumentError(kind.value)

        adjustment_type = await self._check_header(kind, header)

        for item in lines:
            await self._check_line(kind, doc_type, header, item, execute)

        for item in lines:
            self._check_quantity(item, execute)

        if not execute:
            return []

        deltas: List[StockDelta] = []
        for item in lines:
            item.base_quantity = await self.resolver.to_base(
                item.material_id, item.unit_id, item.quantity, line_no=item.line_no
            )
            if not fits_quantity_scale(item.base_quantity):
                raise ValidationError(
                    f"换算后的基本单位数量 {item.base_quantity} 超出 4 位小数，无法精确记账",
                    line_no=item.line_no, field="quantity",
                )
            deltas.extend(build_deltas(kind, item, adjustment_type))

        await self.quantities.check(deltas)
        return deltas

    # ===== 表头 =====

    async def _check_header(self, kind: DocumentKind, header) -> Optional[AdjustmentType]:
        doc_type = get_document_type(kind)
        for field_name, entity_type in doc_type.references:
            value = getattr(header, field_name, None)
            if value is None:
                # 采购/销售的仓库可以在执行时由库位决定
                if field_name == "warehouse_id" and kind in (DocumentKind.PURCHASE, DocumentKind.SALES):
                    continue
                raise ValidationError(f"{kind.display}缺少 {field_name}", field=field_name)
            await self._ensure_active(entity_type, value, field_name)

        if kind == DocumentKind.ADJUSTMENT:
            adjustment_type = getattr(header, "adjustment_type", None)
            if adjustment_type is None:
                raise ValidationError("库存调整单缺少调整类型", field="adjustment_type")
            return AdjustmentType(adjustment_type)
        return None

    async def _ensure_active(self, entity_type: str, record_id: int, field_name: str, line_no=None):
        try:
            record = await self.store.load(entity_type, record_id)
        except RecordNotFoundError:
            raise ValidationError(
                f"{entity_type} {record_id} 不存在", line_no=line_no, field=field_name
            ) from None
        if not record.is_active:
            raise ValidationError(f"{entity_type} {record_id} 已停用", line_no=line_no, field=field_name)
        return record

    # ===== 明细 =====

    async def _check_line(self, kind: DocumentKind, doc_type, header, item: LineItem, execute: bool):
        line_no = item.line_no
        if item.material_id is None:
            raise ValidationError("缺少物料", line_no=line_no, field="material_id")

        # 物料、单位启用且单位属于该物料
        unit = await self.resolver.unit(item.material_id, item.unit_id, line_no=line_no)
        item.unit_id = unit.id

        if doc_type.priced:
            if item.unit_price is None:
                item.unit_price = ZERO
            if to_decimal(item.unit_price) < 0:
                raise ValidationError("单价不能为负数", line_no=line_no, field="unit_price")

        if kind == DocumentKind.TRANSFER:
            if item.from_location_id is None or item.to_location_id is None:
                raise ValidationError("调拨明细必须指定调出和调入库位", line_no=line_no, field="location_id")
            if item.from_location_id == item.to_location_id:
                raise ValidationError("调出库位和调入库位不能相同", line_no=line_no, field="to_location_id")
            await self._check_location(item.from_location_id, header.from_warehouse_id, line_no)
            await self._check_location(item.to_location_id, header.to_warehouse_id, line_no)
            return

        if item.location_id is None:
            # 采购/销售草稿不需要库位，执行收发货时才指定
            if not doc_type.line_location and not execute:
                return
            raise ValidationError("明细缺少库位", line_no=line_no, field="location_id")
        await self._check_location(item.location_id, getattr(header, "warehouse_id", None), line_no)

    async def _check_location(self, location_id: int, warehouse_id: Optional[int], line_no: int):
        """库位及其货架、库区、仓库都启用，且属于指定仓库"""
        if location_id not in self._locations:
            location = await self._ensure_active("storage_location", location_id, "location_id", line_no)
            rack = await self._ensure_active("storage_rack", location.rack_id, "location_id", line_no)
            zone = await self._ensure_active("storage_zone", rack.zone_id, "location_id", line_no)
            await self._ensure_active("warehouse", zone.warehouse_id, "location_id", line_no)
            self._locations[location_id] = zone.warehouse_id

        if warehouse_id is not None and self._locations[location_id] != warehouse_id:
            raise ValidationError(
                f"库位 {location_id} 不属于仓库 {warehouse_id}", line_no=line_no, field="location_id"
            )

    @staticmethod
    def _check_quantity(item: LineItem, execute: bool):
        line_no = item.line_no
        if item.ordered is None or to_decimal(item.ordered) <= 0:
            raise ValidationError("数量必须大于 0", line_no=line_no, field="quantity")
        if not fits_quantity_scale(item.ordered):
            raise ValidationError("数量最多 4 位小数", line_no=line_no, field="quantity")
        if not execute:
            return
        if item.quantity is None or to_decimal(item.quantity) <= 0:
            raise ValidationError("本次执行数量必须大于 0", line_no=line_no, field="quantity")
        if not fits_quantity_scale(item.quantity):
            raise ValidationError("本次执行数量最多 4 位小数", line_no=line_no, field="quantity")
        if to_decimal(item.fulfilled) + to_decimal(item.quantity) > to_decimal(item.ordered):
            raise ValidationError(
                f"累计执行数量 {to_decimal(item.fulfilled) + to_decimal(item.quantity)} "
                f"超过订购数量 {to_decimal(item.ordered)}",
                line_no=line_no, field="quantity",
            )
