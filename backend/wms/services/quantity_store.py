"""
库位库存 - 唯一的共享可变数据

所有数量均为基本单位。一张单据的全部变动作为一组提交：
先按 (物料, 库位) 汇总净变动做检查，全部通过才写入，任何一项不通过整组拒绝。

检查规则（按净变动）：
- 在库数量 >= 0，冻结数量 >= 0，可用数量 = 在库 - 冻结 >= 0
- 库位净增加时，库位总量不超过 max_quantity
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from wms.core.exceptions import CapacityExceededError, InsufficientStockError
from wms.db.record_store import RecordStore, RecordWrite
from wms.models.enums import FlowType
from wms.services.unit_resolver import to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class StockDelta:
    """一条库存变动（基本单位）

    quantity 为在库数量变动，frozen 为冻结数量变动，冻结/解冻只改 frozen。
    """
    material_id: int
    location_id: int
    quantity: Decimal = ZERO
    frozen: Decimal = ZERO
    flow_type: FlowType = FlowType.IN
    line_no: Optional[int] = None
    detail_id: Optional[int] = None
    batch_no: Optional[str] = None


@dataclass
class _Projection:
    """某个 (物料, 库位) 变动前后的数量"""
    row_id: Optional[int]
    quantity: Decimal
    frozen: Decimal
    quantity_change: Decimal = ZERO
    frozen_change: Decimal = ZERO
    # 第一条导致减少的明细行号，用于报错定位
    line_no: Optional[int] = None

    @property
    def quantity_after(self) -> Decimal:
        return self.quantity + self.quantity_change

    @property
    def frozen_after(self) -> Decimal:
        return self.frozen + self.frozen_change

    @property
    def available(self) -> Decimal:
        return self.quantity - self.frozen


class QuantityStore:
    """库位库存读写"""

    def __init__(self, store: RecordStore):
        self.store = store

    # ===== 查询 =====

    async def _row(self, material_id: int, location_id: int):
        rows = await self.store.find("location_stock", material_id=material_id, location_id=location_id)
        return rows[0] if rows else None

    async def get(self, material_id: int, location_id: int) -> Decimal:
        """在库数量，没有记录时为 0"""
        row = await self._row(material_id, location_id)
        return to_decimal(row.quantity) if row else ZERO

    async def get_frozen(self, material_id: int, location_id: int) -> Decimal:
        row = await self._row(material_id, location_id)
        return to_decimal(row.frozen_quantity) if row else ZERO

    async def get_available(self, material_id: int, location_id: int) -> Decimal:
        row = await self._row(material_id, location_id)
        if not row:
            return ZERO
        return to_decimal(row.quantity) - to_decimal(row.frozen_quantity)

    async def on_hand_by_location(self, material_id: int) -> Dict[int, Decimal]:
        """{库位ID: 在库数量}"""
        rows = await self.store.find("location_stock", material_id=material_id, order_by="location_id")
        return {row.location_id: to_decimal(row.quantity) for row in rows}

    async def total_on_hand(self, material_id: int) -> Decimal:
        """所有库位在库数量合计"""
        return sum((await self.on_hand_by_location(material_id)).values(), ZERO)

    async def location_total(self, location_id: int) -> Decimal:
        """库位上所有物料的在库数量合计"""
        rows = await self.store.find("location_stock", location_id=location_id)
        return sum((to_decimal(row.quantity) for row in rows), ZERO)

    # ===== 检查 / 执行 =====

    async def check(self, deltas: Iterable[StockDelta]) -> "Dict[Tuple[int, int], _Projection]":
        """只检查不写入；不通过时抛 InsufficientStockError / CapacityExceededError"""
        projections, _ = await self._project(list(deltas))
        return projections

    async def _project(self, deltas: List[StockDelta]):
        projections: "OrderedDict[Tuple[int, int], _Projection]" = OrderedDict()
        location_net: Dict[int, Decimal] = {}
        location_first_line: Dict[int, Optional[int]] = {}

        for delta in deltas:
            key = (delta.material_id, delta.location_id)
            if key not in projections:
                row = await self._row(*key)
                projections[key] = _Projection(
                    row_id=row.id if row else None,
                    quantity=to_decimal(row.quantity) if row else ZERO,
                    frozen=to_decimal(row.frozen_quantity) if row else ZERO,
                )
            projection = projections[key]
            quantity = to_decimal(delta.quantity)
            frozen = to_decimal(delta.frozen)
            projection.quantity_change += quantity
            projection.frozen_change += frozen
            if projection.line_no is None and (quantity < 0 or frozen != 0):
                projection.line_no = delta.line_no

            location_net[delta.location_id] = location_net.get(delta.location_id, ZERO) + quantity
            if quantity > 0 and location_first_line.get(delta.location_id) is None:
                location_first_line[delta.location_id] = delta.line_no

        # 数量检查，按 (物料, 库位) 排序保证报错稳定
        for (material_id, location_id), p in sorted(projections.items()):
            if p.quantity_after < 0 or p.quantity_after - p.frozen_after < 0:
                raise InsufficientStockError(
                    material_id, location_id,
                    requested=-p.quantity_change + max(p.frozen_change, ZERO),
                    available=p.available,
                    line_no=p.line_no,
                )
            if p.frozen_after < 0:
                raise InsufficientStockError(
                    material_id, location_id,
                    requested=-p.frozen_change,
                    available=p.frozen,
                    line_no=p.line_no,
                )

        # 容量检查：只在库位净增加时
        location_totals: Dict[int, Decimal] = {}
        for location_id in sorted(location_net):
            current = await self.location_total(location_id)
            projected = current + location_net[location_id]
            location_totals[location_id] = projected
            if location_net[location_id] <= 0:
                continue
            location = await self.store.load("storage_location", location_id)
            if location.max_quantity is not None and projected > to_decimal(location.max_quantity):
                raise CapacityExceededError(
                    location_id, to_decimal(location.max_quantity), projected,
                    line_no=location_first_line.get(location_id),
                )

        return projections, location_totals

    async def apply(
        self,
        deltas: Iterable[StockDelta],
        *,
        document_kind: Optional[str] = None,
        document_id: Optional[int] = None,
        operator_id: Optional[int] = None,
        reason: Optional[str] = None,
    ) -> List[StockDelta]:
        """整组执行变动，写库存行、流水，并重算库位当前数量

        检查不通过时不产生任何写入。
        """
        deltas = list(deltas)
        if not deltas:
            return []
        projections, location_totals = await self._project(deltas)

        writes: List[RecordWrite] = []
        for (material_id, location_id), p in projections.items():
            fields = {"quantity": p.quantity_after, "frozen_quantity": p.frozen_after}
            if p.row_id is None:
                fields.update(material_id=material_id, location_id=location_id)
            writes.append(RecordWrite("location_stock", p.row_id, fields))

        # 流水：同一 (物料, 库位) 多条变动时逐条累计前后数量
        running = {key: p.quantity for key, p in projections.items()}
        now = datetime.utcnow()
        for delta in deltas:
            key = (delta.material_id, delta.location_id)
            before = running[key]
            after = before + to_decimal(delta.quantity)
            running[key] = after
            writes.append(RecordWrite("stock_flow", None, {
                "material_id": delta.material_id,
                "location_id": delta.location_id,
                "document_kind": document_kind,
                "document_id": document_id,
                "detail_id": delta.detail_id,
                "line_no": delta.line_no,
                "flow_type": FlowType(delta.flow_type).value,
                "quantity_change": to_decimal(delta.quantity),
                "frozen_change": to_decimal(delta.frozen),
                "quantity_before": before,
                "quantity_after": after,
                "batch_no": delta.batch_no,
                "reason": reason,
                "operator_id": operator_id,
                "operated_at": now,
            }))

        for location_id, total in location_totals.items():
            writes.append(RecordWrite("storage_location", location_id, {"current_quantity": total}))

        await self.store.save_atomic(writes)
        logger.debug(f"库存变动已写入: {len(deltas)} 条, 涉及 {len(projections)} 个物料库位")
        return deltas
