"""
库存预警

按物料所有库位的在库数量合计与物料的最低/最高库存比较：
低于最低库存为 below_min，设置了最高库存且超过为 above_max，其余为 normal。
只读，不做去重和限频。
"""

import logging
from decimal import Decimal
from typing import Dict, Tuple

from wms.db.record_store import RecordStore
from wms.models.enums import AlertLevel
from wms.services.quantity_store import QuantityStore
from wms.services.unit_resolver import to_decimal

logger = logging.getLogger(__name__)


def alert_level(on_hand: Decimal, min_stock, max_stock) -> AlertLevel:
    if on_hand < to_decimal(min_stock or 0):
        return AlertLevel.BELOW_MIN
    if max_stock is not None and on_hand > to_decimal(max_stock):
        return AlertLevel.ABOVE_MAX
    return AlertLevel.NORMAL


class StockAlertEvaluator:

    def __init__(self, store: RecordStore):
        self.store = store
        self.quantities = QuantityStore(store)

    async def evaluate_detail(self, material_id: int) -> Tuple[AlertLevel, Decimal, object]:
        """返回 (预警级别, 在库合计, 物料)"""
        material = await self.store.load("material", material_id)
        on_hand = await self.quantities.total_on_hand(material_id)
        return alert_level(on_hand, material.min_stock, material.max_stock), on_hand, material

    async def evaluate(self, material_id: int) -> AlertLevel:
        level, _, _ = await self.evaluate_detail(material_id)
        return level

    async def evaluate_all(self) -> Dict[int, AlertLevel]:
        """所有启用物料的预警级别"""
        result: Dict[int, AlertLevel] = {}
        for material in await self.store.find("material", is_active=True):
            on_hand = await self.quantities.total_on_hand(material.id)
            level = alert_level(on_hand, material.min_stock, material.max_stock)
            result[material.id] = level
            if level != AlertLevel.NORMAL:
                logger.warning(
                    f"⚠️ 库存预警: 物料 {material.code} {material.name} 在库 {on_hand} "
                    f"({level.value}, 下限 {material.min_stock}, 上限 {material.max_stock})"
                )
        return result
