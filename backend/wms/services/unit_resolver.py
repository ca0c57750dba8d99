"""
单位换算

基本单位数量 = 数量 × 换算系数。换算系数和数量都是 Decimal，不经过浮点，
结果没有额外的舍入损失。
库存、流水和执行数量按 4 位小数存储，超出这个精度的数量由校验拒绝，不做舍入。
"""

from decimal import Decimal
from typing import Dict, Optional

from wms.core.exceptions import (
    InactiveMaterialError, InactiveUnitError, RecordNotFoundError, UnknownUnitError, ValidationError
)
from wms.db.record_store import RecordStore

# 库存数量列 DECIMAL(18, 4) 的最小单位
QUANTITY_STEP = Decimal("0.0001")


def to_decimal(value) -> Decimal:
    """数量统一转 Decimal（浮点先转字符串，避免二进制误差）"""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def fits_quantity_scale(value) -> bool:
    """数量能否不经舍入存入库存数量列"""
    value = to_decimal(value)
    return value == value.quantize(QUANTITY_STEP)


class UnitConversionResolver:
    """物料单位 → 基本单位换算

    同一次单据处理内缓存物料和单位记录，避免每行重复查询。
    """

    def __init__(self, store: RecordStore):
        self.store = store
        self._materials: Dict[int, object] = {}
        self._units: Dict[int, object] = {}

    async def material(self, material_id: int, *, line_no: Optional[int] = None):
        if material_id not in self._materials:
            try:
                self._materials[material_id] = await self.store.load("material", material_id)
            except RecordNotFoundError:
                raise ValidationError(
                    f"物料 {material_id} 不存在", line_no=line_no, field="material_id"
                ) from None
        return self._materials[material_id]

    async def unit(self, material_id: int, unit_id: Optional[int], *, line_no: Optional[int] = None):
        """校验并返回物料可用的单位记录（None 表示基本单位）"""
        material = await self.material(material_id, line_no=line_no)
        if not material.is_active:
            raise InactiveMaterialError(material_id, line_no=line_no)

        if unit_id is None:
            unit_id = material.base_unit_id
        if unit_id not in material.unit_ids:
            raise UnknownUnitError(material_id, unit_id, line_no=line_no)

        if unit_id not in self._units:
            try:
                self._units[unit_id] = await self.store.load("material_unit", unit_id)
            except RecordNotFoundError:
                raise UnknownUnitError(material_id, unit_id, line_no=line_no) from None
        unit = self._units[unit_id]

        if not unit.is_active:
            raise InactiveUnitError(unit_id, line_no=line_no)
        if unit_id == material.base_unit_id and to_decimal(unit.conversion_factor) != 1:
            raise ValidationError(
                f"物料 {material_id} 的基本单位 {unit_id} 换算系数必须为 1",
                line_no=line_no, field="unit_id",
            )
        return unit

    async def to_base(self, material_id: int, unit_id: Optional[int], quantity, *,
                      line_no: Optional[int] = None) -> Decimal:
        """换算成基本单位数量"""
        unit = await self.unit(material_id, unit_id, line_no=line_no)
        return to_decimal(quantity) * to_decimal(unit.conversion_factor)

    async def from_base(self, material_id: int, unit_id: Optional[int], base_quantity, *,
                        line_no: Optional[int] = None) -> Decimal:
        """基本单位数量换算回指定单位"""
        unit = await self.unit(material_id, unit_id, line_no=line_no)
        return to_decimal(base_quantity) / to_decimal(unit.conversion_factor)
