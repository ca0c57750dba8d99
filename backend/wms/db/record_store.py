"""
记录存储 - 库存引擎访问持久化数据的唯一通道

对引擎只暴露按实体类型读写的窄接口：
- load(entity_type, id)                 读取单条，不存在抛 RecordNotFoundError
- load_children(parent_type, parent_id) 读取单据明细（按行号排序）
- find(entity_type, **criteria)         按字段等值/IN 条件查询
- save_atomic(writes)                   一组写入，冲突抛 ConflictError
- transaction()                         一个单据的完整事务边界

数据库异常一律转成结构化错误（ConflictError / ValidationError / StoreUnavailableError / BusyError）：
唯一约束和版本号冲突属于并发竞争，其余约束（CHECK、非空、外键）违例是数据本身不合规。
不会吞掉异常返回 None 或 -1。
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import select, func
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from wms.core.exceptions import (
    BusyError, ConflictError, RecordNotFoundError, StoreUnavailableError, ValidationError
)
from wms.models import (
    MaterialCategory, MaterialUnit, Material,
    Warehouse, StorageZone, StorageRack, StorageLocation,
    Supplier, Customer, LocationStock, StockFlow,
    PurchaseOrder, PurchaseOrderDetail, SalesOrder, SalesOrderDetail,
    StockInOrder, StockInOrderDetail, StockOutOrder, StockOutOrderDetail,
    TransferOrder, TransferOrderDetail, InventoryAdjustment, InventoryAdjustmentDetail,
)

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    "material_category": MaterialCategory,
    "material_unit": MaterialUnit,
    "material": Material,
    "warehouse": Warehouse,
    "storage_zone": StorageZone,
    "storage_rack": StorageRack,
    "storage_location": StorageLocation,
    "supplier": Supplier,
    "customer": Customer,
    "location_stock": LocationStock,
    "stock_flow": StockFlow,
    "purchase_order": PurchaseOrder,
    "purchase_order_detail": PurchaseOrderDetail,
    "sales_order": SalesOrder,
    "sales_order_detail": SalesOrderDetail,
    "stock_in_order": StockInOrder,
    "stock_in_order_detail": StockInOrderDetail,
    "stock_out_order": StockOutOrder,
    "stock_out_order_detail": StockOutOrderDetail,
    "transfer_order": TransferOrder,
    "transfer_order_detail": TransferOrderDetail,
    "inventory_adjustment": InventoryAdjustment,
    "inventory_adjustment_detail": InventoryAdjustmentDetail,
}

# 表头 → (明细类型, 外键字段)
CHILD_TYPES = {
    "purchase_order": ("purchase_order_detail", "order_id"),
    "sales_order": ("sales_order_detail", "order_id"),
    "stock_in_order": ("stock_in_order_detail", "order_id"),
    "stock_out_order": ("stock_out_order_detail", "order_id"),
    "transfer_order": ("transfer_order_detail", "order_id"),
    "inventory_adjustment": ("inventory_adjustment_detail", "order_id"),
}


@dataclass(frozen=True)
class RecordWrite:
    """一条写入；id 为 None 表示新增"""
    entity_type: str
    id: Optional[int]
    fields: Dict[str, Any] = field(default_factory=dict)


def _model(entity_type: str):
    try:
        return ENTITY_MODELS[entity_type]
    except KeyError:
        raise ValueError(f"未知实体类型: {entity_type}") from None


class RecordStore:
    """基于 AsyncSession 的记录存储"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load(self, entity_type: str, record_id: int):
        model = _model(entity_type)
        try:
            record = await self.session.get(model, record_id)
        except DBAPIError as e:
            raise self._translate(e) from e
        if record is None:
            raise RecordNotFoundError(entity_type, record_id)
        return record

    async def load_children(self, parent_type: str, parent_id: int) -> List[Any]:
        try:
            child_type, fk = CHILD_TYPES[parent_type]
        except KeyError:
            raise ValueError(f"{parent_type} 没有明细") from None
        model = _model(child_type)
        query = (
            select(model)
            .where(getattr(model, fk) == parent_id)
            .order_by(model.line_no.asc(), model.id.asc())
        )
        return await self._all(query)

    async def find(self, entity_type: str, *, order_by: Optional[str] = None, **criteria) -> List[Any]:
        """等值查询；值为 list/tuple/set 时按 IN 查询"""
        model = _model(entity_type)
        query = select(model)
        for name, value in criteria.items():
            column = getattr(model, name)
            if isinstance(value, (list, tuple, set, frozenset)):
                query = query.where(column.in_(list(value)))
            elif value is None:
                query = query.where(column.is_(None))
            else:
                query = query.where(column == value)
        query = query.order_by(getattr(model, order_by or "id").asc())
        return await self._all(query)

    async def max_value(self, entity_type: str, field_name: str, prefix: str) -> Optional[str]:
        """以 prefix 开头的最大值（用于生成单号）"""
        model = _model(entity_type)
        column = getattr(model, field_name)
        try:
            result = await self.session.execute(
                select(func.max(column)).where(column.like(f"{prefix}%"))
            )
        except DBAPIError as e:
            raise self._translate(e) from e
        return result.scalar()

    async def save_atomic(self, writes: Iterable[RecordWrite]) -> List[Any]:
        """执行一组写入并 flush

        任何一条失败都会回滚整个会话事务，已执行的写入不会留下。
        """
        records = []
        try:
            for write in writes:
                model = _model(write.entity_type)
                if write.id is None:
                    record = model(**write.fields)
                    self.session.add(record)
                else:
                    record = await self.session.get(model, write.id)
                    if record is None:
                        raise RecordNotFoundError(write.entity_type, write.id)
                    for name, value in write.fields.items():
                        setattr(record, name, value)
                records.append(record)
            await self.session.flush()
        except StaleDataError as e:
            await self.session.rollback()
            raise ConflictError(str(e)) from e
        except IntegrityError as e:
            await self.session.rollback()
            raise self._integrity(e) from e
        except DBAPIError as e:
            await self.session.rollback()
            raise self._translate(e) from e
        except RecordNotFoundError:
            await self.session.rollback()
            raise
        return records

    @asynccontextmanager
    async def transaction(self):
        """单据事务：正常退出提交，异常回滚后原样抛出"""
        try:
            yield self
        except Exception:
            await self.session.rollback()
            raise
        try:
            await self.session.commit()
        except StaleDataError as e:
            await self.session.rollback()
            raise ConflictError(str(e)) from e
        except IntegrityError as e:
            await self.session.rollback()
            raise self._integrity(e) from e
        except DBAPIError as e:
            await self.session.rollback()
            raise self._translate(e) from e

    async def _all(self, query) -> List[Any]:
        try:
            result = await self.session.execute(query)
        except DBAPIError as e:
            raise self._translate(e) from e
        return list(result.scalars().all())

    @staticmethod
    def _integrity(error: IntegrityError):
        detail = str(error.orig)
        if "UNIQUE" in detail.upper():
            return ConflictError(detail)
        logger.error(f"写入违反数据约束: {detail}")
        return ValidationError(f"数据约束校验失败: {detail}")

    @staticmethod
    def _translate(error: DBAPIError):
        # SQLite 写锁等待超时属于瞬时竞争，按 Busy 处理
        if isinstance(error, OperationalError) and "locked" in str(error.orig).lower():
            return BusyError("database")
        logger.error(f"记录存储访问失败: {error}")
        return StoreUnavailableError(str(error.orig))
