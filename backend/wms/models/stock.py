"""
库存模型 - 每个库位上每个物料的当前数量，以及每次变动的流水

- quantity 为在库数量（基本单位），frozen_quantity 为其中被冻结的部分
- 可用数量 = quantity - frozen_quantity（计算字段，不存储）
- version 用于乐观锁，跨进程并发写同一行时后提交者失败
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, DECIMAL, UniqueConstraint, CheckConstraint, Index
)
from wms.db.base import Base


class LocationStock(Base):
    """库位库存 - (物料, 库位) 唯一"""
    __tablename__ = "location_stocks"
    __table_args__ = (
        UniqueConstraint("material_id", "location_id", name="uq_material_location"),
        CheckConstraint("quantity >= 0", name="ck_stock_quantity"),
        CheckConstraint("frozen_quantity >= 0 AND frozen_quantity <= quantity", name="ck_stock_frozen"),
    )

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, index=True)

    quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="在库数量")
    frozen_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="冻结数量")

    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self):
        return f"<LocationStock {self.material_id}@{self.location_id} = {self.quantity}>"

    @property
    def available_quantity(self) -> Decimal:
        """可用库存 = 在库数量 - 冻结数量"""
        return (self.quantity or Decimal("0")) - (self.frozen_quantity or Decimal("0"))


class StockFlow(Base):
    """库存流水 - 每次库存变动一条，只追加不修改"""
    __tablename__ = "stock_flows"
    __table_args__ = (
        Index("ix_stock_flow_document", "document_kind", "document_id"),
    )

    id = Column(Integer, primary_key=True, index=True)

    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, index=True)

    # 来源单据
    document_kind = Column(String(20), comment="单据类型")
    document_id = Column(Integer, comment="单据ID")
    detail_id = Column(Integer, comment="明细ID")
    line_no = Column(Integer, comment="明细行号")

    # 流水类型：in/out/transfer_out/transfer_in/surplus/shortage/freeze/unfreeze
    flow_type = Column(String(20), nullable=False, comment="流水类型")

    # 变动数量（正数表示增加，负数表示减少）
    quantity_change = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="在库数量变动")
    frozen_change = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="冻结数量变动")

    # 变动前后数量（用于追溯）
    quantity_before = Column(DECIMAL(18, 4), nullable=False, comment="变动前数量")
    quantity_after = Column(DECIMAL(18, 4), nullable=False, comment="变动后数量")

    batch_no = Column(String(50), comment="批次号")
    reason = Column(String(200), comment="变动原因")

    operator_id = Column(Integer, comment="操作人")
    operated_at = Column(DateTime, default=datetime.utcnow, comment="操作时间")

    created_at = Column(DateTime, default=datetime.utcnow)

    def __repr__(self):
        return f"<StockFlow {self.material_id}@{self.location_id}: {self.flow_type} {self.quantity_change}>"

    @property
    def type_display(self) -> str:
        """类型显示名称"""
        type_map = {
            "in": "入库",
            "out": "出库",
            "transfer_out": "调出",
            "transfer_in": "调入",
            "surplus": "盘盈",
            "shortage": "盘亏",
            "freeze": "冻结",
            "unfreeze": "解冻",
        }
        return type_map.get(self.flow_type, self.flow_type)
