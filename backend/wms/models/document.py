"""
单据模型 - 采购单、销售单、入库单、出库单、调拨单、库存调整单

每张单据由表头 + 明细组成，明细随表头一起创建和删除。
明细上的 *_quantity 计数器记录已执行数量，始终满足 0 <= 已执行 <= quantity。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Date, ForeignKey, DECIMAL, Enum, CheckConstraint
)
from sqlalchemy.orm import declared_attr
from wms.db.base import Base
from wms.models.enums import AdjustmentType, DocumentStatus


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class DocumentHeaderMixin:
    """表头公共字段"""

    id = Column(Integer, primary_key=True, index=True)

    # 单号（自动生成）格式：{类型前缀}{年月日}{序号}，如 XS20241202001
    order_no = Column(String(50), unique=True, nullable=False, index=True, comment="单号")

    status = Column(
        Enum(DocumentStatus, native_enum=False, length=20,
             values_callable=_enum_values, validate_strings=True),
        nullable=False, default=DocumentStatus.DRAFT, index=True, comment="状态",
    )

    remark = Column(Text, comment="备注")

    # 审计字段
    create_user_id = Column(Integer, comment="创建人")
    update_user_id = Column(Integer, comment="最后修改人")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    approved_at = Column(DateTime, comment="审核时间")
    completed_at = Column(DateTime, comment="完成时间")
    cancelled_at = Column(DateTime, comment="取消时间")

    def __repr__(self):
        return f"<{type(self).__name__} {self.order_no} ({self.status})>"


class DocumentDetailMixin:
    """明细公共字段"""

    id = Column(Integer, primary_key=True, index=True)
    line_no = Column(Integer, nullable=False, comment="行号")
    quantity = Column(DECIMAL(18, 4), nullable=False, comment="数量（明细单位）")
    batch_no = Column(String(50), comment="批次号")
    remark = Column(String(200), comment="备注")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @declared_attr
    def material_id(cls):
        return Column(Integer, ForeignKey("materials.id"), nullable=False, index=True, comment="物料ID")

    @declared_attr
    def unit_id(cls):
        return Column(Integer, ForeignKey("material_units.id"), nullable=False, comment="单位ID")


# ===== 采购 =====

class PurchaseOrder(DocumentHeaderMixin, Base):
    """采购单"""
    __tablename__ = "purchase_orders"

    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True, comment="供应商")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True, comment="收货仓库")
    order_date = Column(Date, comment="下单日期")
    expected_date = Column(Date, comment="预计到货日期")
    total_amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0"), comment="总金额")

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class PurchaseOrderDetail(DocumentDetailMixin, Base):
    """采购明细"""
    __tablename__ = "purchase_order_details"
    __table_args__ = (
        CheckConstraint("received_quantity >= 0 AND received_quantity <= quantity", name="ck_po_received"),
    )

    order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_price = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="单价")
    amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0"), comment="金额 = 数量 × 单价")
    received_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已收货数量")


# ===== 销售 =====

class SalesOrder(DocumentHeaderMixin, Base):
    """销售单"""
    __tablename__ = "sales_orders"

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True, comment="客户")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), index=True, comment="发货仓库")
    order_date = Column(Date, comment="下单日期")
    expected_date = Column(Date, comment="预计发货日期")
    total_amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0"), comment="总金额")

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class SalesOrderDetail(DocumentDetailMixin, Base):
    """销售明细"""
    __tablename__ = "sales_order_details"
    __table_args__ = (
        CheckConstraint("shipped_quantity >= 0 AND shipped_quantity <= quantity", name="ck_so_shipped"),
    )

    order_id = Column(Integer, ForeignKey("sales_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    unit_price = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="单价")
    amount = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0"), comment="金额 = 数量 × 单价")
    shipped_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已发货数量")


# ===== 入库 =====

class StockInOrder(DocumentHeaderMixin, Base):
    """入库单"""
    __tablename__ = "stock_in_orders"

    source_type = Column(String(20), comment="来源类型，如 采购、退货")
    source_no = Column(String(50), comment="来源单号")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True, comment="入库仓库")
    in_date = Column(Date, comment="入库日期")
    total_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="总数量")

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class StockInOrderDetail(DocumentDetailMixin, Base):
    """入库明细"""
    __tablename__ = "stock_in_order_details"
    __table_args__ = (
        CheckConstraint("received_quantity >= 0 AND received_quantity <= quantity", name="ck_in_received"),
    )

    order_id = Column(Integer, ForeignKey("stock_in_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, comment="入库库位")
    production_date = Column(Date, comment="生产日期")
    expiry_date = Column(Date, comment="到期日期")
    received_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已入库数量")


# ===== 出库 =====

class StockOutOrder(DocumentHeaderMixin, Base):
    """出库单"""
    __tablename__ = "stock_out_orders"

    source_type = Column(String(20), comment="来源类型，如 销售、领用")
    source_no = Column(String(50), comment="来源单号")
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True, comment="出库仓库")
    out_date = Column(Date, comment="出库日期")
    total_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="总数量")

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class StockOutOrderDetail(DocumentDetailMixin, Base):
    """出库明细"""
    __tablename__ = "stock_out_order_details"
    __table_args__ = (
        CheckConstraint("shipped_quantity >= 0 AND shipped_quantity <= quantity", name="ck_out_shipped"),
    )

    order_id = Column(Integer, ForeignKey("stock_out_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, comment="出库库位")
    shipped_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已出库数量")


# ===== 调拨 =====

class TransferOrder(DocumentHeaderMixin, Base):
    """调拨单"""
    __tablename__ = "transfer_orders"

    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True, comment="调出仓库")
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True, comment="调入仓库")
    transfer_date = Column(Date, comment="调拨日期")

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class TransferOrderDetail(DocumentDetailMixin, Base):
    """调拨明细 - 调出库位减少、调入库位增加，同一事务内完成"""
    __tablename__ = "transfer_order_details"
    __table_args__ = (
        CheckConstraint("from_location_id <> to_location_id", name="ck_transfer_locations"),
        CheckConstraint(
            "transferred_quantity >= 0 AND transferred_quantity <= quantity", name="ck_transfer_done"
        ),
    )

    order_id = Column(Integer, ForeignKey("transfer_orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, comment="调出库位")
    to_location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, comment="调入库位")
    transferred_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已调拨数量")


# ===== 库存调整 =====

class InventoryAdjustment(DocumentHeaderMixin, Base):
    """库存调整单 - 盘盈/盘亏/冻结/解冻"""
    __tablename__ = "inventory_adjustments"

    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True, comment="仓库")
    adjustment_date = Column(Date, comment="调整日期")
    adjustment_type = Column(
        Enum(AdjustmentType, native_enum=False, length=20,
             values_callable=_enum_values, validate_strings=True),
        nullable=False, comment="调整类型",
    )

    version = Column(Integer, nullable=False, default=1)
    __mapper_args__ = {"version_id_col": version}


class InventoryAdjustmentDetail(DocumentDetailMixin, Base):
    """调整明细"""
    __tablename__ = "inventory_adjustment_details"
    __table_args__ = (
        CheckConstraint("adjusted_quantity >= 0 AND adjusted_quantity <= quantity", name="ck_adjust_done"),
    )

    order_id = Column(
        Integer, ForeignKey("inventory_adjustments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    location_id = Column(Integer, ForeignKey("storage_locations.id"), nullable=False, comment="库位")
    adjusted_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="已调整数量")
