"""
仓储结构模型 - 仓库 → 库区 → 货架 → 库位

只保存子级到父级的外键，不建立双向集合；需要上溯时通过记录存储按需查询。
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL, CheckConstraint
from wms.db.base import Base


class Warehouse(Base):
    """仓库"""
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, comment="仓库编码")
    name = Column(String(100), nullable=False, comment="仓库名称")
    warehouse_type = Column(String(20), comment="仓库类型")
    address = Column(String(200))
    contact_person = Column(String(50))
    contact_phone = Column(String(20))
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Warehouse {self.code}>"


class StorageZone(Base):
    """库区"""
    __tablename__ = "storage_zones"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, comment="库区编码")
    name = Column(String(100), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class StorageRack(Base):
    """货架"""
    __tablename__ = "storage_racks"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), nullable=False, comment="货架编码")
    name = Column(String(100), nullable=False)
    zone_id = Column(Integer, ForeignKey("storage_zones.id"), nullable=False, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class StorageLocation(Base):
    """库位

    current_quantity 是该库位所有物料在库数量之和（基本单位）的缓存，
    每次库存变动提交时重算。
    """
    __tablename__ = "storage_locations"
    __table_args__ = (
        CheckConstraint("current_quantity >= 0", name="ck_location_current_quantity"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, comment="库位编码")
    name = Column(String(100), nullable=False)
    rack_id = Column(Integer, ForeignKey("storage_racks.id"), nullable=False, index=True)
    max_quantity = Column(DECIMAL(18, 4), comment="最大容量（为空不限）")
    current_quantity = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="当前数量")
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<StorageLocation {self.code} = {self.current_quantity}>"
