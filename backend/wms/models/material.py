"""
物料模型 - 物料分类、计量单位、物料

数量一律以物料的基本单位入账，其他单位通过换算系数折算：
基本单位数量 = 数量 × conversion_factor
"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, DECIMAL, CheckConstraint
)
from wms.db.base import Base


class MaterialCategory(Base):
    """物料分类 - 树形结构，只保存父级引用"""
    __tablename__ = "material_categories"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, comment="分类编码")
    name = Column(String(100), nullable=False, comment="分类名称")
    parent_id = Column(Integer, ForeignKey("material_categories.id"), index=True, comment="上级分类ID")
    description = Column(String(200))
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<MaterialCategory {self.code}>"


class MaterialUnit(Base):
    """计量单位

    如：个(1)、箱(24)，括号内为换算到基本单位的系数；基本单位系数必须为 1
    """
    __tablename__ = "material_units"
    __table_args__ = (
        CheckConstraint("conversion_factor > 0", name="ck_unit_factor_positive"),
        CheckConstraint("NOT is_base_unit OR conversion_factor = 1", name="ck_base_unit_factor_one"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(20), unique=True, nullable=False, comment="单位编码")
    name = Column(String(20), nullable=False, comment="单位名称")
    conversion_factor = Column(DECIMAL(18, 6), nullable=False, default=Decimal("1"), comment="换算到基本单位的系数")
    is_base_unit = Column(Boolean, nullable=False, default=False, comment="是否为基本单位")
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(String(200))

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<MaterialUnit {self.code} x{self.conversion_factor}>"


class Material(Base):
    """物料"""
    __tablename__ = "materials"
    __table_args__ = (
        CheckConstraint("min_stock >= 0", name="ck_material_min_stock"),
        CheckConstraint("max_stock IS NULL OR max_stock >= min_stock", name="ck_material_max_stock"),
    )

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True, comment="物料编码")
    name = Column(String(100), nullable=False, index=True, comment="物料名称")
    category_id = Column(Integer, ForeignKey("material_categories.id"), index=True, comment="分类ID")
    specification = Column(String(100), comment="规格型号")

    # 单位
    base_unit_id = Column(Integer, ForeignKey("material_units.id"), nullable=False, comment="基本单位")
    package_unit_id = Column(Integer, ForeignKey("material_units.id"), comment="包装单位")

    unit_weight = Column(DECIMAL(18, 4), comment="单位重量")
    unit_volume = Column(DECIMAL(18, 4), comment="单位体积")

    # 库存上下限（基本单位），用于预警
    min_stock = Column(DECIMAL(18, 4), nullable=False, default=Decimal("0"), comment="最低库存")
    max_stock = Column(DECIMAL(18, 4), comment="最高库存")

    expiry_days = Column(Integer, nullable=False, default=0, comment="保质期（天）")
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Material {self.code}>"

    @property
    def unit_ids(self) -> tuple:
        """该物料允许使用的单位"""
        return tuple(u for u in (self.base_unit_id, self.package_unit_id) if u is not None)
