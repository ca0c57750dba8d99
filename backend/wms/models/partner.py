"""往来单位 - 供应商、客户"""

from datetime import datetime
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, DECIMAL
from wms.db.base import Base


class Supplier(Base):
    """供应商"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, comment="供应商编码")
    name = Column(String(100), nullable=False, index=True)
    level = Column(String(20), comment="供应商等级")
    contact_person = Column(String(50))
    contact_phone = Column(String(20))
    address = Column(String(200))
    email = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Customer(Base):
    """客户"""
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, comment="客户编码")
    name = Column(String(100), nullable=False, index=True)
    credit_limit = Column(DECIMAL(18, 2), nullable=False, default=Decimal("0"), comment="信用额度")
    contact_person = Column(String(50))
    contact_phone = Column(String(20))
    address = Column(String(200))
    email = Column(String(100))
    is_active = Column(Boolean, nullable=False, default=True)
    description = Column(Text)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
