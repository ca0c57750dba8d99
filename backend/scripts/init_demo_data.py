"""
演示数据初始化脚本
- 重建数据库表
- 创建仓库 → 库区 → 货架 → 库位
- 创建单位、物料分类、物料、供应商、客户
- 通过库存服务提交一张期初入库单
"""

import asyncio
import sys
import os
from datetime import date
from decimal import Decimal

# 添加项目路径
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.ext.asyncio import AsyncSession
from wms.db.session import engine, SessionLocal
from wms.db.base import Base

# 导入所有模型
from wms.models import (
    MaterialCategory, MaterialUnit, Material,
    Warehouse, StorageZone, StorageRack, StorageLocation,
    Supplier, Customer,
)
from wms.models.enums import DocumentKind
from wms.schemas.document import DocumentHeader, DocumentLine
from wms.services.inventory_service import InventoryService


async def reset_tables():
    """删除并重建所有表"""
    print("🗑️  重建数据库表...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    print("   完成！\n")


async def create_units(db: AsyncSession) -> dict:
    """创建计量单位"""
    print("📏 创建计量单位...")

    units_data = [
        ("PCS", "个", Decimal("1"), True),
        ("KG", "千克", Decimal("1"), True),
        ("BOX12", "箱(12个)", Decimal("12"), False),
        ("BAG25", "袋(25千克)", Decimal("25"), False),
    ]

    units = {}
    for code, name, factor, is_base in units_data:
        unit = MaterialUnit(code=code, name=name, conversion_factor=factor, is_base_unit=is_base)
        db.add(unit)
        units[code] = unit
        print(f"   ✓ {name} (×{factor})")

    await db.flush()
    return units


async def create_warehouses(db: AsyncSession) -> dict:
    """创建仓库、库区、货架、库位"""
    print("\n🏭 创建仓储结构...")

    warehouses_data = [
        ("WH01", "主仓库", "成品", [("A", "成品区", 2, Decimal("500"))]),
        ("WH02", "原料仓", "原料", [("R", "原料区", 1, Decimal("2000"))]),
    ]

    locations = {}
    for wh_code, wh_name, wh_type, zones in warehouses_data:
        warehouse = Warehouse(code=wh_code, name=wh_name, warehouse_type=wh_type)
        db.add(warehouse)
        await db.flush()
        print(f"   ✓ {wh_name}")

        for zone_code, zone_name, rack_count, capacity in zones:
            zone = StorageZone(code=zone_code, name=zone_name, warehouse_id=warehouse.id)
            db.add(zone)
            await db.flush()

            for rack_no in range(1, rack_count + 1):
                rack = StorageRack(code=f"{zone_code}{rack_no:02d}", name=f"{zone_name}{rack_no}号货架",
                                   zone_id=zone.id)
                db.add(rack)
                await db.flush()

                for level in range(1, 3):
                    code = f"{wh_code}-{rack.code}-{level:02d}"
                    location = StorageLocation(code=code, name=f"{rack.name}第{level}层",
                                               rack_id=rack.id, max_quantity=capacity)
                    db.add(location)
                    locations[code] = location
                    print(f"      - 库位 {code} (容量 {capacity})")

    await db.flush()
    return locations


async def create_materials(db: AsyncSession, units: dict) -> dict:
    """创建物料分类和物料"""
    print("\n📦 创建物料...")

    finished = MaterialCategory(code="FG", name="成品")
    raw = MaterialCategory(code="RM", name="原料")
    db.add_all([finished, raw])
    await db.flush()

    materials_data = [
        ("M001", "保温杯", finished.id, "PCS", "BOX12", Decimal("24"), Decimal("400")),
        ("M002", "不锈钢板", raw.id, "KG", "BAG25", Decimal("100"), Decimal("1500")),
        ("M003", "包装盒", raw.id, "PCS", None, Decimal("50"), None),
    ]

    materials = {}
    for code, name, category_id, base, package, min_stock, max_stock in materials_data:
        material = Material(
            code=code, name=name, category_id=category_id,
            base_unit_id=units[base].id,
            package_unit_id=units[package].id if package else None,
            min_stock=min_stock, max_stock=max_stock,
        )
        db.add(material)
        materials[code] = material
        print(f"   ✓ {code} {name}")

    await db.flush()
    return materials


async def create_partners(db: AsyncSession):
    """创建供应商和客户"""
    print("\n🤝 创建往来单位...")

    db.add_all([
        Supplier(code="S001", name="华东五金供应商", contact_person="张经理"),
        Supplier(code="S002", name="南方包装材料厂", contact_person="李经理"),
        Customer(code="C001", name="城东商贸", credit_limit=Decimal("50000")),
        Customer(code="C002", name="城西百货", credit_limit=Decimal("20000")),
    ])
    await db.flush()
    print("   ✓ 2 个供应商，2 个客户")


async def create_opening_stock(materials: dict, locations: dict, warehouse_ids: dict):
    """期初入库"""
    print("\n📥 期初入库...")

    service = InventoryService()
    result = await service.submit_document(
        DocumentKind.STOCK_IN,
        DocumentHeader(warehouse_id=warehouse_ids["WH01"], source_type="期初",
                       document_date=date.today(), remark="演示期初库存"),
        [
            DocumentLine(material_id=materials["M001"].id, unit_id=materials["M001"].package_unit_id,
                         quantity=Decimal("10"), location_id=locations["WH01-A01-01"].id, batch_no="INIT"),
            DocumentLine(material_id=materials["M003"].id, quantity=Decimal("30"),
                         location_id=locations["WH01-A01-02"].id, batch_no="INIT"),
        ],
    )
    result.raise_for_errors()
    print(f"   ✓ 入库单 {result.order_no}：{len(result.applied_deltas)} 条库存变动")


async def main():
    print("=" * 50)
    print("多仓库存台账 - 演示数据初始化")
    print("=" * 50 + "\n")

    await reset_tables()

    async with SessionLocal() as db:
        units = await create_units(db)
        locations = await create_warehouses(db)
        materials = await create_materials(db, units)
        await create_partners(db)
        await db.commit()

        warehouse_ids = {}
        for warehouse in (await db.execute(Warehouse.__table__.select())).all():
            warehouse_ids[warehouse.code] = warehouse.id

    await create_opening_stock(materials, locations, warehouse_ids)

    print("\n" + "=" * 50)
    print("✅ 演示数据初始化完成！")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(main())
