"""测试数据构造"""
from decimal import Decimal
from types import SimpleNamespace

from wms.models import (
    MaterialCategory, MaterialUnit, Material,
    Warehouse, StorageZone, StorageRack, StorageLocation,
    Supplier, Customer,
)
from wms.models.enums import DocumentKind
from wms.schemas.document import DocumentHeader, DocumentLine


async def make_unit(db, code, factor="1", is_base=True, is_active=True):
    unit = MaterialUnit(code=code, name=code, conversion_factor=Decimal(factor),
                        is_base_unit=is_base, is_active=is_active)
    db.add(unit)
    await db.flush()
    return unit


async def make_material(db, code, base_unit, package_unit=None, min_stock="0", max_stock=None,
                        is_active=True, category=None):
    material = Material(
        code=code, name=f"物料{code}",
        category_id=category.id if category else None,
        base_unit_id=base_unit.id,
        package_unit_id=package_unit.id if package_unit else None,
        min_stock=Decimal(min_stock),
        max_stock=Decimal(max_stock) if max_stock is not None else None,
        is_active=is_active,
    )
    db.add(material)
    await db.flush()
    return material


async def make_rack(db, code):
    """仓库 → 库区 → 货架"""
    warehouse = Warehouse(code=code, name=f"仓库{code}")
    db.add(warehouse)
    await db.flush()
    zone = StorageZone(code=f"{code}-Z", name="库区", warehouse_id=warehouse.id)
    db.add(zone)
    await db.flush()
    rack = StorageRack(code=f"{code}-R", name="货架", zone_id=zone.id)
    db.add(rack)
    await db.flush()
    return warehouse, zone, rack


async def make_location(db, rack, code, max_quantity=None, is_active=True):
    location = StorageLocation(
        code=code, name=code, rack_id=rack.id,
        max_quantity=Decimal(max_quantity) if max_quantity is not None else None,
        is_active=is_active,
    )
    db.add(location)
    await db.flush()
    return location


async def build_world(db) -> SimpleNamespace:
    """标准测试数据

    - 单位：个(基本)、箱(12 个)、千克(基本)
    - 物料 m：基本单位 个，包装单位 箱，下限 20，上限 500
    - 物料 m2：基本单位 千克
    - 仓库 wh1：库位 l1(容量 150)、l2(不限)、l3(容量 50)
    - 仓库 wh2：库位 w2l1(不限)
    """
    pcs = await make_unit(db, "PCS")
    box = await make_unit(db, "BOX12", factor="12", is_base=False)
    kg = await make_unit(db, "KG")

    category = MaterialCategory(code="FG", name="成品")
    db.add(category)
    await db.flush()

    m = await make_material(db, "M001", pcs, box, min_stock="20", max_stock="500", category=category)
    m2 = await make_material(db, "M002", kg, category=category)

    wh1, zone1, rack1 = await make_rack(db, "WH1")
    l1 = await make_location(db, rack1, "WH1-01", max_quantity="150")
    l2 = await make_location(db, rack1, "WH1-02")
    l3 = await make_location(db, rack1, "WH1-03", max_quantity="50")

    wh2, zone2, rack2 = await make_rack(db, "WH2")
    w2l1 = await make_location(db, rack2, "WH2-01")

    supplier = Supplier(code="S001", name="供应商")
    customer = Customer(code="C001", name="客户", credit_limit=Decimal("1000"))
    db.add_all([supplier, customer])
    await db.flush()

    return SimpleNamespace(
        pcs=pcs, box=box, kg=kg, category=category, m=m, m2=m2,
        wh1=wh1, zone1=zone1, rack1=rack1, l1=l1, l2=l2, l3=l3,
        wh2=wh2, zone2=zone2, rack2=rack2, w2l1=w2l1,
        supplier=supplier, customer=customer,
    )


async def stock_in(service, warehouse, material, location, quantity, unit=None):
    """通过入库单放入库存（基本单位或指定单位）"""
    result = await service.submit_document(
        DocumentKind.STOCK_IN,
        DocumentHeader(warehouse_id=warehouse.id),
        [DocumentLine(material_id=material.id, unit_id=unit.id if unit else None,
                      quantity=Decimal(str(quantity)), location_id=location.id)],
    )
    assert result.ok, result.errors
    return result


async def stock_out(service, warehouse, material, location, quantity):
    return await service.submit_document(
        DocumentKind.STOCK_OUT,
        DocumentHeader(warehouse_id=warehouse.id),
        [DocumentLine(material_id=material.id, quantity=Decimal(str(quantity)), location_id=location.id)],
    )
