from decimal import Decimal

import pytest

from wms.core.exceptions import InactiveMaterialError, InactiveUnitError, UnknownUnitError, ValidationError
from wms.db.record_store import RecordStore
from wms.services.unit_resolver import UnitConversionResolver
from tests.factories import make_material, make_unit


async def test_package_unit_converts_to_base(db, world):
    resolver = UnitConversionResolver(RecordStore(db))
    assert await resolver.to_base(world.m.id, world.box.id, Decimal("3")) == Decimal("36")
    assert await resolver.to_base(world.m.id, world.pcs.id, Decimal("3")) == Decimal("3")
    # 不指定单位按基本单位
    assert await resolver.to_base(world.m.id, None, Decimal("5")) == Decimal("5")
    assert await resolver.from_base(world.m.id, world.box.id, Decimal("36")) == Decimal("3")


async def test_conversion_is_exact(db, world):
    half = await make_unit(db, "HALF", factor="2.5", is_base=False)
    material = await make_material(db, "M-EXACT", world.kg, half)
    resolver = UnitConversionResolver(RecordStore(db))

    assert await resolver.to_base(material.id, half.id, Decimal("0.4")) == Decimal("1")
    assert await resolver.to_base(material.id, half.id, 0.1) == Decimal("0.25")


async def test_unit_not_registered_on_material(db, world):
    resolver = UnitConversionResolver(RecordStore(db))
    with pytest.raises(UnknownUnitError) as exc_info:
        await resolver.to_base(world.m.id, world.kg.id, Decimal("1"), line_no=3)
    assert exc_info.value.line_no == 3
    assert exc_info.value.code == "UNKNOWN_UNIT"


async def test_inactive_unit_and_material(db, world):
    old_box = await make_unit(db, "OLDBOX", factor="6", is_base=False, is_active=False)
    material = await make_material(db, "M-OLD", world.pcs, old_box)
    inactive = await make_material(db, "M-OFF", world.pcs, is_active=False)
    resolver = UnitConversionResolver(RecordStore(db))

    with pytest.raises(InactiveUnitError):
        await resolver.to_base(material.id, old_box.id, Decimal("1"))
    with pytest.raises(InactiveMaterialError):
        await resolver.to_base(inactive.id, None, Decimal("1"))


async def test_unknown_material(db, world):
    resolver = UnitConversionResolver(RecordStore(db))
    with pytest.raises(ValidationError):
        await resolver.to_base(9999, None, Decimal("1"))
