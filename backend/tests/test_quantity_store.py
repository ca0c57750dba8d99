from decimal import Decimal

import pytest

from wms.core.exceptions import CapacityExceededError, InsufficientStockError
from wms.db.record_store import RecordStore
from wms.models.enums import FlowType
from wms.services.quantity_store import QuantityStore, StockDelta


def _in(material, location, qty, line_no=1):
    return StockDelta(material_id=material.id, location_id=location.id, quantity=Decimal(qty),
                      flow_type=FlowType.IN, line_no=line_no)


def _out(material, location, qty, line_no=1):
    return StockDelta(material_id=material.id, location_id=location.id, quantity=-Decimal(qty),
                      flow_type=FlowType.OUT, line_no=line_no)


async def test_get_without_row_is_zero(db, world):
    store = QuantityStore(RecordStore(db))
    assert await store.get(world.m.id, world.l1.id) == 0
    assert await store.get_available(world.m.id, world.l1.id) == 0
    assert await store.total_on_hand(world.m.id) == 0


async def test_apply_writes_stock_flows_and_location_total(db, world):
    store = QuantityStore(RecordStore(db))

    await store.apply([_in(world.m, world.l1, "100"), _in(world.m2, world.l1, "20", line_no=2)],
                      document_kind="stock_in", document_id=1)
    await store.apply([_out(world.m, world.l1, "30")], document_kind="stock_out", document_id=1)
    await db.commit()

    assert await store.get(world.m.id, world.l1.id) == Decimal("70")
    assert await store.get(world.m2.id, world.l1.id) == Decimal("20")

    location = await RecordStore(db).load("storage_location", world.l1.id)
    assert location.current_quantity == Decimal("90")

    flows = await RecordStore(db).find("stock_flow", material_id=world.m.id)
    assert [f.flow_type for f in flows] == ["in", "out"]
    assert flows[1].quantity_before == Decimal("100")
    assert flows[1].quantity_after == Decimal("70")


async def test_insufficient_stock_leaves_store_unchanged(db, world):
    store = QuantityStore(RecordStore(db))
    await store.apply([_in(world.m, world.l2, "10")])
    await db.commit()

    with pytest.raises(InsufficientStockError) as exc_info:
        await store.apply([_out(world.m, world.l2, "4", line_no=1), _out(world.m, world.l2, "7", line_no=2)])

    assert exc_info.value.available == Decimal("10")
    assert exc_info.value.requested == Decimal("11")
    assert await store.get(world.m.id, world.l2.id) == Decimal("10")


async def test_net_change_per_pair_is_checked(db, world):
    """同一库位先出后入，按净变动检查"""
    store = QuantityStore(RecordStore(db))
    await store.apply([_out(world.m, world.l2, "5"), _in(world.m, world.l2, "8", line_no=2)])
    await db.commit()

    assert await store.get(world.m.id, world.l2.id) == Decimal("3")


async def test_capacity_exceeded(db, world):
    store = QuantityStore(RecordStore(db))
    await store.apply([_in(world.m, world.l1, "100")])
    await db.commit()

    with pytest.raises(CapacityExceededError) as exc_info:
        await store.apply([_in(world.m2, world.l1, "51")])
    assert exc_info.value.projected == Decimal("151")
    assert await store.get(world.m2.id, world.l1.id) == 0

    # 正好装满允许
    await store.apply([_in(world.m2, world.l1, "50")])
    assert await store.location_total(world.l1.id) == Decimal("150")


async def test_capacity_not_checked_when_location_shrinks(db, world):
    store = QuantityStore(RecordStore(db))
    await store.apply([_in(world.m, world.l3, "50")])
    await db.commit()

    # 库位收紧容量后仍允许出库
    location = await RecordStore(db).load("storage_location", world.l3.id)
    location.max_quantity = Decimal("10")
    await db.commit()

    await store.apply([_out(world.m, world.l3, "5")])
    assert await store.get(world.m.id, world.l3.id) == Decimal("45")


async def test_frozen_stock_is_not_available(db, world):
    store = QuantityStore(RecordStore(db))
    await store.apply([_in(world.m, world.l2, "10")])
    await store.apply([StockDelta(material_id=world.m.id, location_id=world.l2.id, frozen=Decimal("6"),
                                  flow_type=FlowType.FREEZE)])
    await db.commit()

    assert await store.get(world.m.id, world.l2.id) == Decimal("10")
    assert await store.get_frozen(world.m.id, world.l2.id) == Decimal("6")
    assert await store.get_available(world.m.id, world.l2.id) == Decimal("4")

    with pytest.raises(InsufficientStockError):
        await store.apply([_out(world.m, world.l2, "5")])

    with pytest.raises(InsufficientStockError):
        await store.apply([StockDelta(material_id=world.m.id, location_id=world.l2.id, frozen=Decimal("-7"),
                                      flow_type=FlowType.UNFREEZE)])


async def test_check_is_dry_run(db, world):
    store = QuantityStore(RecordStore(db))
    await store.check([_in(world.m, world.l2, "10")])
    assert await store.get(world.m.id, world.l2.id) == 0
    assert await RecordStore(db).find("stock_flow") == []
