"""单据执行端到端场景"""
import re
from decimal import Decimal

import pytest

from wms.core.exceptions import AlreadyTerminalError, InvalidTransitionError
from wms.models.enums import AdjustmentType, DocumentKind, DocumentStatus
from wms.schemas.document import DocumentHeader, DocumentLine
from tests.factories import make_material, make_unit, stock_in, stock_out


async def test_stock_out_then_capacity_rejection(service, world):
    await stock_in(service, world.wh1, world.m, world.l1, 100)

    result = await stock_out(service, world.wh1, world.m, world.l1, 30)
    assert result.ok
    assert result.status == DocumentStatus.COMPLETED
    assert await service.query_on_hand(world.m.id, world.l1.id) == Decimal("70")

    document = await service.get_document(DocumentKind.STOCK_OUT, result.document_id)
    assert document.details[0].fulfilled_quantity == Decimal("30")
    assert document.details[0].remaining_quantity == 0
    assert document.status_display == "已完成"

    # 70 + 81 > 150
    rejected = await stock_in_result(service, world, 81)
    assert not rejected.ok
    assert rejected.errors[0].code == "CAPACITY_EXCEEDED"
    assert rejected.errors[0].line_no == 1
    assert await service.query_on_hand(world.m.id, world.l1.id) == Decimal("70")

    # 正好装满允许
    assert (await stock_in_result(service, world, 80)).ok
    assert await service.query_on_hand(world.m.id, world.l1.id) == Decimal("150")


async def stock_in_result(service, world, quantity):
    return await service.submit_document(
        DocumentKind.STOCK_IN,
        DocumentHeader(warehouse_id=world.wh1.id),
        [DocumentLine(material_id=world.m.id, quantity=Decimal(quantity), location_id=world.l1.id)],
    )


async def test_transfer_conserves_quantity(service, world):
    await stock_in(service, world.wh1, world.m, world.l1, 50)
    await stock_in(service, world.wh1, world.m, world.l2, 10)

    result = await service.submit_document(
        DocumentKind.TRANSFER,
        DocumentHeader(from_warehouse_id=world.wh1.id, to_warehouse_id=world.wh1.id),
        [DocumentLine(material_id=world.m.id, quantity=Decimal("20"),
                      from_location_id=world.l1.id, to_location_id=world.l2.id)],
    )
    assert result.ok, result.errors
    assert await service.query_on_hand(world.m.id, world.l1.id) == Decimal("30")
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("30")
    assert sorted(d.flow_type for d in result.applied_deltas) == ["transfer_in", "transfer_out"]

    same = await service.submit_document(
        DocumentKind.TRANSFER,
        DocumentHeader(from_warehouse_id=world.wh1.id, to_warehouse_id=world.wh1.id),
        [DocumentLine(material_id=world.m.id, quantity=Decimal("5"),
                      from_location_id=world.l1.id, to_location_id=world.l1.id)],
    )
    assert not same.ok
    assert same.errors[0].code == "VALIDATION_ERROR"
    assert await service.query_on_hand(world.m.id, world.l1.id) == Decimal("30")


async def test_transfer_between_warehouses(service, world):
    await stock_in(service, world.wh1, world.m, world.l2, 40)

    result = await service.submit_document(
        DocumentKind.TRANSFER,
        DocumentHeader(from_warehouse_id=world.wh1.id, to_warehouse_id=world.wh2.id),
        [DocumentLine(material_id=world.m.id, unit_id=world.box.id, quantity=Decimal("2"),
                      from_location_id=world.l2.id, to_location_id=world.w2l1.id)],
    )
    assert result.ok, result.errors
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("16")
    assert await service.query_on_hand(world.m.id, world.w2l1.id) == Decimal("24")
    assert await service.query_on_hand(world.m.id) == Decimal("40")


async def _approved_sales_order(service, world, quantity="10"):
    draft = await service.create_document(
        DocumentKind.SALES,
        DocumentHeader(customer_id=world.customer.id, warehouse_id=world.wh1.id),
        [DocumentLine(material_id=world.m.id, quantity=Decimal(quantity), unit_price=Decimal("5.5"))],
    )
    assert draft.status == DocumentStatus.DRAFT
    assert draft.total_amount == Decimal("55.00")
    approved = await service.approve(DocumentKind.SALES, draft.id)
    assert approved.status == DocumentStatus.APPROVED
    return approved


async def test_sales_order_partial_shipments(service, world):
    await stock_in(service, world.wh1, world.m, world.l2, 50)
    order = await _approved_sales_order(service, world)
    detail_id = order.details[0].id

    def ship(quantity):
        return service.submit_document(
            DocumentKind.SALES,
            DocumentHeader(document_id=order.id),
            [DocumentLine(detail_id=detail_id, quantity=Decimal(quantity), location_id=world.l2.id)],
        )

    first = await ship("4")
    assert first.ok, first.errors
    assert first.status == DocumentStatus.PARTIAL
    assert first.status_display == "部分出库"

    second = await ship("6")
    assert second.status == DocumentStatus.COMPLETED

    third = await ship("1")
    assert not third.ok
    assert third.errors[0].code == "VALIDATION_ERROR"
    assert third.errors[0].line_no == 1

    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("40")
    document = await service.get_document(DocumentKind.SALES, order.id)
    assert document.details[0].fulfilled_quantity == Decimal("10")
    assert document.status == DocumentStatus.COMPLETED


async def test_purchase_receipt_with_package_unit(service, world):
    draft = await service.create_document(
        DocumentKind.PURCHASE,
        DocumentHeader(supplier_id=world.supplier.id, warehouse_id=world.wh1.id),
        [
            DocumentLine(material_id=world.m.id, unit_id=world.box.id, quantity=Decimal("5"),
                         unit_price=Decimal("120")),
            DocumentLine(material_id=world.m2.id, quantity=Decimal("8"), unit_price=Decimal("3.25")),
        ],
    )
    assert re.fullmatch(r"CG\d{8}001", draft.order_no)
    assert draft.total_amount == Decimal("626.00")
    await service.approve(DocumentKind.PURCHASE, draft.id)

    # 只收第一行的 2 箱
    result = await service.submit_document(
        DocumentKind.PURCHASE,
        DocumentHeader(document_id=draft.id),
        [DocumentLine(detail_id=draft.details[0].id, quantity=Decimal("2"), location_id=world.l2.id)],
    )
    assert result.ok, result.errors
    assert result.status == DocumentStatus.PARTIAL
    assert result.applied_deltas[0].quantity_change == Decimal("24")

    # 其余全部收到默认库位
    rest = await service.submit_document(
        DocumentKind.PURCHASE,
        DocumentHeader(document_id=draft.id, location_id=world.w2l1.id),
    )
    assert not rest.ok
    assert rest.errors[0].code == "VALIDATION_ERROR"  # 库位不属于采购单仓库

    rest = await service.submit_document(
        DocumentKind.PURCHASE,
        DocumentHeader(document_id=draft.id, location_id=world.l2.id),
    )
    assert rest.ok, rest.errors
    assert rest.status == DocumentStatus.COMPLETED
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("60")
    assert await service.query_on_hand(world.m2.id, world.l2.id) == Decimal("8")


async def test_converted_quantity_must_fit_stock_scale(service, session_factory, world):
    async with session_factory() as db:
        third = await make_unit(db, "THIRD", factor="0.333333", is_base=False)
        material = await make_material(db, "M-THIRD", world.kg, third)
        await db.commit()

    def line(quantity):
        return [DocumentLine(material_id=material.id, unit_id=third.id,
                             quantity=Decimal(quantity), location_id=world.l2.id)]

    # 1 × 0.333333 存不进 4 位小数的库存列，整单拒绝
    rejected = await service.submit_document(
        DocumentKind.STOCK_IN, DocumentHeader(warehouse_id=world.wh1.id), line("1")
    )
    assert not rejected.ok
    assert rejected.errors[0].code == "VALIDATION_ERROR"
    assert rejected.errors[0].line_no == 1
    assert await service.query_on_hand(material.id, world.l2.id) == Decimal("0")
    assert await service.list_flows(material_id=material.id) == []

    # 能精确换算的数量：入多少就能出多少
    accepted = await service.submit_document(
        DocumentKind.STOCK_IN, DocumentHeader(warehouse_id=world.wh1.id), line("10000")
    )
    assert accepted.ok, accepted.errors
    assert accepted.applied_deltas[0].quantity_change == Decimal("3333.33")
    assert await service.query_on_hand(material.id, world.l2.id) == Decimal("3333.33")

    shipped = await service.submit_document(
        DocumentKind.STOCK_OUT, DocumentHeader(warehouse_id=world.wh1.id), line("10000")
    )
    assert shipped.ok, shipped.errors
    assert await service.query_on_hand(material.id, world.l2.id) == Decimal("0")


async def test_quantity_with_more_than_four_decimals_is_rejected(service, world):
    result = await stock_out(service, world.wh1, world.m, world.l2, "0.00001")
    assert not result.ok
    assert result.errors[0].code == "VALIDATION_ERROR"

async def test_order_numbers_increase_per_day(service, world):
    first = await stock_in(service, world.wh1, world.m, world.l2, 1)
    second = await stock_in(service, world.wh1, world.m, world.l2, 1)
    assert first.order_no[:10] == second.order_no[:10]
    assert first.order_no.startswith("RK")
    assert int(second.order_no[-3:]) == int(first.order_no[-3:]) + 1


async def test_adjustments(service, world):
    await stock_in(service, world.wh1, world.m, world.l2, 10)

    def adjust(adjustment_type, quantity):
        return service.submit_document(
            DocumentKind.ADJUSTMENT,
            DocumentHeader(warehouse_id=world.wh1.id, adjustment_type=adjustment_type),
            [DocumentLine(material_id=world.m.id, quantity=Decimal(quantity), location_id=world.l2.id)],
        )

    assert (await adjust(AdjustmentType.SURPLUS, "5")).ok
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("15")

    assert (await adjust(AdjustmentType.SHORTAGE, "3")).ok
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("12")

    assert (await adjust(AdjustmentType.FREEZE, "10")).ok
    # 冻结不改变在库数量，但不能再出库
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("12")
    blocked = await stock_out(service, world.wh1, world.m, world.l2, 3)
    assert blocked.errors[0].code == "INSUFFICIENT_STOCK"

    too_much = await adjust(AdjustmentType.UNFREEZE, "11")
    assert too_much.errors[0].code == "INSUFFICIENT_STOCK"

    assert (await adjust(AdjustmentType.UNFREEZE, "10")).ok
    assert (await stock_out(service, world.wh1, world.m, world.l2, 3)).ok
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("9")


async def test_adjustment_type_accepts_chinese_label():
    assert AdjustmentType("盘盈") == AdjustmentType.SURPLUS
    assert AdjustmentType("解冻").display == "解冻"


async def test_document_lifecycle_errors(service, world):
    await stock_in(service, world.wh1, world.m, world.l2, 50)
    draft = await service.create_document(
        DocumentKind.STOCK_OUT,
        DocumentHeader(warehouse_id=world.wh1.id),
        [DocumentLine(material_id=world.m.id, quantity=Decimal("5"), location_id=world.l2.id)],
    )

    # 草稿不能执行
    result = await service.submit_document(DocumentKind.STOCK_OUT, DocumentHeader(document_id=draft.id))
    assert result.errors[0].code == "INVALID_TRANSITION"
    with pytest.raises(InvalidTransitionError):
        result.raise_for_errors()

    await service.approve(DocumentKind.STOCK_OUT, draft.id)
    with pytest.raises(InvalidTransitionError):
        await service.approve(DocumentKind.STOCK_OUT, draft.id)

    done = await service.submit_document(DocumentKind.STOCK_OUT, DocumentHeader(document_id=draft.id))
    assert done.status == DocumentStatus.COMPLETED

    again = await service.submit_document(DocumentKind.STOCK_OUT, DocumentHeader(document_id=draft.id))
    assert again.errors[0].code == "ALREADY_TERMINAL"
    with pytest.raises(AlreadyTerminalError):
        await service.cancel(DocumentKind.STOCK_OUT, draft.id)

    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("45")


async def test_cancel_partially_fulfilled_keeps_applied_stock(service, world):
    await stock_in(service, world.wh1, world.m, world.l2, 50)
    order = await _approved_sales_order(service, world)
    await service.submit_document(
        DocumentKind.SALES,
        DocumentHeader(document_id=order.id),
        [DocumentLine(detail_id=order.details[0].id, quantity=Decimal("4"), location_id=world.l2.id)],
    )

    cancelled = await service.cancel(DocumentKind.SALES, order.id)
    assert cancelled.status == DocumentStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("46")

    after = await service.submit_document(
        DocumentKind.SALES,
        DocumentHeader(document_id=order.id),
        [DocumentLine(detail_id=order.details[0].id, quantity=Decimal("1"), location_id=world.l2.id)],
    )
    assert after.errors[0].code == "ALREADY_TERMINAL"


async def test_missing_document(service, world):
    result = await service.submit_document(DocumentKind.SALES, DocumentHeader(document_id=999))
    assert result.errors[0].code == "NOT_FOUND"


async def test_flows_reference_document(service, world):
    result = await stock_in(service, world.wh1, world.m, world.l2, 7)
    flows = await service.list_flows(document_kind="stock_in", document_id=result.document_id)
    assert len(flows) == 1
    assert flows[0].detail_id == result.applied_deltas[0].detail_id
    assert flows[0].quantity_after == Decimal("7")
    assert flows[0].type_display == "入库"


async def test_malformed_input_is_reported_in_result(service, world):
    result = await service.submit_document(
        DocumentKind.ADJUSTMENT,
        {"warehouse_id": world.wh1.id, "adjustment_type": "lost"},
        [{"material_id": world.m.id, "quantity": "1", "location_id": world.l2.id}],
    )
    assert not result.ok
    assert result.errors[0].code == "VALIDATION_ERROR"
    assert result.errors[0].line_no is None
    assert "adjustment_type" in result.errors[0].message

    result = await service.submit_document(
        DocumentKind.STOCK_IN,
        {"warehouse_id": world.wh1.id},
        [
            {"material_id": world.m.id, "quantity": "1", "location_id": world.l2.id},
            {"material_id": world.m.id, "quantity": "abc", "location_id": world.l2.id},
        ],
    )
    assert not result.ok
    assert result.errors[0].code == "VALIDATION_ERROR"
    assert result.errors[0].line_no == 2
    assert await service.query_on_hand(world.m.id, world.l2.id) == Decimal("0")
