"""
单据类型登记表

把六种单据在引擎里的差异集中描述：表头/明细的实体类型、单号前缀、
已执行计数器字段、表头引用的往来单位/仓库字段、库存变动方向。
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from wms.models.enums import AdjustmentType, DocumentKind, FlowType
from wms.services.quantity_store import StockDelta


@dataclass(frozen=True)
class DocumentType:
    kind: DocumentKind
    header_type: str
    detail_type: str
    prefix: str
    counter_field: str
    # 表头引用：(字段名, 实体类型)
    references: Tuple[Tuple[str, str], ...]
    # 明细自带库位（入库/出库/调整）；采购/销售在执行时指定库位
    line_location: bool = True
    # 表头金额/数量汇总字段
    total_field: Optional[str] = None
    priced: bool = False

    def counter(self, detail):
        return getattr(detail, self.counter_field)

    def remaining(self, detail):
        return detail.quantity - self.counter(detail)


DOCUMENT_TYPES = {
    DocumentKind.PURCHASE: DocumentType(
        kind=DocumentKind.PURCHASE,
        header_type="purchase_order",
        detail_type="purchase_order_detail",
        prefix="CG",
        counter_field="received_quantity",
        references=(("supplier_id", "supplier"), ("warehouse_id", "warehouse")),
        line_location=False,
        total_field="total_amount",
        priced=True,
    ),
    DocumentKind.SALES: DocumentType(
        kind=DocumentKind.SALES,
        header_type="sales_order",
        detail_type="sales_order_detail",
        prefix="XS",
        counter_field="shipped_quantity",
        references=(("customer_id", "customer"), ("warehouse_id", "warehouse")),
        line_location=False,
        total_field="total_amount",
        priced=True,
    ),
    DocumentKind.STOCK_IN: DocumentType(
        kind=DocumentKind.STOCK_IN,
        header_type="stock_in_order",
        detail_type="stock_in_order_detail",
        prefix="RK",
        counter_field="received_quantity",
        references=(("warehouse_id", "warehouse"),),
        total_field="total_quantity",
    ),
    DocumentKind.STOCK_OUT: DocumentType(
        kind=DocumentKind.STOCK_OUT,
        header_type="stock_out_order",
        detail_type="stock_out_order_detail",
        prefix="CK",
        counter_field="shipped_quantity",
        references=(("warehouse_id", "warehouse"),),
        total_field="total_quantity",
    ),
    DocumentKind.TRANSFER: DocumentType(
        kind=DocumentKind.TRANSFER,
        header_type="transfer_order",
        detail_type="transfer_order_detail",
        prefix="DB",
        counter_field="transferred_quantity",
        references=(("from_warehouse_id", "warehouse"), ("to_warehouse_id", "warehouse")),
    ),
    DocumentKind.ADJUSTMENT: DocumentType(
        kind=DocumentKind.ADJUSTMENT,
        header_type="inventory_adjustment",
        detail_type="inventory_adjustment_detail",
        prefix="PD",
        counter_field="adjusted_quantity",
        references=(("warehouse_id", "warehouse"),),
    ),
}


def get_document_type(kind) -> DocumentType:
    return DOCUMENT_TYPES[DocumentKind(kind)]


def build_deltas(kind, item, adjustment_type=None) -> List[StockDelta]:
    """按单据类型把一行（已换算为基本单位）转成库存变动

    - 入库/采购收货：目标库位 +
    - 出库/销售发货：来源库位 -
    - 调拨：调出库位 -，调入库位 +
    - 调整：盘盈 +，盘亏 -，冻结/解冻只改冻结数量
    """
    kind = DocumentKind(kind)
    q = item.base_quantity
    common = dict(material_id=item.material_id, line_no=item.line_no,
                  detail_id=item.detail_id, batch_no=item.batch_no)

    if kind in (DocumentKind.PURCHASE, DocumentKind.STOCK_IN):
        return [StockDelta(location_id=item.location_id, quantity=q, flow_type=FlowType.IN, **common)]
    if kind in (DocumentKind.SALES, DocumentKind.STOCK_OUT):
        return [StockDelta(location_id=item.location_id, quantity=-q, flow_type=FlowType.OUT, **common)]
    if kind == DocumentKind.TRANSFER:
        return [
            StockDelta(location_id=item.from_location_id, quantity=-q, flow_type=FlowType.TRANSFER_OUT, **common),
            StockDelta(location_id=item.to_location_id, quantity=q, flow_type=FlowType.TRANSFER_IN, **common),
        ]

    adjustment_type = AdjustmentType(adjustment_type)
    if adjustment_type == AdjustmentType.SURPLUS:
        return [StockDelta(location_id=item.location_id, quantity=q, flow_type=FlowType.SURPLUS, **common)]
    if adjustment_type == AdjustmentType.SHORTAGE:
        return [StockDelta(location_id=item.location_id, quantity=-q, flow_type=FlowType.SHORTAGE, **common)]
    if adjustment_type == AdjustmentType.FREEZE:
        return [StockDelta(location_id=item.location_id, frozen=q, flow_type=FlowType.FREEZE, **common)]
    return [StockDelta(location_id=item.location_id, frozen=-q, flow_type=FlowType.UNFREEZE, **common)]
