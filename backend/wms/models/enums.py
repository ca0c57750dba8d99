"""单据类型、状态等枚举（闭合取值，数据库中存英文值，显示用中文）"""

from enum import Enum


class DocumentKind(str, Enum):
    """单据类型"""

    PURCHASE = "purchase"
    SALES = "sales"
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    TRANSFER = "transfer"
    ADJUSTMENT = "adjustment"

    @property
    def display(self) -> str:
        return {
            DocumentKind.PURCHASE: "采购单",
            DocumentKind.SALES: "销售单",
            DocumentKind.STOCK_IN: "入库单",
            DocumentKind.STOCK_OUT: "出库单",
            DocumentKind.TRANSFER: "调拨单",
            DocumentKind.ADJUSTMENT: "库存调整单",
        }[self]


class DocumentStatus(str, Enum):
    """单据状态

    draft → approved → partial → completed，cancelled 可由任一非终态到达
    """

    DRAFT = "draft"
    APPROVED = "approved"
    PARTIAL = "partial"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DocumentStatus.COMPLETED, DocumentStatus.CANCELLED)


# 部分执行状态的显示名随单据类型不同
_PARTIAL_DISPLAY = {
    DocumentKind.PURCHASE: "部分入库",
    DocumentKind.STOCK_IN: "部分入库",
    DocumentKind.SALES: "部分出库",
    DocumentKind.STOCK_OUT: "部分出库",
    DocumentKind.TRANSFER: "部分调拨",
    DocumentKind.ADJUSTMENT: "部分调整",
}

_STATUS_DISPLAY = {
    DocumentStatus.DRAFT: "草稿",
    DocumentStatus.APPROVED: "已审核",
    DocumentStatus.COMPLETED: "已完成",
    DocumentStatus.CANCELLED: "已取消",
}


def status_display(kind: DocumentKind, status: DocumentStatus) -> str:
    """状态显示名称，如 (sales, partial) → 部分出库"""
    if status == DocumentStatus.PARTIAL:
        return _PARTIAL_DISPLAY[DocumentKind(kind)]
    return _STATUS_DISPLAY[DocumentStatus(status)]


class AdjustmentType(str, Enum):
    """库存调整类型"""

    SURPLUS = "surplus"      # 盘盈
    SHORTAGE = "shortage"    # 盘亏
    FREEZE = "freeze"        # 冻结
    UNFREEZE = "unfreeze"    # 解冻

    @property
    def display(self) -> str:
        return _ADJUSTMENT_DISPLAY[self]

    @classmethod
    def _missing_(cls, value):
        # 允许直接传中文：盘盈/盘亏/冻结/解冻
        for member, label in _ADJUSTMENT_DISPLAY.items():
            if value == label:
                return member
        return None


_ADJUSTMENT_DISPLAY = {
    AdjustmentType.SURPLUS: "盘盈",
    AdjustmentType.SHORTAGE: "盘亏",
    AdjustmentType.FREEZE: "冻结",
    AdjustmentType.UNFREEZE: "解冻",
}


class FlowType(str, Enum):
    """库存流水类型"""

    IN = "in"
    OUT = "out"
    TRANSFER_OUT = "transfer_out"
    TRANSFER_IN = "transfer_in"
    SURPLUS = "surplus"
    SHORTAGE = "shortage"
    FREEZE = "freeze"
    UNFREEZE = "unfreeze"


class AlertLevel(str, Enum):
    """库存预警级别"""

    NORMAL = "normal"
    BELOW_MIN = "below_min"
    ABOVE_MAX = "above_max"
