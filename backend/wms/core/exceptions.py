"""
库存台账异常体系

所有异常继承 InventoryError，并带有：
- code: 机器可读的错误码（API 响应、日志统一使用）
- retryable: 调用方是否可以原样整单重试（只有 Busy 为 True）
- line_no: 出错的明细行号（与单据无关的错误为 None）

    InventoryError
    +-- ValidationError              调用方可修正，单据在任何变更前被拒绝
    |   +-- UnknownUnitError
    |   +-- InactiveUnitError
    |   +-- InactiveMaterialError
    +-- StockRuleError               业务规则拒绝，整单原子回滚
    |   +-- InsufficientStockError
    |   +-- CapacityExceededError
    +-- DocumentStateError           误用
    |   +-- AlreadyTerminalError
    |   +-- InvalidTransitionError
    |   +-- EmptyDocumentError
    +-- BusyError                    锁竞争，可重试
    +-- StoreError                   记录存储协作方错误
        +-- RecordNotFoundError
        +-- ConflictError
        +-- StoreUnavailableError
"""

from decimal import Decimal
from typing import Any, Dict, Optional


class InventoryError(Exception):
    """库存台账错误基类"""

    code: str = "INVENTORY_ERROR"
    retryable: bool = False

    def __init__(self, message: str, *, line_no: Optional[int] = None):
        self.message = message
        self.line_no = line_no
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "line_no": self.line_no,
            "retryable": self.retryable,
        }


# ===== 校验错误 =====

class ValidationError(InventoryError):
    """单据校验失败"""

    code = "VALIDATION_ERROR"

    def __init__(self, reason: str, *, line_no: Optional[int] = None, field: Optional[str] = None):
        self.reason = reason
        self.field = field
        super().__init__(reason, line_no=line_no)


class UnknownUnitError(ValidationError):
    """单位未登记在该物料的基本单位/包装单位上"""

    code = "UNKNOWN_UNIT"

    def __init__(self, material_id: int, unit_id: int, *, line_no: Optional[int] = None):
        self.material_id = material_id
        self.unit_id = unit_id
        super().__init__(
            f"物料 {material_id} 不支持单位 {unit_id}",
            line_no=line_no, field="unit_id",
        )


class InactiveUnitError(ValidationError):
    code = "INACTIVE_UNIT"

    def __init__(self, unit_id: int, *, line_no: Optional[int] = None):
        self.unit_id = unit_id
        super().__init__(f"单位 {unit_id} 已停用", line_no=line_no, field="unit_id")


class InactiveMaterialError(ValidationError):
    code = "INACTIVE_MATERIAL"

    def __init__(self, material_id: int, *, line_no: Optional[int] = None):
        self.material_id = material_id
        super().__init__(f"物料 {material_id} 已停用", line_no=line_no, field="material_id")


# ===== 库存规则 =====

class StockRuleError(InventoryError):
    code = "STOCK_RULE_ERROR"


class InsufficientStockError(StockRuleError):
    """出库/调出/盘亏/冻结后可用库存将为负"""

    code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        material_id: int,
        location_id: int,
        requested: Decimal,
        available: Decimal,
        *,
        line_no: Optional[int] = None,
    ):
        self.material_id = material_id
        self.location_id = location_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"库存不足：物料 {material_id} 在库位 {location_id} 可用 {available}，需要 {requested}",
            line_no=line_no,
        )


class CapacityExceededError(StockRuleError):
    """入库后库位数量将超过 MaxQuantity"""

    code = "CAPACITY_EXCEEDED"

    def __init__(
        self,
        location_id: int,
        max_quantity: Decimal,
        projected: Decimal,
        *,
        line_no: Optional[int] = None,
    ):
        self.location_id = location_id
        self.max_quantity = max_quantity
        self.projected = projected
        super().__init__(
            f"库位 {location_id} 容量不足：上限 {max_quantity}，变动后 {projected}",
            line_no=line_no,
        )


# ===== 单据状态 =====

class DocumentStateError(InventoryError):
    code = "DOCUMENT_STATE_ERROR"


class AlreadyTerminalError(DocumentStateError):
    code = "ALREADY_TERMINAL"

    def __init__(self, kind: str, document_id: int, status: str):
        self.kind = kind
        self.document_id = document_id
        self.status = status
        super().__init__(f"单据 {kind}:{document_id} 已处于终态 {status}，不能再变更")


class InvalidTransitionError(DocumentStateError):
    code = "INVALID_TRANSITION"

    def __init__(self, action: str, status: str):
        self.action = action
        self.status = status
        super().__init__(f"当前状态 '{status}' 不允许执行 '{action}' 操作")


class EmptyDocumentError(DocumentStateError):
    code = "EMPTY_DOCUMENT"

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"{kind} 单据没有明细")


# ===== 并发 =====

class BusyError(InventoryError):
    """等待库位/单据锁超时，或乐观锁冲突"""

    code = "BUSY"
    retryable = True

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f"资源繁忙，请稍后重试: {resource}")


# ===== 记录存储 =====

class StoreError(InventoryError):
    code = "STORE_ERROR"


class RecordNotFoundError(StoreError):
    code = "NOT_FOUND"

    def __init__(self, entity_type: str, record_id: Any):
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"{entity_type} {record_id} 不存在")


class ConflictError(StoreError):
    """并发写入冲突（唯一约束或版本号不一致）"""

    code = "CONFLICT"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"写入冲突: {detail}")


class StoreUnavailableError(StoreError):
    code = "STORE_UNAVAILABLE"

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"存储不可用: {detail}")
