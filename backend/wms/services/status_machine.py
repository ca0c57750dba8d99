"""
单据状态机

    draft --approve--> approved --apply(部分)--> partial --apply(全部)--> completed
    draft / approved / partial --cancel--> cancelled

completed / cancelled 为终态，状态只前进不回退。
"""

from datetime import datetime
from enum import Enum

from wms.core.exceptions import AlreadyTerminalError, InvalidTransitionError
from wms.models.enums import DocumentStatus


class Progress(str, Enum):
    """一次执行后的整体进度"""
    NONE = "none"
    PARTIAL = "partial"
    COMPLETE = "complete"


class OrderStatusMachine:
    """只做状态判断和时间戳，不负责持久化"""

    def __init__(self, kind: str):
        self.kind = kind

    def _ensure_not_terminal(self, header):
        status = DocumentStatus(header.status)
        if status.is_terminal:
            raise AlreadyTerminalError(self.kind, header.id, status.value)
        return status

    def approve(self, header) -> dict:
        status = self._ensure_not_terminal(header)
        if status != DocumentStatus.DRAFT:
            raise InvalidTransitionError("approve", status.value)
        return {"status": DocumentStatus.APPROVED, "approved_at": datetime.utcnow()}

    def cancel(self, header) -> dict:
        self._ensure_not_terminal(header)
        return {"status": DocumentStatus.CANCELLED, "cancelled_at": datetime.utcnow()}

    def ensure_can_apply(self, header):
        status = self._ensure_not_terminal(header)
        if status not in (DocumentStatus.APPROVED, DocumentStatus.PARTIAL):
            raise InvalidTransitionError("apply", status.value)
        return status

    def apply(self, header, progress: Progress) -> dict:
        """根据执行进度返回需要更新的字段；进度为 NONE 时状态不变"""
        status = self.ensure_can_apply(header)
        if progress == Progress.COMPLETE:
            return {"status": DocumentStatus.COMPLETED, "completed_at": datetime.utcnow()}
        if progress == Progress.PARTIAL:
            return {"status": DocumentStatus.PARTIAL}
        return {"status": status}
