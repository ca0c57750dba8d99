"""库存台账错误 → HTTP 状态码"""
from fastapi import Request
from fastapi.responses import JSONResponse

from wms.core.exceptions import (
    BusyError, DocumentStateError, InventoryError, RecordNotFoundError,
    StockRuleError, StoreUnavailableError, ValidationError
)

# 按顺序匹配，子类在前
STATUS_CODES = (
    (ValidationError, 400),
    (RecordNotFoundError, 404),
    (StockRuleError, 409),
    (DocumentStateError, 409),
    (BusyError, 423),
    (StoreUnavailableError, 503),
)


def status_code_for(exc: InventoryError) -> int:
    for exc_type, status_code in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code
    return 500


async def inventory_error_handler(request: Request, exc: InventoryError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code_for(exc),
        content={"detail": exc.to_dict()},
    )
