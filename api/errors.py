"""
業務異常 -> HTTP 狀態碼

- NotFound -> 404
- InvalidParam / InvalidOrder -> 400
- DuplicatedKey -> 409
- PayloadTooLarge -> 413
- NotAZip -> 422
- 其他 -> 500（不回傳內部訊息）
"""
from fastapi import HTTPException

from core.exceptions import (
    GameRepositoryException,
    NotFound,
    InvalidParam,
    InvalidOrder,
    DuplicatedKey,
    PayloadTooLarge,
    NotAZip
)

_STATUS_CODES = [
    (NotFound, 404),
    (InvalidParam, 400),
    (InvalidOrder, 400),
    (DuplicatedKey, 409),
    (PayloadTooLarge, 413),
    (NotAZip, 422),
]


def http_error(e: GameRepositoryException) -> HTTPException:
    for exc_type, status_code in _STATUS_CODES:
        if isinstance(e, exc_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(status_code=500, detail="internal server error")


def internal_error() -> HTTPException:
    return HTTPException(status_code=500, detail="internal server error")
