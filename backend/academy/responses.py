# backend/academy/responses.py
from typing import Any, Optional

from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


class ErrorCodes:
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DUPLICATE_ENTRY = "DUPLICATE_ENTRY"


STATUS_CODES = {
    400: ErrorCodes.VALIDATION_ERROR,
    401: ErrorCodes.UNAUTHORIZED,
    403: ErrorCodes.FORBIDDEN,
    404: ErrorCodes.NOT_FOUND,
    409: ErrorCodes.DUPLICATE_ENTRY,
    422: ErrorCodes.VALIDATION_ERROR,
    429: ErrorCodes.RATE_LIMITED,
}


class ApiError(HTTPException):
    """HTTPException that also carries one of the ErrorCodes."""

    def __init__(self, status_code: int, detail: str, code: Optional[str] = None, extra: Optional[dict] = None):
        super().__init__(status_code=status_code, detail=detail)
        self.code = code or STATUS_CODES.get(status_code, ErrorCodes.INTERNAL_ERROR)
        self.extra = extra or {}


def success_response(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder({"success": True, "data": data}),
    )


def error_response(message: str, status_code: int = 400, code: Optional[str] = None, **extra) -> JSONResponse:
    content = {
        "success": False,
        "error": message,
        "code": code or STATUS_CODES.get(status_code, ErrorCodes.INTERNAL_ERROR),
    }
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
