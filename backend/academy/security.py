# backend/academy/security.py
import hmac
from typing import Optional

from fastapi import Header, Request

from .config import settings
from .responses import ApiError, ErrorCodes


def require_admin(x_admin_key: Optional[str] = Header(None)) -> None:
    """Operator endpoints: the X-Admin-Key header must match ADMIN_API_KEY."""
    if not x_admin_key:
        raise ApiError(401, "Unauthorized", ErrorCodes.UNAUTHORIZED)
    if not hmac.compare_digest(x_admin_key.encode(), settings.ADMIN_API_KEY.encode()):
        raise ApiError(403, "Forbidden", ErrorCodes.FORBIDDEN)


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "unknown"
