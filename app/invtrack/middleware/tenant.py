from jose import JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.invtrack.core.context import tag_request
from app.invtrack.core.security import decode_token


def _bearer_claims(request: Request) -> dict:
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.lower().startswith("bearer "):
        return {}
    try:
        return decode_token(auth_header.split(" ", 1)[1])
    except JWTError:
        return {}


class TenantContextMiddleware(BaseHTTPMiddleware):
    """Tags the request with the caller's tenant, user and role for logging.

    Decoding is best-effort; authorization happens in the route dependencies.
    """

    async def dispatch(self, request: Request, call_next):
        claims = _bearer_claims(request)
        tag_request(
            request,
            tenant_id=claims.get("tenant_id"),
            user_id=claims.get("sub"),
            role=claims.get("role"),
        )
        return await call_next(request)
