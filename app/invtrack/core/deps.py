from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials
from jose import JWTError
from pydantic import ValidationError

from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.security import TokenData, bearer_scheme, decode_token
from app.invtrack.db.session import get_db
from app.invtrack.repos.users import UserRepository


def get_current_token_data(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> TokenData:
    if credentials is None or not credentials.credentials:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    try:
        payload = decode_token(credentials.credentials)
        return TokenData(**payload)
    except (JWTError, ValidationError, TypeError) as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc


def get_current_user(token_data: TokenData = Depends(get_current_token_data), db=Depends(get_db)):
    try:
        user_id = UUID(token_data.sub)
    except ValueError as exc:
        raise AppError(ErrorCatalog.INVALID_TOKEN) from exc
    user = UserRepository(db).get_by_id(user_id)
    if user is None:
        raise AppError(ErrorCatalog.INVALID_TOKEN)
    return user


def require_active_user(user=Depends(get_current_user)):
    if not user.is_active:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "user is inactive"})
    return user


__all__ = [
    "get_current_token_data",
    "get_current_user",
    "require_active_user",
]
