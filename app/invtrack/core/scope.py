from dataclasses import dataclass

from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.security import TokenData


OWNER_ROLES = {"OWNER"}
EMPLOYEE_ROLES = {"EMPLOYEE"}
SUPERADMIN_ROLES = {"SUPERADMIN", "MASTER"}


def _normalize_role(role: str | None) -> str:
    return (role or "").upper()


def is_superadmin(role: str | None) -> bool:
    return _normalize_role(role) in SUPERADMIN_ROLES


def is_tenant_owner(role: str | None) -> bool:
    return _normalize_role(role) in OWNER_ROLES


def is_field_employee(role: str | None) -> bool:
    return _normalize_role(role) in EMPLOYEE_ROLES


@dataclass(frozen=True)
class Actor:
    """Who is acting and on which tenant.

    ``tenant_id`` is the tenant the request is scoped to, which for an
    impersonating super-admin differs from the tenant on the token.
    """

    user_id: str
    tenant_id: str | None
    role: str
    username: str | None = None
    impersonating: bool = False

    @property
    def is_owner(self) -> bool:
        return is_tenant_owner(self.role) or (self.impersonating and is_superadmin(self.role))

    @property
    def is_employee(self) -> bool:
        return is_field_employee(self.role)

    @property
    def is_superadmin(self) -> bool:
        return is_superadmin(self.role)


def resolve_read_actor(token_data: TokenData, tenant_id: str | None) -> Actor:
    if is_superadmin(token_data.role):
        return Actor(
            user_id=token_data.sub,
            tenant_id=tenant_id,
            role=token_data.role,
            username=token_data.username,
            impersonating=tenant_id is not None,
        )
    return Actor(
        user_id=token_data.sub,
        tenant_id=_own_tenant(token_data, tenant_id),
        role=token_data.role,
        username=token_data.username,
    )


def resolve_write_actor(token_data: TokenData, tenant_id: str | None) -> Actor:
    if is_superadmin(token_data.role):
        if not tenant_id:
            raise AppError(
                ErrorCatalog.ACCESS_DENIED,
                details={"message": "super-admin mutations require an impersonated tenant_id"},
            )
        return Actor(
            user_id=token_data.sub,
            tenant_id=tenant_id,
            role=token_data.role,
            username=token_data.username,
            impersonating=True,
        )
    if not (is_tenant_owner(token_data.role) or is_field_employee(token_data.role)):
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"role": token_data.role})
    return Actor(
        user_id=token_data.sub,
        tenant_id=_own_tenant(token_data, tenant_id),
        role=token_data.role,
        username=token_data.username,
    )


def require_owner(actor: Actor) -> None:
    if actor.is_owner:
        return
    raise AppError(
        ErrorCatalog.ACCESS_DENIED,
        details={"message": "tenant owner capability required", "role": actor.role},
    )


def _own_tenant(token_data: TokenData, tenant_id: str | None) -> str:
    if not token_data.tenant_id:
        raise AppError(ErrorCatalog.TENANT_SCOPE_REQUIRED)
    if tenant_id and tenant_id != token_data.tenant_id:
        raise AppError(ErrorCatalog.CROSS_TENANT_ACCESS_DENIED)
    return token_data.tenant_id
