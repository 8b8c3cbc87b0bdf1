from dataclasses import dataclass
from fastapi import status


@dataclass(frozen=True)
class ErrorDefinition:
    code: str
    message: str
    status_code: int


class ErrorCatalog:
    INVALID_TOKEN = ErrorDefinition("INVALID_TOKEN", "Invalid token", status.HTTP_401_UNAUTHORIZED)
    ACCESS_DENIED = ErrorDefinition(
        "ACCESS_DENIED",
        "Access denied",
        status.HTTP_403_FORBIDDEN,
    )
    TENANT_SCOPE_REQUIRED = ErrorDefinition(
        "TENANT_SCOPE_REQUIRED",
        "Tenant scope is required",
        status.HTTP_403_FORBIDDEN,
    )
    CROSS_TENANT_ACCESS_DENIED = ErrorDefinition(
        "CROSS_TENANT_ACCESS_DENIED",
        "Cross-tenant access denied",
        status.HTTP_403_FORBIDDEN,
    )
    NOT_FOUND = ErrorDefinition(
        "NOT_FOUND",
        "Resource not found",
        status.HTTP_404_NOT_FOUND,
    )
    INVALID_QUANTITY = ErrorDefinition(
        "INVALID_QUANTITY",
        "Quantity must be a positive whole number",
        status.HTTP_400_BAD_REQUEST,
    )
    UNKNOWN_GROUPING = ErrorDefinition(
        "UNKNOWN_GROUPING",
        "Grouping not defined for item type",
        status.HTTP_400_BAD_REQUEST,
    )
    INVALID_TRANSITION = ErrorDefinition(
        "INVALID_TRANSITION",
        "Status transition not allowed",
        status.HTTP_400_BAD_REQUEST,
    )
    ALREADY_SOLD = ErrorDefinition(
        "ALREADY_SOLD",
        "Item is already sold",
        status.HTTP_400_BAD_REQUEST,
    )
    INVALID_HOLDER = ErrorDefinition(
        "INVALID_HOLDER",
        "Holder must be an active field employee of the same tenant",
        status.HTTP_400_BAD_REQUEST,
    )
    INVALID_PRICE = ErrorDefinition(
        "INVALID_PRICE",
        "Sell price is required and must not be negative",
        status.HTTP_400_BAD_REQUEST,
    )
    INSUFFICIENT_INVENTORY = ErrorDefinition(
        "INSUFFICIENT_INVENTORY",
        "Not enough matching items available",
        status.HTTP_409_CONFLICT,
    )
    CANNOT_DELETE_SOLD = ErrorDefinition(
        "CANNOT_DELETE_SOLD",
        "Sold items cannot be deleted",
        status.HTTP_409_CONFLICT,
    )
    DUPLICATE_ITEM_TYPE = ErrorDefinition(
        "DUPLICATE_ITEM_TYPE",
        "Item type with this name already exists",
        status.HTTP_409_CONFLICT,
    )
    DB_UNAVAILABLE = ErrorDefinition(
        "DB_UNAVAILABLE",
        "Database unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    LOCK_TIMEOUT = ErrorDefinition(
        "LOCK_TIMEOUT",
        "Lock wait timeout",
        status.HTTP_409_CONFLICT,
    )
    VALIDATION_ERROR = ErrorDefinition(
        "VALIDATION_ERROR",
        "Validation error",
        status.HTTP_422_UNPROCESSABLE_ENTITY,
    )
    INTERNAL_ERROR = ErrorDefinition(
        "INTERNAL_ERROR",
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD = ErrorDefinition(
        "IDEMPOTENCY_KEY_REUSED_WITH_DIFFERENT_PAYLOAD",
        "Idempotency key reused with different payload",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REQUEST_IN_PROGRESS = ErrorDefinition(
        "IDEMPOTENCY_REQUEST_IN_PROGRESS",
        "Idempotency request already in progress",
        status.HTTP_409_CONFLICT,
    )
    IDEMPOTENCY_REPLAY = ErrorDefinition(
        "IDEMPOTENCY_REPLAY",
        "Idempotent replay",
        status.HTTP_200_OK,
    )


class AppError(Exception):
    def __init__(self, error: ErrorDefinition, details: object | None = None):
        self.error = error
        self.details = details
        super().__init__(error.message)

    @property
    def code(self) -> str:
        return self.error.code
