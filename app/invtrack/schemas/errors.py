from pydantic import BaseModel


class ApiErrorResponse(BaseModel):
    code: str
    message: str
    details: dict | None = None
    trace_id: str | None = None


class ApiValidationErrorItem(BaseModel):
    field: str | None = None
    message: str
    type: str
    loc: list[str | int] | None = None


class ApiValidationErrorDetails(BaseModel):
    errors: list[ApiValidationErrorItem]


class ApiValidationErrorResponse(ApiErrorResponse):
    details: ApiValidationErrorDetails | dict | None = None


COMMON_ERROR_RESPONSES = {
    401: {"model": ApiErrorResponse, "description": "Missing or invalid bearer token"},
    403: {"model": ApiErrorResponse, "description": "Role or tenant scope denies the request"},
    404: {"model": ApiErrorResponse, "description": "Item or item type not found in scope"},
    422: {"model": ApiValidationErrorResponse, "description": "Request body failed validation"},
}

RESERVATION_ERROR_RESPONSES = {
    **COMMON_ERROR_RESPONSES,
    400: {"model": ApiErrorResponse, "description": "Quantity, grouping, transition, holder or price rejected"},
    409: {"model": ApiErrorResponse, "description": "Insufficient inventory, sold items or idempotency conflict"},
}
