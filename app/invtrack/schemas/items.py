from datetime import datetime
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, PlainSerializer, WithJsonSchema

from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.domain.grouping import GroupedQuantity, QuantityRequest, RawQuantity
from app.invtrack.domain.lifecycle import ItemStatus


MoneyValue = Annotated[
    Decimal,
    PlainSerializer(lambda value: format(value.quantize(Decimal("0.01")), "f"), return_type=str, when_used="json"),
    WithJsonSchema({"type": "string", "pattern": r"^\d{1,10}(?:\.\d{2})?$"}, mode="serialization"),
]

# Sign is checked by the lifecycle so a negative price reports INVALID_PRICE.
PriceInput = Annotated[Decimal, Field(max_digits=12, decimal_places=2)]


class QuantityFields(BaseModel):
    quantity: int | None = Field(default=None, examples=[10])
    group_name: str | None = Field(default=None, max_length=50, examples=["box"])
    group_count: int | None = Field(default=None, examples=[3])

    def to_quantity_request(self) -> QuantityRequest:
        if self.group_name is not None:
            if self.quantity is not None:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "send either quantity or group_name/group_count, not both"},
                )
            if self.group_count is None:
                raise AppError(
                    ErrorCatalog.INVALID_QUANTITY,
                    details={"group_name": self.group_name, "group_count": None},
                )
            return GroupedQuantity(group_name=self.group_name, group_count=self.group_count)
        if self.quantity is None:
            raise AppError(ErrorCatalog.INVALID_QUANTITY, details={"quantity": None})
        return RawQuantity(count=self.quantity)


class ItemCreateRequest(QuantityFields):
    item_type_id: UUID
    tenant_id: UUID | None = None
    notes: str | None = Field(default=None, max_length=500)


class BulkStatusUpdateRequest(QuantityFields):
    item_type_id: UUID
    tenant_id: UUID | None = None
    current_status: ItemStatus
    target_status: ItemStatus
    holder_id: UUID | None = None
    sell_price: PriceInput | None = Field(default=None, examples=["12.50"])
    sale_to: UUID | None = None
    notes: str | None = Field(default=None, max_length=500)


class BulkDeleteRequest(QuantityFields):
    item_type_id: UUID
    tenant_id: UUID | None = None
    current_status: ItemStatus | None = None
    confirm: bool = False


class ItemUpdateRequest(BaseModel):
    tenant_id: UUID | None = None
    target_status: ItemStatus
    holder_id: UUID | None = None
    sell_price: PriceInput | None = Field(default=None, examples=["12.50"])
    sale_to: UUID | None = None
    notes: str | None = Field(default=None, max_length=500)


def _str_or_none(value) -> str | None:
    return str(value) if value is not None else None


class ItemRow(BaseModel):
    id: str
    tenant_id: str
    item_type_id: str
    status: ItemStatus
    current_holder_id: str | None
    sell_price: MoneyValue | None = Field(default=None, examples=["12.50"])
    sale_to: str | None = None
    sold_at: datetime | None = None
    returned_at: datetime | None = None
    created_by: str
    created_at: datetime
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, item) -> "ItemRow":
        return cls(
            id=str(item.id),
            tenant_id=str(item.tenant_id),
            item_type_id=str(item.item_type_id),
            status=item.status,
            current_holder_id=_str_or_none(item.current_holder_id),
            sell_price=item.sell_price,
            sale_to=_str_or_none(item.sale_to_id),
            sold_at=item.sold_at,
            returned_at=item.returned_at,
            created_by=str(item.created_by),
            created_at=item.created_at,
            updated_at=item.updated_at,
        )


class StatusChangeRow(BaseModel):
    sequence: int
    status: ItemStatus
    holder_id: str | None
    changed_by: str
    notes: str | None
    changed_at: datetime

    @classmethod
    def from_model(cls, change) -> "StatusChangeRow":
        return cls(
            sequence=change.sequence,
            status=change.status,
            holder_id=_str_or_none(change.holder_id),
            changed_by=str(change.changed_by),
            notes=change.notes,
            changed_at=change.changed_at,
        )


class ItemDetailResponse(ItemRow):
    history: list[StatusChangeRow]


class BulkCreateResponse(BaseModel):
    tenant_id: str
    item_type_id: str
    created: int
    sample: list[ItemRow]
    trace_id: str


class BulkUpdateResponse(BaseModel):
    tenant_id: str
    item_type_id: str
    target_status: ItemStatus
    updated: int
    sample: list[ItemRow]
    trace_id: str


class BulkDeleteResponse(BaseModel):
    tenant_id: str
    item_type_id: str
    deleted: int
    trace_id: str


class ItemListMeta(BaseModel):
    page: int
    page_size: int
    total: int


class ItemListResponse(BaseModel):
    meta: ItemListMeta
    rows: list[ItemRow]


class StatusCounts(BaseModel):
    IN_INVENTORY: int = 0
    WITH_EMPLOYEE: int = 0
    SOLD: int = 0


class ItemTypeSummaryRow(BaseModel):
    item_type_id: str
    item_type_name: str
    counts: StatusCounts
    total: int


class ItemSummaryResponse(BaseModel):
    tenant_id: str | None
    rows: list[ItemTypeSummaryRow]
