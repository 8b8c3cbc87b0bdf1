from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.invtrack.domain.grouping import Grouping


class GroupingPayload(BaseModel):
    name: str = Field(max_length=50, examples=["box"])
    units_per_group: int = Field(examples=[16])
    weight_label: str | None = Field(default=None, max_length=20, examples=["8kg"])

    def to_domain(self) -> Grouping:
        return Grouping(name=self.name, units_per_group=self.units_per_group, weight_label=self.weight_label)


class ItemTypeCreateRequest(BaseModel):
    tenant_id: UUID | None = None
    name: str = Field(max_length=100, examples=["Tea 500g"])
    description: str | None = Field(default=None, max_length=500)
    groupings: list[GroupingPayload] = Field(default_factory=list)


class ItemTypeUpdateRequest(BaseModel):
    tenant_id: UUID | None = None
    name: str | None = Field(default=None, max_length=100)
    description: str | None = Field(default=None, max_length=500)
    groupings: list[GroupingPayload] | None = None
    is_active: bool | None = None


class GroupingRow(BaseModel):
    name: str
    units_per_group: int
    weight_label: str | None


class ItemTypeResponse(BaseModel):
    id: str
    tenant_id: str
    name: str
    description: str | None
    is_active: bool
    groupings: list[GroupingRow]
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_model(cls, item_type) -> "ItemTypeResponse":
        return cls(
            id=str(item_type.id),
            tenant_id=str(item_type.tenant_id),
            name=item_type.name,
            description=item_type.description,
            is_active=item_type.is_active,
            groupings=[
                GroupingRow(
                    name=grouping.name,
                    units_per_group=grouping.units_per_group,
                    weight_label=grouping.weight_label,
                )
                for grouping in item_type.groupings
            ],
            created_at=item_type.created_at,
            updated_at=item_type.updated_at,
        )


class ItemTypeListResponse(BaseModel):
    page: int
    page_size: int
    total: int
    rows: list[ItemTypeResponse]
