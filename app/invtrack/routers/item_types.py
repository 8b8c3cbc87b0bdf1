from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from app.invtrack.core.context import trace_id_of
from app.invtrack.core.deps import get_current_token_data, require_active_user
from app.invtrack.core.scope import resolve_read_actor, resolve_write_actor
from app.invtrack.db.session import get_db
from app.invtrack.schemas.errors import COMMON_ERROR_RESPONSES
from app.invtrack.schemas.item_types import (
    ItemTypeCreateRequest,
    ItemTypeListResponse,
    ItemTypeResponse,
    ItemTypeUpdateRequest,
)
from app.invtrack.services.audit import AuditEventPayload, AuditService
from app.invtrack.services.item_types import ItemTypeService, item_type_snapshot


router = APIRouter()


def _tenant_arg(tenant_id: UUID | None) -> str | None:
    return str(tenant_id) if tenant_id else None


@router.post("/v1/item-types", response_model=ItemTypeResponse, status_code=201, responses=COMMON_ERROR_RESPONSES)
def create_item_type(
    request: Request,
    payload: ItemTypeCreateRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    item_type = ItemTypeService(db).create(
        actor,
        name=payload.name,
        description=payload.description,
        groupings=[grouping.to_domain() for grouping in payload.groupings],
    )
    response = ItemTypeResponse.from_model(item_type)
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=actor.tenant_id,
            user_id=str(current_user.id),
            trace_id=trace_id_of(request) or None,
            actor=current_user.username,
            action="item_types.create",
            entity_type="item_type",
            entity_id=response.id,
            before=None,
            after=response.model_dump(mode="json"),
            metadata=None,
            result="success",
            actor_role=actor.role,
        )
    )
    return response


@router.get("/v1/item-types", response_model=ItemTypeListResponse, responses=COMMON_ERROR_RESPONSES)
def list_item_types(
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    tenant_id: UUID | None = None,
    search: str | None = None,
    is_active: bool | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
):
    actor = resolve_read_actor(token_data, _tenant_arg(tenant_id))
    rows, total = ItemTypeService(db).list_item_types(
        actor,
        search=search,
        is_active=is_active,
        page=page,
        page_size=page_size,
    )
    return ItemTypeListResponse(
        page=page,
        page_size=page_size,
        total=total,
        rows=[ItemTypeResponse.from_model(row) for row in rows],
    )


@router.get("/v1/item-types/{item_type_id}", response_model=ItemTypeResponse, responses=COMMON_ERROR_RESPONSES)
def get_item_type(
    item_type_id: UUID,
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    tenant_id: UUID | None = None,
):
    actor = resolve_read_actor(token_data, _tenant_arg(tenant_id))
    return ItemTypeResponse.from_model(ItemTypeService(db).get(actor, item_type_id))


@router.put("/v1/item-types/{item_type_id}", response_model=ItemTypeResponse, responses=COMMON_ERROR_RESPONSES)
def update_item_type(
    request: Request,
    item_type_id: UUID,
    payload: ItemTypeUpdateRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    item_type, before = ItemTypeService(db).update(
        actor,
        item_type_id,
        name=payload.name,
        description=payload.description,
        groupings=[grouping.to_domain() for grouping in payload.groupings] if payload.groupings is not None else None,
        is_active=payload.is_active,
        fields_set=set(payload.model_fields_set) - {"tenant_id"},
    )
    response = ItemTypeResponse.from_model(item_type)
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=actor.tenant_id,
            user_id=str(current_user.id),
            trace_id=trace_id_of(request) or None,
            actor=current_user.username,
            action="item_types.update",
            entity_type="item_type",
            entity_id=response.id,
            before=before,
            after=item_type_snapshot(item_type),
            metadata={"deactivated": before["is_active"] and not response.is_active},
            result="success",
            actor_role=actor.role,
        )
    )
    return response
