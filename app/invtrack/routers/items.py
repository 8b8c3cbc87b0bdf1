from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from app.invtrack.core.config import settings
from app.invtrack.core.context import trace_id_of
from app.invtrack.core.deps import get_current_token_data, require_active_user
from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.scope import Actor, resolve_read_actor, resolve_write_actor
from app.invtrack.db.session import get_db
from app.invtrack.domain.lifecycle import ItemStatus, TransitionRequest
from app.invtrack.schemas.errors import COMMON_ERROR_RESPONSES, RESERVATION_ERROR_RESPONSES
from app.invtrack.schemas.items import (
    BulkCreateResponse,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkStatusUpdateRequest,
    BulkUpdateResponse,
    ItemCreateRequest,
    ItemDetailResponse,
    ItemListMeta,
    ItemListResponse,
    ItemRow,
    ItemSummaryResponse,
    ItemTypeSummaryRow,
    ItemUpdateRequest,
    StatusChangeRow,
    StatusCounts,
)
from app.invtrack.services.audit import AuditEventPayload, AuditService
from app.invtrack.services.idempotency import (
    REPLAY_HEADER,
    IdempotencyScope,
    IdempotencyService,
    extract_idempotency_key,
)
from app.invtrack.services.reservation import BulkReservationEngine


router = APIRouter()


def _tenant_arg(tenant_id: UUID | None) -> str | None:
    return str(tenant_id) if tenant_id else None


def _optional_id(value: UUID | None) -> str | None:
    return str(value) if value is not None else None


def _begin_idempotent(request: Request, db, actor: Actor, payload):
    key = extract_idempotency_key(request.headers)
    if key is None:
        return None, None
    context, replay = IdempotencyService(db).start(
        IdempotencyScope(
            tenant_id=actor.tenant_id,
            endpoint=str(request.url.path),
            method=request.method,
            key=key,
        ),
        IdempotencyService.fingerprint(payload.model_dump(mode="json")),
    )
    if replay:
        return None, JSONResponse(
            status_code=replay.status_code,
            content=replay.response_body,
            headers={REPLAY_HEADER: ErrorCatalog.IDEMPOTENCY_REPLAY.code},
        )
    request.state.idempotency = context
    return context, None


def _finish_idempotent(context, status_code: int, response) -> None:
    if context is not None:
        context.record_success(status_code=status_code, response_body=response.model_dump(mode="json"))


def _audit(db, request: Request, actor: Actor, current_user, *, action: str, entity_id: str | None, before, after, metadata=None):
    AuditService(db).record_event(
        AuditEventPayload(
            tenant_id=actor.tenant_id,
            user_id=str(current_user.id),
            trace_id=trace_id_of(request) or None,
            actor=current_user.username,
            action=action,
            entity_type="item",
            entity_id=entity_id,
            before=before,
            after=after,
            metadata=metadata,
            result="success",
            actor_role=actor.role,
        )
    )


def _transition_request(payload) -> TransitionRequest:
    return TransitionRequest(
        target=payload.target_status,
        holder_id=_optional_id(payload.holder_id),
        sell_price=payload.sell_price,
        sale_to=_optional_id(payload.sale_to),
        notes=payload.notes,
    )


@router.post("/v1/items", response_model=BulkCreateResponse, status_code=201, responses=RESERVATION_ERROR_RESPONSES)
def create_items(
    request: Request,
    payload: ItemCreateRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    context, replay = _begin_idempotent(request, db, actor, payload)
    if replay:
        return replay

    outcome = BulkReservationEngine(db).create_items(
        actor,
        payload.item_type_id,
        payload.to_quantity_request(),
        notes=payload.notes,
    )
    response = BulkCreateResponse(
        tenant_id=actor.tenant_id,
        item_type_id=str(payload.item_type_id),
        created=outcome.count,
        sample=[ItemRow.from_model(item) for item in outcome.sample],
        trace_id=trace_id_of(request),
    )
    _finish_idempotent(context, 201, response)
    _audit(
        db,
        request,
        actor,
        current_user,
        action="items.bulk_create",
        entity_id=str(payload.item_type_id),
        before=None,
        after={"created": outcome.count, "status": ItemStatus.IN_INVENTORY.value},
        metadata={"quantity": payload.quantity, "group_name": payload.group_name, "group_count": payload.group_count},
    )
    return response


@router.patch("/v1/items/bulk", response_model=BulkUpdateResponse, responses=RESERVATION_ERROR_RESPONSES)
def bulk_update_items(
    request: Request,
    payload: BulkStatusUpdateRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    context, replay = _begin_idempotent(request, db, actor, payload)
    if replay:
        return replay

    outcome = BulkReservationEngine(db).bulk_update_status(
        actor,
        payload.item_type_id,
        _transition_request(payload),
        payload.to_quantity_request(),
        current_status=payload.current_status,
    )
    response = BulkUpdateResponse(
        tenant_id=actor.tenant_id,
        item_type_id=str(payload.item_type_id),
        target_status=payload.target_status,
        updated=outcome.count,
        sample=[ItemRow.from_model(item) for item in outcome.sample],
        trace_id=trace_id_of(request),
    )
    _finish_idempotent(context, 200, response)
    _audit(
        db,
        request,
        actor,
        current_user,
        action="items.bulk_update",
        entity_id=str(payload.item_type_id),
        before={"status": payload.current_status.value},
        after={
            "status": payload.target_status.value,
            "updated": outcome.count,
            "holder_id": _optional_id(payload.holder_id),
        },
    )
    return response


@router.delete("/v1/items/bulk", response_model=BulkDeleteResponse, responses=RESERVATION_ERROR_RESPONSES)
def bulk_delete_items(
    request: Request,
    payload: BulkDeleteRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    if not payload.confirm:
        raise AppError(
            ErrorCatalog.VALIDATION_ERROR,
            details={"message": "bulk delete requires confirm: true"},
        )
    context, replay = _begin_idempotent(request, db, actor, payload)
    if replay:
        return replay

    outcome = BulkReservationEngine(db).bulk_delete(
        actor,
        payload.item_type_id,
        payload.to_quantity_request(),
        current_status=payload.current_status,
    )
    response = BulkDeleteResponse(
        tenant_id=actor.tenant_id,
        item_type_id=str(payload.item_type_id),
        deleted=outcome.count,
        trace_id=trace_id_of(request),
    )
    _finish_idempotent(context, 200, response)
    _audit(
        db,
        request,
        actor,
        current_user,
        action="items.bulk_delete",
        entity_id=str(payload.item_type_id),
        before={"status": payload.current_status.value if payload.current_status else None},
        after={"deleted": outcome.count},
    )
    return response


@router.get("/v1/items/summary", response_model=ItemSummaryResponse, responses=COMMON_ERROR_RESPONSES)
def items_summary(
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    item_type_id: UUID | None = None,
    tenant_id: UUID | None = None,
):
    actor = resolve_read_actor(token_data, _tenant_arg(tenant_id))
    summaries = BulkReservationEngine(db).get_summary(actor, item_type_id)
    return ItemSummaryResponse(
        tenant_id=actor.tenant_id,
        rows=[
            ItemTypeSummaryRow(
                item_type_id=summary.item_type_id,
                item_type_name=summary.item_type_name,
                counts=StatusCounts(**summary.counts),
                total=summary.total,
            )
            for summary in summaries
        ],
    )


@router.get("/v1/items/mine", response_model=ItemListResponse, responses=COMMON_ERROR_RESPONSES)
def list_my_items(
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    status: ItemStatus | None = None,
    item_type_id: UUID | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.ITEMS_LIST_MAX_PAGE_SIZE),
):
    actor = resolve_read_actor(token_data, None)
    rows, total = BulkReservationEngine(db).list_items(
        actor,
        status=status,
        item_type_id=item_type_id,
        page=page,
        page_size=page_size,
        mine=True,
    )
    return ItemListResponse(
        meta=ItemListMeta(page=page, page_size=page_size, total=total),
        rows=[ItemRow.from_model(item) for item in rows],
    )


@router.get("/v1/items", response_model=ItemListResponse, responses=COMMON_ERROR_RESPONSES)
def list_items(
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    status: ItemStatus | None = None,
    item_type_id: UUID | None = None,
    tenant_id: UUID | None = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=settings.ITEMS_LIST_MAX_PAGE_SIZE),
):
    actor = resolve_read_actor(token_data, _tenant_arg(tenant_id))
    rows, total = BulkReservationEngine(db).list_items(
        actor,
        status=status,
        item_type_id=item_type_id,
        page=page,
        page_size=page_size,
    )
    return ItemListResponse(
        meta=ItemListMeta(page=page, page_size=page_size, total=total),
        rows=[ItemRow.from_model(item) for item in rows],
    )


@router.get("/v1/items/{item_id}", response_model=ItemDetailResponse, responses=COMMON_ERROR_RESPONSES)
def get_item(
    item_id: UUID,
    token_data=Depends(get_current_token_data),
    _user=Depends(require_active_user),
    db=Depends(get_db),
    tenant_id: UUID | None = None,
):
    actor = resolve_read_actor(token_data, _tenant_arg(tenant_id))
    item, history = BulkReservationEngine(db).get_item(actor, item_id)
    row = ItemRow.from_model(item)
    return ItemDetailResponse(
        **row.model_dump(),
        history=[StatusChangeRow.from_model(change) for change in history],
    )


@router.patch("/v1/items/{item_id}", response_model=ItemRow, responses=RESERVATION_ERROR_RESPONSES)
def update_item(
    request: Request,
    item_id: UUID,
    payload: ItemUpdateRequest,
    token_data=Depends(get_current_token_data),
    current_user=Depends(require_active_user),
    db=Depends(get_db),
):
    actor = resolve_write_actor(token_data, _tenant_arg(payload.tenant_id))
    context, replay = _begin_idempotent(request, db, actor, payload)
    if replay:
        return replay

    engine = BulkReservationEngine(db)
    before = engine.items.get(item_id, actor.tenant_id)
    before_status = before.status if before is not None else None
    item = engine.update_single_item(actor, item_id, _transition_request(payload))
    response = ItemRow.from_model(item)
    _finish_idempotent(context, 200, response)
    _audit(
        db,
        request,
        actor,
        current_user,
        action="items.update",
        entity_id=str(item.id),
        before={"status": before_status},
        after={"status": item.status, "holder_id": response.current_holder_id},
    )
    return response
