"""Bulk reservation engine.

Every mutating operation follows the same shape: resolve the quantity,
compute the visible candidate set, select exactly that many items oldest
first, validate each one against the lifecycle state machine, and apply the
change with guarded UPDATE/DELETE statements inside a single transaction.

The guard on each statement repeats the snapshot the validation ran against
(status, holder, revision). If a concurrent request changed any selected item
in between, fewer rows match, the transaction is rolled back and the caller
gets ``INSUFFICIENT_INVENTORY`` with the number that could still be claimed.
"""

import logging
import uuid
from dataclasses import dataclass, field

from app.invtrack.core.config import settings
from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.logging import log_json
from app.invtrack.core.metrics import metrics
from app.invtrack.core.scope import Actor, require_owner
from app.invtrack.db.models import Item, ItemStatusChange, utcnow
from app.invtrack.domain.grouping import QuantityRequest, resolve_quantity
from app.invtrack.domain.lifecycle import (
    ItemStatus,
    ReturnPolicy,
    TransitionKind,
    TransitionRequest,
    TransitionResult,
    initial_event,
    state_columns,
    state_from_columns,
    transition,
)
from app.invtrack.repos.item_types import ItemTypeRepository
from app.invtrack.repos.items import (
    CandidateFilter,
    ItemRepository,
    Snapshot,
    filter_conditions,
    scope_conditions,
)
from app.invtrack.repos.users import UserRepository
from app.invtrack.services.visibility import (
    can_read_item,
    can_touch_item,
    delete_scope,
    mutation_scope,
    narrow_for_return,
    own_items_scope,
    read_scope,
)

logger = logging.getLogger("invtrack.reservation")

STATUS_ORDER = (ItemStatus.IN_INVENTORY, ItemStatus.WITH_EMPLOYEE, ItemStatus.SOLD)


@dataclass
class BulkOutcome:
    count: int
    sample: list[Item] = field(default_factory=list)


@dataclass
class TypeStatusSummary:
    item_type_id: str
    item_type_name: str
    counts: dict[str, int]

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def _snapshot_of(item: Item) -> Snapshot:
    return Snapshot(status=item.status, holder_id=item.current_holder_id, revision=item.revision)


def _history_row(item_id, sequence: int, result_event, *, at) -> dict:
    return {
        "id": uuid.uuid4(),
        "item_id": item_id,
        "sequence": sequence,
        "status": result_event.status.value,
        "holder_id": result_event.holder_id,
        "changed_by": result_event.changed_by,
        "notes": result_event.notes,
        "changed_at": at,
    }


class BulkReservationEngine:
    def __init__(
        self,
        db,
        *,
        return_policy: ReturnPolicy | str | None = None,
        sample_size: int | None = None,
        max_quantity: int | None = None,
        chunk_size: int | None = None,
    ):
        self.db = db
        self.items = ItemRepository(db)
        self.item_types = ItemTypeRepository(db)
        self.users = UserRepository(db)
        self.return_policy = ReturnPolicy(return_policy or settings.RETURN_POLICY)
        self.sample_size = settings.BULK_SAMPLE_SIZE if sample_size is None else sample_size
        self.max_quantity = settings.BULK_MAX_QUANTITY if max_quantity is None else max_quantity
        self.chunk_size = chunk_size or settings.BULK_CLAIM_CHUNK_SIZE

    # -- mutations -------------------------------------------------------

    def create_items(self, actor: Actor, item_type_id, quantity: QuantityRequest, *, notes: str | None = None) -> BulkOutcome:
        try:
            require_owner(actor)
            item_type = self._load_item_type(actor, item_type_id)
            if not item_type.is_active:
                raise AppError(
                    ErrorCatalog.VALIDATION_ERROR,
                    details={"message": "item type is inactive", "item_type_id": str(item_type.id)},
                )
            requested = resolve_quantity(item_type.groupings, quantity, max_quantity=self.max_quantity)

            now = utcnow()
            event = initial_event(changed_by=actor.user_id, notes=notes)
            rows = []
            history_rows = []
            for _ in range(requested):
                item_id = uuid.uuid4()
                rows.append(
                    {
                        "id": item_id,
                        "tenant_id": actor.tenant_id,
                        "item_type_id": item_type.id,
                        "status": ItemStatus.IN_INVENTORY.value,
                        "revision": 1,
                        "created_by": actor.user_id,
                        "created_at": now,
                    }
                )
                history_rows.append(_history_row(item_id, 1, event, at=now))
            self.items.insert_items(rows, history_rows, chunk_size=self.chunk_size)
            self.db.commit()
        except Exception as exc:
            self._abort("create", exc)
            raise

        metrics.increment_items_created(requested)
        log_json(
            logger,
            {
                "event": "items.bulk_create",
                "tenant_id": actor.tenant_id,
                "user_id": actor.user_id,
                "item_type_id": str(item_type.id),
                "created": requested,
            },
        )
        sample = self.items.get_many([row["id"] for row in rows[: self.sample_size]])
        return BulkOutcome(count=requested, sample=sample)

    def bulk_update_status(
        self,
        actor: Actor,
        item_type_id,
        request: TransitionRequest,
        quantity: QuantityRequest,
        *,
        current_status: ItemStatus,
    ) -> BulkOutcome:
        target = ItemStatus(request.target)
        current_status = ItemStatus(current_status)
        try:
            scope = mutation_scope(actor, target, return_policy=self.return_policy)
            item_type = self._load_item_type(actor, item_type_id)
            requested = resolve_quantity(item_type.groupings, quantity, max_quantity=self.max_quantity)

            candidate = CandidateFilter(
                item_type_id=item_type.id,
                status=current_status,
                sale_to=request.sale_to if target == ItemStatus.WITH_EMPLOYEE and current_status == ItemStatus.SOLD else None,
            )
            candidate = narrow_for_return(
                candidate,
                target=target,
                holder_id=request.holder_id,
                return_policy=self.return_policy,
            )
            conditions = scope_conditions(scope) + filter_conditions(candidate)
            holder = self.users.holder_info(request.holder_id) if request.holder_id else None

            selected = self.items.select_candidates(conditions, requested)
            if len(selected) < requested:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_INVENTORY,
                    details={"available": len(selected), "requested": requested},
                )

            plans = [
                (
                    item,
                    transition(
                        state_from_columns(item.status, item.current_holder_id, item.sell_price, item.sale_to_id),
                        request,
                        actor=actor,
                        holder=holder,
                        return_policy=self.return_policy,
                        item_id=item.id,
                    ),
                )
                for item in selected
            ]

            now = utcnow()
            claimed = self._apply(plans, conditions, now)
            if claimed < requested:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_INVENTORY,
                    details={"available": claimed, "requested": requested},
                )
            self.items.append_history(
                [_history_row(item.id, item.revision + 1, result.event, at=now) for item, result in plans],
                chunk_size=self.chunk_size,
            )
            self.db.commit()
        except Exception as exc:
            self._abort("bulk_update", exc)
            raise

        metrics.increment_items_transitioned(target.value, requested)
        log_json(
            logger,
            {
                "event": "items.bulk_update",
                "tenant_id": actor.tenant_id,
                "user_id": actor.user_id,
                "item_type_id": str(item_type.id),
                "current_status": current_status.value,
                "target_status": target.value,
                "updated": requested,
            },
        )
        return BulkOutcome(count=requested, sample=[item for item, _ in plans[: self.sample_size]])

    def bulk_delete(
        self,
        actor: Actor,
        item_type_id,
        quantity: QuantityRequest,
        *,
        current_status: ItemStatus | None = None,
    ) -> BulkOutcome:
        current_status = ItemStatus(current_status) if current_status is not None else None
        try:
            scope = delete_scope(actor)
            item_type = self._load_item_type(actor, item_type_id)
            requested = resolve_quantity(item_type.groupings, quantity, max_quantity=self.max_quantity)
            conditions = scope_conditions(scope) + filter_conditions(
                CandidateFilter(item_type_id=item_type.id, status=current_status)
            )

            selected = self.items.select_candidates(conditions, requested)
            if len(selected) < requested:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_INVENTORY,
                    details={"available": len(selected), "requested": requested},
                )
            sold = sum(1 for item in selected if item.status == ItemStatus.SOLD.value)
            if sold:
                raise AppError(
                    ErrorCatalog.CANNOT_DELETE_SOLD,
                    details={"sold": sold, "requested": requested},
                )

            groups: dict[Snapshot, list] = {}
            for item in selected:
                groups.setdefault(_snapshot_of(item), []).append(item.id)
            deleted = 0
            for snapshot, item_ids in groups.items():
                deleted += self.items.delete_claimed(
                    item_ids, snapshot, conditions=conditions, chunk_size=self.chunk_size
                )
            if deleted < requested:
                raise AppError(
                    ErrorCatalog.INSUFFICIENT_INVENTORY,
                    details={"available": deleted, "requested": requested},
                )
            self.items.delete_history([item.id for item in selected], chunk_size=self.chunk_size)
            self.db.commit()
        except Exception as exc:
            self._abort("bulk_delete", exc)
            raise

        metrics.increment_items_deleted(deleted)
        log_json(
            logger,
            {
                "event": "items.bulk_delete",
                "tenant_id": actor.tenant_id,
                "user_id": actor.user_id,
                "item_type_id": str(item_type.id),
                "deleted": deleted,
            },
        )
        return BulkOutcome(count=deleted)

    def update_single_item(self, actor: Actor, item_id, request: TransitionRequest) -> Item:
        target = ItemStatus(request.target)
        try:
            if actor.tenant_id is None:
                raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "mutations require a tenant"})
            item = self.items.get(item_id, actor.tenant_id)
            if item is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"item_id": str(item_id)})
            if not can_touch_item(actor, item, target, return_policy=self.return_policy):
                raise AppError(
                    ErrorCatalog.ACCESS_DENIED,
                    details={"item_id": str(item.id), "message": "item is outside the actor's scope"},
                )
            holder = self.users.holder_info(request.holder_id) if request.holder_id else None
            result = transition(
                state_from_columns(item.status, item.current_holder_id, item.sell_price, item.sale_to_id),
                request,
                actor=actor,
                holder=holder,
                return_policy=self.return_policy,
                item_id=item.id,
            )
            now = utcnow()
            if self._apply([(item, result)], [], now) < 1:
                raise AppError(ErrorCatalog.INSUFFICIENT_INVENTORY, details={"available": 0, "requested": 1})
            self.items.append_history(
                [_history_row(item.id, item.revision + 1, result.event, at=now)],
                chunk_size=self.chunk_size,
            )
            self.db.commit()
        except Exception as exc:
            self._abort("update", exc)
            raise

        metrics.increment_items_transitioned(target.value, 1)
        log_json(
            logger,
            {
                "event": "items.update",
                "tenant_id": actor.tenant_id,
                "user_id": actor.user_id,
                "item_id": str(item.id),
                "target_status": target.value,
                "kind": result.kind.value,
            },
        )
        self.db.refresh(item)
        return item

    # -- reads -----------------------------------------------------------

    def get_summary(self, actor: Actor, item_type_id=None) -> list[TypeStatusSummary]:
        conditions = scope_conditions(read_scope(actor))
        summaries: dict[str, TypeStatusSummary] = {}
        if item_type_id is not None:
            item_type = self._load_visible_item_type(actor, item_type_id)
            conditions.append(Item.item_type_id == item_type.id)
            summaries[str(item_type.id)] = self._empty_summary(item_type.id, item_type.name)
        for type_id, type_name, status, count in self.items.status_counts(conditions):
            summary = summaries.setdefault(str(type_id), self._empty_summary(type_id, type_name))
            summary.counts[status] = count
        return list(summaries.values())

    def list_items(
        self,
        actor: Actor,
        *,
        status: ItemStatus | None = None,
        item_type_id=None,
        page: int = 1,
        page_size: int = 50,
        mine: bool = False,
    ) -> tuple[list[Item], int]:
        scope = own_items_scope(actor) if mine else read_scope(actor)
        conditions = scope_conditions(scope)
        if status is not None:
            conditions.append(Item.status == ItemStatus(status).value)
        if item_type_id is not None:
            conditions.append(Item.item_type_id == item_type_id)
        return self.items.list_items(conditions, page=page, page_size=page_size)

    def get_item(self, actor: Actor, item_id) -> tuple[Item, list[ItemStatusChange]]:
        item = self.items.get(item_id)
        if item is None or not can_read_item(actor, item):
            raise AppError(ErrorCatalog.NOT_FOUND, details={"item_id": str(item_id)})
        return item, self.items.history_for(item.id)

    # -- helpers ---------------------------------------------------------

    def _apply(self, plans: list[tuple[Item, TransitionResult]], conditions: list, now) -> int:
        groups: dict[Snapshot, tuple[TransitionResult, list]] = {}
        for item, result in plans:
            snapshot = _snapshot_of(item)
            if snapshot in groups:
                groups[snapshot][1].append(item.id)
            else:
                groups[snapshot] = (result, [item.id])

        claimed = 0
        for snapshot, (result, item_ids) in groups.items():
            claimed += self.items.claim(
                item_ids,
                snapshot,
                self._values_for(result, now),
                conditions=conditions,
                chunk_size=self.chunk_size,
            )
        return claimed

    @staticmethod
    def _values_for(result: TransitionResult, now) -> dict:
        values = state_columns(result.state)
        values["updated_at"] = now
        if result.kind == TransitionKind.SALE:
            values["sold_at"] = now
            values["returned_at"] = None
        elif result.kind == TransitionKind.RETURN:
            values["returned_at"] = now
        return values

    def _load_item_type(self, actor: Actor, item_type_id):
        item_type = self.item_types.get_in_tenant(item_type_id, actor.tenant_id)
        if item_type is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"item_type_id": str(item_type_id)})
        return item_type

    def _load_visible_item_type(self, actor: Actor, item_type_id):
        if actor.is_superadmin and not actor.impersonating:
            item_type = self.item_types.get_by_id(item_type_id)
            if item_type is None:
                raise AppError(ErrorCatalog.NOT_FOUND, details={"item_type_id": str(item_type_id)})
            return item_type
        return self._load_item_type(actor, item_type_id)

    @staticmethod
    def _empty_summary(item_type_id, name: str) -> TypeStatusSummary:
        return TypeStatusSummary(
            item_type_id=str(item_type_id),
            item_type_name=name,
            counts={status.value: 0 for status in STATUS_ORDER},
        )

    def _abort(self, operation: str, exc: Exception) -> None:
        self.db.rollback()
        if not isinstance(exc, AppError):
            return
        metrics.increment_reservation_rejected(exc.code)
        log_json(
            logger,
            {
                "event": "reservation_rejected",
                "operation": operation,
                "reason": exc.code,
                "details": exc.details,
            },
            level=logging.WARNING,
        )
