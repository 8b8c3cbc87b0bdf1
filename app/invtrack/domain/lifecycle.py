"""Item lifecycle state machine.

An item is in exactly one of three states, each carrying only the fields
that are valid for it:

* ``InInventory``: nothing.
* ``WithEmployee``: the holder.
* ``Sold``: the sell price, the holder who made the sale (if any) and the
  optional counterparty.

``transition`` takes the current state and a request and either raises an
``AppError`` or returns the new state together with the history event the
change produces. It performs no I/O; the holder is looked up by the caller and
passed in as ``HolderInfo``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

from app.invtrack.core.error_catalog import AppError, ErrorCatalog


class ItemStatus(str, Enum):
    IN_INVENTORY = "IN_INVENTORY"
    WITH_EMPLOYEE = "WITH_EMPLOYEE"
    SOLD = "SOLD"


class ReturnPolicy(str, Enum):
    ORIGINAL_HOLDER = "ORIGINAL_HOLDER"
    ANY_EMPLOYEE = "ANY_EMPLOYEE"


class TransitionKind(str, Enum):
    ASSIGN = "assign"
    REASSIGN = "reassign"
    SALE = "sale"
    RESTOCK = "restock"
    RETURN = "return"


@dataclass(frozen=True)
class InInventory:
    status: ClassVar[ItemStatus] = ItemStatus.IN_INVENTORY

    @property
    def holder_id(self) -> None:
        return None


@dataclass(frozen=True)
class WithEmployee:
    holder_id: str
    status: ClassVar[ItemStatus] = ItemStatus.WITH_EMPLOYEE


@dataclass(frozen=True)
class Sold:
    sell_price: Decimal
    holder_id: str | None = None
    sale_to: str | None = None
    status: ClassVar[ItemStatus] = ItemStatus.SOLD


ItemState = Union[InInventory, WithEmployee, Sold]


ALLOWED_TRANSITIONS: dict[ItemStatus, frozenset[ItemStatus]] = {
    ItemStatus.IN_INVENTORY: frozenset({ItemStatus.WITH_EMPLOYEE, ItemStatus.SOLD}),
    ItemStatus.WITH_EMPLOYEE: frozenset({ItemStatus.WITH_EMPLOYEE, ItemStatus.SOLD, ItemStatus.IN_INVENTORY}),
    ItemStatus.SOLD: frozenset({ItemStatus.WITH_EMPLOYEE}),
}


@dataclass(frozen=True)
class HolderInfo:
    user_id: str
    tenant_id: str | None
    role: str
    is_active: bool

    @property
    def is_field_employee(self) -> bool:
        return (self.role or "").upper() == "EMPLOYEE"


@dataclass(frozen=True)
class TransitionRequest:
    target: ItemStatus
    holder_id: str | None = None
    sell_price: Decimal | None = None
    sale_to: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class StatusChangeEvent:
    status: ItemStatus
    holder_id: str | None
    changed_by: str
    notes: str | None = None
    changed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc).replace(tzinfo=None))


@dataclass(frozen=True)
class TransitionResult:
    state: ItemState
    event: StatusChangeEvent
    kind: TransitionKind


def _id(value) -> str | None:
    return str(value) if value is not None else None


def state_from_columns(status: str, holder_id=None, sell_price=None, sale_to=None) -> ItemState:
    """Rebuild the tagged state from flat persisted columns."""
    status = ItemStatus(status)
    if status == ItemStatus.IN_INVENTORY:
        return InInventory()
    if status == ItemStatus.WITH_EMPLOYEE:
        if holder_id is None:
            raise ValueError("WITH_EMPLOYEE item without holder")
        return WithEmployee(holder_id=_id(holder_id))
    if sell_price is None:
        raise ValueError("SOLD item without sell price")
    return Sold(sell_price=Decimal(sell_price), holder_id=_id(holder_id), sale_to=_id(sale_to))


def state_columns(state: ItemState) -> dict:
    """Flatten a state back into the persisted column values."""
    return {
        "status": state.status.value,
        "current_holder_id": getattr(state, "holder_id", None),
        "sell_price": getattr(state, "sell_price", None),
        "sale_to_id": getattr(state, "sale_to", None),
    }


def initial_event(*, changed_by: str, notes: str | None = None) -> StatusChangeEvent:
    return StatusChangeEvent(status=ItemStatus.IN_INVENTORY, holder_id=None, changed_by=changed_by, notes=notes)


def is_allowed(current: ItemStatus, target: ItemStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def _failure(error, *, item_id, current: ItemStatus, target: ItemStatus, **extra) -> AppError:
    details = {
        "item_id": _id(item_id),
        "current_status": current.value,
        "requested_status": target.value,
    }
    details.update(extra)
    return AppError(error, details=details)


def _check_holder(holder: HolderInfo | None, holder_id: str, *, tenant_id: str | None, item_id, current, target):
    if holder is None:
        raise _failure(
            ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=current, target=target,
            holder_id=holder_id, reason="holder not found",
        )
    if not holder.is_active:
        raise _failure(
            ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=current, target=target,
            holder_id=holder_id, reason="holder is inactive",
        )
    if not holder.is_field_employee:
        raise _failure(
            ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=current, target=target,
            holder_id=holder_id, reason="holder is not a field employee",
        )
    if _id(holder.tenant_id) != _id(tenant_id):
        raise _failure(
            ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=current, target=target,
            holder_id=holder_id, reason="holder belongs to another tenant",
        )


def transition(
    current: ItemState,
    request: TransitionRequest,
    *,
    actor,
    holder: HolderInfo | None = None,
    return_policy: ReturnPolicy = ReturnPolicy.ORIGINAL_HOLDER,
    item_id=None,
) -> TransitionResult:
    """Validate ``request`` against ``current`` and compute the new state.

    ``actor`` needs ``user_id``, ``tenant_id`` and ``is_employee``. The
    verdict depends only on the arguments, so re-running it on the same
    inputs always gives the same answer.
    """
    source = current.status
    target = ItemStatus(request.target)

    if source == ItemStatus.SOLD and target == ItemStatus.SOLD:
        raise _failure(ErrorCatalog.ALREADY_SOLD, item_id=item_id, current=source, target=target)
    if not is_allowed(source, target):
        raise _failure(ErrorCatalog.INVALID_TRANSITION, item_id=item_id, current=source, target=target)
    if actor.is_employee and target == ItemStatus.WITH_EMPLOYEE and source != ItemStatus.SOLD:
        raise _failure(
            ErrorCatalog.ACCESS_DENIED, item_id=item_id, current=source, target=target,
            reason="only tenant owners assign stock",
        )

    changed_by = _id(actor.user_id)

    if target == ItemStatus.WITH_EMPLOYEE:
        if request.sell_price is not None:
            raise _failure(
                ErrorCatalog.VALIDATION_ERROR, item_id=item_id, current=source, target=target,
                reason="sell_price is only accepted for sales",
            )
        if not request.holder_id:
            raise _failure(
                ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=source, target=target,
                reason="holder_id is required",
            )
        holder_id = _id(request.holder_id)
        if source == ItemStatus.SOLD:
            if actor.is_employee and holder_id != changed_by:
                raise _failure(
                    ErrorCatalog.ACCESS_DENIED, item_id=item_id, current=source, target=target,
                    reason="employees may only receive returns into their own care",
                )
            if request.sale_to is not None and _id(request.sale_to) != current.sale_to:
                raise _failure(
                    ErrorCatalog.VALIDATION_ERROR, item_id=item_id, current=source, target=target,
                    reason="item was not sold to this counterparty", sale_to=_id(request.sale_to),
                )
        elif request.sale_to is not None:
            raise _failure(
                ErrorCatalog.VALIDATION_ERROR, item_id=item_id, current=source, target=target,
                reason="sale_to is only accepted for sales and returns",
            )
        _check_holder(holder, holder_id, tenant_id=actor.tenant_id, item_id=item_id, current=source, target=target)
        if (
            source == ItemStatus.SOLD
            and ReturnPolicy(return_policy) == ReturnPolicy.ORIGINAL_HOLDER
            and current.holder_id is not None
            and current.holder_id != holder_id
        ):
            raise _failure(
                ErrorCatalog.INVALID_HOLDER, item_id=item_id, current=source, target=target,
                holder_id=holder_id, reason="returns go back to the employee who sold the item",
            )
        if source == ItemStatus.SOLD:
            kind = TransitionKind.RETURN
        elif source == ItemStatus.WITH_EMPLOYEE:
            kind = TransitionKind.REASSIGN
        else:
            kind = TransitionKind.ASSIGN
        state = WithEmployee(holder_id=holder_id)

    elif target == ItemStatus.SOLD:
        if request.holder_id is not None:
            raise _failure(
                ErrorCatalog.VALIDATION_ERROR, item_id=item_id, current=source, target=target,
                reason="holder_id is not accepted for sales",
            )
        if request.sell_price is None or Decimal(request.sell_price) < 0:
            raise _failure(
                ErrorCatalog.INVALID_PRICE, item_id=item_id, current=source, target=target,
                sell_price=None if request.sell_price is None else str(request.sell_price),
            )
        state = Sold(
            sell_price=Decimal(request.sell_price),
            holder_id=current.holder_id,
            sale_to=_id(request.sale_to),
        )
        kind = TransitionKind.SALE

    else:
        if request.sell_price is not None or request.holder_id is not None or request.sale_to is not None:
            raise _failure(
                ErrorCatalog.VALIDATION_ERROR, item_id=item_id, current=source, target=target,
                reason="returning stock to inventory takes no holder, price or counterparty",
            )
        state = InInventory()
        kind = TransitionKind.RESTOCK

    event = StatusChangeEvent(
        status=target,
        holder_id=state.holder_id,
        changed_by=changed_by,
        notes=request.notes,
    )
    return TransitionResult(state=state, event=event, kind=kind)
