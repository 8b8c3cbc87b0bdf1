"""Role-scoped visibility.

Narrows the item set an actor may read or reserve before the reservation
engine selects anything:

* tenant owners (and impersonating super-admins) see their whole tenant;
* field employees act only on items in their own care. For returns under the
  ``ANY_EMPLOYEE`` policy that widens to every sold item of the tenant;
* super-admins read across tenants but never mutate without a tenant.
"""

from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.scope import Actor, require_owner
from app.invtrack.domain.lifecycle import ItemStatus, ReturnPolicy
from app.invtrack.repos.items import CandidateFilter, ItemScope


def mutation_scope(actor: Actor, target: ItemStatus, *, return_policy: ReturnPolicy) -> ItemScope:
    if actor.tenant_id is None:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "mutations require a tenant"})
    if actor.is_owner:
        return ItemScope(tenant_id=actor.tenant_id)
    if not actor.is_employee:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"role": actor.role})
    if target == ItemStatus.WITH_EMPLOYEE and ReturnPolicy(return_policy) == ReturnPolicy.ANY_EMPLOYEE:
        return ItemScope(tenant_id=actor.tenant_id, statuses=frozenset({ItemStatus.SOLD}))
    return ItemScope(tenant_id=actor.tenant_id, held_by=actor.user_id)


def delete_scope(actor: Actor) -> ItemScope:
    require_owner(actor)
    return ItemScope(tenant_id=actor.tenant_id)


def read_scope(actor: Actor) -> ItemScope:
    if actor.is_superadmin and not actor.impersonating:
        return ItemScope(tenant_id=None)
    if actor.is_employee:
        return ItemScope(tenant_id=actor.tenant_id, stock_or_held_by=actor.user_id)
    return ItemScope(tenant_id=actor.tenant_id)


def own_items_scope(actor: Actor) -> ItemScope:
    if not actor.is_employee:
        raise AppError(ErrorCatalog.ACCESS_DENIED, details={"message": "only field employees hold items"})
    return ItemScope(tenant_id=actor.tenant_id, held_by=actor.user_id)


def narrow_for_return(
    candidate: CandidateFilter,
    *,
    target: ItemStatus,
    holder_id: str | None,
    return_policy: ReturnPolicy,
) -> CandidateFilter:
    """Keep only sold items the requested holder may receive back.

    Applies when the request moves ``SOLD`` items to ``WITH_EMPLOYEE``; under
    ``ORIGINAL_HOLDER`` that means items the holder sold, or items sold
    straight from stock.
    """
    if target != ItemStatus.WITH_EMPLOYEE or candidate.status != ItemStatus.SOLD:
        return candidate
    returnable_to = None
    if holder_id and ReturnPolicy(return_policy) == ReturnPolicy.ORIGINAL_HOLDER:
        returnable_to = holder_id
    return CandidateFilter(
        item_type_id=candidate.item_type_id,
        status=candidate.status,
        sale_to=candidate.sale_to,
        returnable_to=returnable_to,
    )


def can_touch_item(actor: Actor, item, target: ItemStatus, *, return_policy: ReturnPolicy) -> bool:
    if actor.tenant_id is None or str(item.tenant_id) != str(actor.tenant_id):
        return False
    if actor.is_owner:
        return True
    if not actor.is_employee:
        return False
    if item.current_holder_id is not None and str(item.current_holder_id) == str(actor.user_id):
        return True
    return (
        target == ItemStatus.WITH_EMPLOYEE
        and item.status == ItemStatus.SOLD.value
        and ReturnPolicy(return_policy) == ReturnPolicy.ANY_EMPLOYEE
    )


def can_read_item(actor: Actor, item) -> bool:
    if actor.is_superadmin and not actor.impersonating:
        return True
    if actor.tenant_id is None or str(item.tenant_id) != str(actor.tenant_id):
        return False
    if actor.is_employee:
        return item.status == ItemStatus.IN_INVENTORY.value or (
            item.current_holder_id is not None and str(item.current_holder_id) == str(actor.user_id)
        )
    return True
