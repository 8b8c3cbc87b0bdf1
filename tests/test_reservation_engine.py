import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from app.invtrack.core.error_catalog import AppError
from app.invtrack.db.models import Item, ItemStatusChange
from app.invtrack.domain.grouping import GroupedQuantity, RawQuantity
from app.invtrack.domain.lifecycle import ItemStatus, TransitionRequest
from app.invtrack.services.reservation import BulkReservationEngine
from tests.inventory_helpers import (
    actor_for,
    create_user,
    history_lengths,
    item_snapshot,
    seed_item_type,
    status_counts,
)

IN_STOCK, HELD, SOLD = ItemStatus.IN_INVENTORY, ItemStatus.WITH_EMPLOYEE, ItemStatus.SOLD


def _assign(holder):
    return TransitionRequest(target=ItemStatus.WITH_EMPLOYEE, holder_id=str(holder.id))


def _sell(price="10.00", sale_to=None):
    return TransitionRequest(target=ItemStatus.SOLD, sell_price=Decimal(price), sale_to=sale_to)


def _stock(db_session, people, count, **kwargs):
    item_type = seed_item_type(db_session, people.owner, **kwargs)
    BulkReservationEngine(db_session).create_items(actor_for(people.owner), item_type.id, RawQuantity(count))
    return item_type


def _oldest_ids(db_session, item_type_id, limit):
    stmt = (
        select(Item.id)
        .where(Item.item_type_id == item_type_id)
        .order_by(Item.created_at.asc(), Item.id.asc())
        .limit(limit)
    )
    return [str(item_id) for item_id in db_session.execute(stmt).scalars().all()]


def test_create_items_by_grouping(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    engine = BulkReservationEngine(db_session)

    outcome = engine.create_items(actor_for(people.owner), item_type.id, GroupedQuantity("box", 3), notes="restock")

    assert outcome.count == 48
    assert len(outcome.sample) == 5
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 48, "WITH_EMPLOYEE": 0, "SOLD": 0}
    lengths = history_lengths(db_session, item_type.id)
    assert len(lengths) == 48
    assert set(lengths.values()) == {1}
    first = db_session.execute(select(ItemStatusChange).limit(1)).scalars().first()
    assert first.sequence == 1
    assert first.status == "IN_INVENTORY"
    assert first.notes == "restock"


def test_create_items_respects_sample_size(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    outcome = BulkReservationEngine(db_session, sample_size=2).create_items(
        actor_for(people.owner), item_type.id, RawQuantity(7)
    )
    assert outcome.count == 7
    assert len(outcome.sample) == 2


def test_create_items_requires_owner(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).create_items(actor_for(people.employee), item_type.id, RawQuantity(1))
    assert exc.value.code == "ACCESS_DENIED"
    assert status_counts(db_session, item_type.id)["IN_INVENTORY"] == 0


def test_create_items_rejects_inactive_type(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    item_type.is_active = False
    db_session.commit()

    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).create_items(actor_for(people.owner), item_type.id, RawQuantity(1))
    assert exc.value.code == "VALIDATION_ERROR"


def test_create_items_rejects_unknown_grouping(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).create_items(
            actor_for(people.owner), item_type.id, GroupedQuantity("crate", 1)
        )
    assert exc.value.code == "UNKNOWN_GROUPING"
    assert status_counts(db_session, item_type.id)["IN_INVENTORY"] == 0


def test_create_items_enforces_ceiling(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session, max_quantity=20).create_items(
            actor_for(people.owner), item_type.id, GroupedQuantity("box", 2)
        )
    assert exc.value.code == "INVALID_QUANTITY"
    assert exc.value.details == {"quantity": 32, "max_quantity": 20}


def test_create_items_in_foreign_tenant_type_is_not_found(db_session, people):
    item_type = seed_item_type(db_session, people.owner)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).create_items(actor_for(people.other_owner), item_type.id, RawQuantity(1))
    assert exc.value.code == "NOT_FOUND"


def test_bulk_assign_takes_oldest_items_first(db_session, people):
    item_type = _stock(db_session, people, 10)
    expected = _oldest_ids(db_session, item_type.id, 4)

    outcome = BulkReservationEngine(db_session).bulk_update_status(
        actor_for(people.owner),
        item_type.id,
        _assign(people.employee),
        RawQuantity(4),
        current_status=IN_STOCK,
    )

    assert outcome.count == 4
    assert sorted(str(item.id) for item in outcome.sample) == sorted(expected)
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 6, "WITH_EMPLOYEE": 4, "SOLD": 0}
    for item in outcome.sample:
        assert item.status == "WITH_EMPLOYEE"
        assert item.current_holder_id == people.employee.id
        assert item.revision == 2


def test_bulk_update_by_grouping(db_session, people):
    item_type = _stock(db_session, people, 40)
    outcome = BulkReservationEngine(db_session).bulk_update_status(
        actor_for(people.owner),
        item_type.id,
        _assign(people.employee),
        GroupedQuantity("BOX", 2),
        current_status=IN_STOCK,
    )
    assert outcome.count == 32
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 8, "WITH_EMPLOYEE": 32, "SOLD": 0}


def test_insufficient_inventory_changes_nothing(db_session, people):
    item_type = _stock(db_session, people, 10)
    before = item_snapshot(db_session, item_type.id)

    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_update_status(
            actor_for(people.owner),
            item_type.id,
            _assign(people.employee),
            RawQuantity(11),
            current_status=IN_STOCK,
        )

    assert exc.value.code == "INSUFFICIENT_INVENTORY"
    assert exc.value.details == {"available": 10, "requested": 11}
    assert item_snapshot(db_session, item_type.id) == before


def test_invalid_transition_rolls_back_the_whole_batch(db_session, people):
    item_type = _stock(db_session, people, 5)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)
    before = item_snapshot(db_session, item_type.id)
    history_before = history_lengths(db_session, item_type.id)

    with pytest.raises(AppError) as exc:
        engine.bulk_update_status(
            owner,
            item_type.id,
            TransitionRequest(target=ItemStatus.IN_INVENTORY),
            RawQuantity(3),
            current_status=IN_STOCK,
        )

    assert exc.value.code == "INVALID_TRANSITION"
    assert exc.value.details["current_status"] == "IN_INVENTORY"
    assert item_snapshot(db_session, item_type.id) == before
    assert history_lengths(db_session, item_type.id) == history_before


def test_sale_keeps_holder_and_stamps_sold_at(db_session, people):
    item_type = _stock(db_session, people, 3)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    customer = str(uuid.uuid4())
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(3), current_status=IN_STOCK)

    outcome = engine.bulk_update_status(
        actor_for(people.employee),
        item_type.id,
        _sell("4.50", sale_to=customer),
        RawQuantity(2),
        current_status=HELD,
    )

    assert outcome.count == 2
    for item in outcome.sample:
        assert item.status == "SOLD"
        assert item.sell_price == Decimal("4.50")
        assert item.current_holder_id == people.employee.id
        assert str(item.sale_to_id) == customer
        assert item.sold_at is not None


def test_direct_sale_from_inventory(db_session, people):
    item_type = _stock(db_session, people, 3)
    outcome = BulkReservationEngine(db_session).bulk_update_status(
        actor_for(people.owner), item_type.id, _sell("0"), RawQuantity(1), current_status=IN_STOCK
    )
    (item,) = outcome.sample
    assert item.status == "SOLD"
    assert item.current_holder_id is None
    assert item.sell_price == Decimal("0")


def test_sale_without_price_is_rejected(db_session, people):
    item_type = _stock(db_session, people, 3)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_update_status(
            actor_for(people.owner),
            item_type.id,
            TransitionRequest(target=ItemStatus.SOLD),
            RawQuantity(1),
            current_status=IN_STOCK,
        )
    assert exc.value.code == "INVALID_PRICE"
    assert status_counts(db_session, item_type.id)["SOLD"] == 0


@pytest.mark.parametrize("holder_attr", ["inactive_employee", "other_employee", "second_owner"])
def test_assignment_to_invalid_holder(db_session, people, holder_attr):
    if holder_attr == "second_owner":
        holder = create_user(db_session, people.tenant, role="OWNER", username="owner-a2")
    else:
        holder = getattr(people, holder_attr)
    item_type = _stock(db_session, people, 2)

    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_update_status(
            actor_for(people.owner), item_type.id, _assign(holder), RawQuantity(1), current_status=IN_STOCK
        )
    assert exc.value.code == "INVALID_HOLDER"
    assert status_counts(db_session, item_type.id)["IN_INVENTORY"] == 2


def test_assignment_to_unknown_holder(db_session, people):
    item_type = _stock(db_session, people, 2)
    request = TransitionRequest(target=ItemStatus.WITH_EMPLOYEE, holder_id=str(uuid.uuid4()))
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_update_status(
            actor_for(people.owner), item_type.id, request, RawQuantity(1), current_status=IN_STOCK
        )
    assert exc.value.code == "INVALID_HOLDER"
    assert exc.value.details["reason"] == "holder not found"


def test_return_to_stock_clears_holder(db_session, people):
    item_type = _stock(db_session, people, 4)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(4), current_status=IN_STOCK)

    outcome = engine.bulk_update_status(
        owner,
        item_type.id,
        TransitionRequest(target=ItemStatus.IN_INVENTORY),
        RawQuantity(3),
        current_status=HELD,
    )

    assert outcome.count == 3
    assert all(item.current_holder_id is None for item in outcome.sample)
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 3, "WITH_EMPLOYEE": 1, "SOLD": 0}


def test_employee_only_moves_items_in_own_care(db_session, people):
    item_type = _stock(db_session, people, 6)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)
    engine.bulk_update_status(
        owner, item_type.id, _assign(people.second_employee), RawQuantity(2), current_status=IN_STOCK
    )
    employee = actor_for(people.employee)

    with pytest.raises(AppError) as exc:
        engine.bulk_update_status(
            employee, item_type.id, _sell(), RawQuantity(3), current_status=HELD
        )
    assert exc.value.details == {"available": 2, "requested": 3}

    outcome = engine.bulk_update_status(employee, item_type.id, _sell(), RawQuantity(2), current_status=HELD)
    assert outcome.count == 2
    assert all(item.current_holder_id == people.employee.id for item in outcome.sample)
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 2, "WITH_EMPLOYEE": 2, "SOLD": 2}


def test_consecutive_assignments_keep_earlier_holders(db_session, people):
    item_type = _stock(db_session, people, 20)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)

    first = engine.bulk_update_status(
        owner, item_type.id, _assign(people.employee), RawQuantity(10), current_status=IN_STOCK
    )
    second = engine.bulk_update_status(
        owner, item_type.id, _assign(people.second_employee), RawQuantity(10), current_status=IN_STOCK
    )

    assert {item.id for item in first.sample}.isdisjoint({item.id for item in second.sample})
    held = dict(
        db_session.execute(
            select(Item.current_holder_id, func.count(Item.id))
            .where(Item.item_type_id == item_type.id)
            .group_by(Item.current_holder_id)
        ).all()
    )
    assert held == {people.employee.id: 10, people.second_employee.id: 10}


def test_repeated_sales_skip_items_already_sold(db_session, people):
    item_type = _stock(db_session, people, 20)
    engine = BulkReservationEngine(db_session)
    engine.bulk_update_status(
        actor_for(people.owner), item_type.id, _assign(people.employee), RawQuantity(20), current_status=IN_STOCK
    )
    employee = actor_for(people.employee)

    engine.bulk_update_status(employee, item_type.id, _sell(), RawQuantity(10), current_status=HELD)
    outcome = engine.bulk_update_status(employee, item_type.id, _sell("12.00"), RawQuantity(5), current_status=HELD)

    assert outcome.count == 5
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 0, "WITH_EMPLOYEE": 5, "SOLD": 15}


def test_resale_clears_return_timestamp(db_session, people):
    item_type = _stock(db_session, people, 1)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(1), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(1), current_status=HELD)
    (returned,) = engine.bulk_update_status(
        owner, item_type.id, _assign(people.employee), RawQuantity(1), current_status=SOLD
    ).sample
    assert returned.returned_at is not None

    (resold,) = engine.bulk_update_status(
        owner, item_type.id, _sell("11.00"), RawQuantity(1), current_status=HELD
    ).sample
    assert resold.status == "SOLD"
    assert resold.sold_at is not None
    assert resold.returned_at is None


def test_employee_cannot_take_stock(db_session, people):
    item_type = _stock(db_session, people, 3)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_update_status(
            actor_for(people.employee),
            item_type.id,
            _assign(people.employee),
            RawQuantity(1),
            current_status=IN_STOCK,
        )
    # Stock is outside an employee's mutation scope, so nothing is even selectable.
    assert exc.value.code == "INSUFFICIENT_INVENTORY"
    assert status_counts(db_session, item_type.id)["IN_INVENTORY"] == 3


def test_return_goes_back_to_original_seller(db_session, people):
    item_type = _stock(db_session, people, 3)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(2), current_status=HELD)

    with pytest.raises(AppError) as exc:
        engine.bulk_update_status(
            owner, item_type.id, _assign(people.second_employee), RawQuantity(2), current_status=SOLD
        )
    assert exc.value.code == "INSUFFICIENT_INVENTORY"
    assert exc.value.details == {"available": 0, "requested": 2}

    outcome = engine.bulk_update_status(
        owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=SOLD
    )
    assert outcome.count == 2
    for item in outcome.sample:
        assert item.status == "WITH_EMPLOYEE"
        assert item.sell_price is None
        assert item.returned_at is not None


def test_any_employee_policy_accepts_returns_for_other_holders(db_session, people):
    item_type = _stock(db_session, people, 2)
    engine = BulkReservationEngine(db_session, return_policy="ANY_EMPLOYEE")
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(2), current_status=HELD)

    outcome = engine.bulk_update_status(
        actor_for(people.second_employee),
        item_type.id,
        _assign(people.second_employee),
        RawQuantity(1),
        current_status=SOLD,
    )
    assert outcome.count == 1
    assert outcome.sample[0].current_holder_id == people.second_employee.id


def test_return_filtered_by_counterparty(db_session, people):
    item_type = _stock(db_session, people, 3)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    first_customer, second_customer = str(uuid.uuid4()), str(uuid.uuid4())
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(3), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(sale_to=first_customer), RawQuantity(1), current_status=HELD)
    engine.bulk_update_status(
        owner, item_type.id, _sell(sale_to=second_customer), RawQuantity(2), current_status=HELD
    )

    request = TransitionRequest(
        target=ItemStatus.WITH_EMPLOYEE, holder_id=str(people.employee.id), sale_to=first_customer
    )
    with pytest.raises(AppError):
        engine.bulk_update_status(owner, item_type.id, request, RawQuantity(2), current_status=SOLD)

    outcome = engine.bulk_update_status(owner, item_type.id, request, RawQuantity(1), current_status=SOLD)
    assert outcome.count == 1
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 0, "WITH_EMPLOYEE": 1, "SOLD": 2}


def test_item_count_is_conserved_by_updates(db_session, people):
    item_type = _stock(db_session, people, 12)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(8), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(5), current_status=HELD)
    engine.bulk_update_status(
        owner, item_type.id, TransitionRequest(target=ItemStatus.IN_INVENTORY), RawQuantity(2),
        current_status=HELD,
    )
    counts = status_counts(db_session, item_type.id)
    assert counts == {"IN_INVENTORY": 6, "WITH_EMPLOYEE": 1, "SOLD": 5}
    assert sum(counts.values()) == 12


def test_history_records_every_transition_in_order(db_session, people):
    item_type = _stock(db_session, people, 1)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(1), current_status=IN_STOCK)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(1), current_status=HELD)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(1), current_status=SOLD)

    item_id = _oldest_ids(db_session, item_type.id, 1)[0]
    item, history = engine.get_item(owner, uuid.UUID(item_id))
    assert [change.sequence for change in history] == [1, 2, 3, 4]
    assert [change.status for change in history] == ["IN_INVENTORY", "WITH_EMPLOYEE", "SOLD", "WITH_EMPLOYEE"]
    assert history[2].holder_id == people.employee.id
    assert item.revision == 4


def test_history_rows_cannot_be_changed(db_session, people):
    _stock(db_session, people, 1)
    change = db_session.execute(select(ItemStatusChange)).scalars().first()

    change.notes = "rewritten"
    with pytest.raises(ValueError):
        db_session.flush()
    db_session.rollback()

    change = db_session.execute(select(ItemStatusChange)).scalars().first()
    db_session.delete(change)
    with pytest.raises(ValueError):
        db_session.flush()
    db_session.rollback()


def test_update_single_item(db_session, people):
    item_type = _stock(db_session, people, 2)
    engine = BulkReservationEngine(db_session)
    item_id = uuid.UUID(_oldest_ids(db_session, item_type.id, 1)[0])

    item = engine.update_single_item(actor_for(people.owner), item_id, _assign(people.employee))
    assert item.status == "WITH_EMPLOYEE"
    assert item.revision == 2

    item = engine.update_single_item(actor_for(people.employee), item_id, _sell("7.25"))
    assert item.status == "SOLD"
    assert item.current_holder_id == people.employee.id
    assert [change.sequence for change in engine.get_item(actor_for(people.owner), item_id)[1]] == [1, 2, 3]

    with pytest.raises(AppError) as exc:
        engine.update_single_item(actor_for(people.owner), item_id, _sell("1.00"))
    assert exc.value.code == "ALREADY_SOLD"


def test_update_single_item_scope(db_session, people):
    item_type = _stock(db_session, people, 2)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(
        owner, item_type.id, _assign(people.second_employee), RawQuantity(1), current_status=IN_STOCK
    )
    held_id = uuid.UUID(_oldest_ids(db_session, item_type.id, 1)[0])

    with pytest.raises(AppError) as denied:
        engine.update_single_item(actor_for(people.employee), held_id, _sell())
    assert denied.value.code == "ACCESS_DENIED"

    with pytest.raises(AppError) as foreign:
        engine.update_single_item(actor_for(people.other_owner), held_id, _sell())
    assert foreign.value.code == "NOT_FOUND"

    with pytest.raises(AppError) as missing:
        engine.update_single_item(owner, uuid.uuid4(), _sell())
    assert missing.value.code == "NOT_FOUND"


def test_bulk_delete_removes_items_and_history(db_session, people):
    item_type = _stock(db_session, people, 5)
    engine = BulkReservationEngine(db_session)

    outcome = engine.bulk_delete(
        actor_for(people.owner), item_type.id, RawQuantity(3), current_status=IN_STOCK
    )

    assert outcome.count == 3
    assert status_counts(db_session, item_type.id) == {"IN_INVENTORY": 2, "WITH_EMPLOYEE": 0, "SOLD": 0}
    orphaned = db_session.execute(
        select(func.count(ItemStatusChange.id)).where(~ItemStatusChange.item_id.in_(select(Item.id)))
    ).scalar_one()
    assert orphaned == 0


def test_bulk_delete_refuses_sold_items(db_session, people):
    item_type = _stock(db_session, people, 4)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _sell(), RawQuantity(1), current_status=IN_STOCK)
    before = item_snapshot(db_session, item_type.id)

    with pytest.raises(AppError) as exc:
        engine.bulk_delete(owner, item_type.id, RawQuantity(4))
    assert exc.value.code == "CANNOT_DELETE_SOLD"
    assert exc.value.details == {"sold": 1, "requested": 4}
    assert item_snapshot(db_session, item_type.id) == before

    with pytest.raises(AppError) as short:
        engine.bulk_delete(owner, item_type.id, RawQuantity(4), current_status=IN_STOCK)
    assert short.value.details == {"available": 3, "requested": 4}


def test_bulk_delete_is_owner_only(db_session, people):
    item_type = _stock(db_session, people, 2)
    with pytest.raises(AppError) as exc:
        BulkReservationEngine(db_session).bulk_delete(actor_for(people.employee), item_type.id, RawQuantity(1))
    assert exc.value.code == "ACCESS_DENIED"


def test_summary_counts_by_type(db_session, people):
    tea = _stock(db_session, people, 5)
    coffee = seed_item_type(db_session, people.owner, name="Coffee 1kg")
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, tea.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)

    rows = {row.item_type_name: row for row in engine.get_summary(owner)}
    assert rows["Tea 500g"].counts == {"IN_INVENTORY": 3, "WITH_EMPLOYEE": 2, "SOLD": 0}
    assert rows["Tea 500g"].total == 5
    assert "Coffee 1kg" not in rows

    (coffee_row,) = engine.get_summary(owner, coffee.id)
    assert coffee_row.counts == {"IN_INVENTORY": 0, "WITH_EMPLOYEE": 0, "SOLD": 0}
    assert coffee_row.total == 0


def test_summary_for_employee_counts_stock_and_own_items(db_session, people):
    item_type = _stock(db_session, people, 6)
    engine = BulkReservationEngine(db_session)
    owner = actor_for(people.owner)
    engine.bulk_update_status(owner, item_type.id, _assign(people.employee), RawQuantity(2), current_status=IN_STOCK)
    engine.bulk_update_status(
        owner, item_type.id, _assign(people.second_employee), RawQuantity(3), current_status=IN_STOCK
    )

    (row,) = engine.get_summary(actor_for(people.employee))
    assert row.counts == {"IN_INVENTORY": 1, "WITH_EMPLOYEE": 2, "SOLD": 0}
