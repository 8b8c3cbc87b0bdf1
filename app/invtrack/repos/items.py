from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import delete, func, insert, or_, select, update

from app.invtrack.db.models import Item, ItemStatusChange, ItemType
from app.invtrack.domain.lifecycle import ItemStatus


@dataclass(frozen=True)
class ItemScope:
    """Which items an actor may see or touch.

    ``tenant_id`` of ``None`` means every tenant (super-admin reads only).
    ``held_by`` keeps items whose current holder is that user.
    ``stock_or_held_by`` keeps unheld stock plus items held by that user.
    """

    tenant_id: str | None
    held_by: str | None = None
    stock_or_held_by: str | None = None
    statuses: frozenset[ItemStatus] | None = None


@dataclass(frozen=True)
class CandidateFilter:
    item_type_id: str
    status: ItemStatus | None = None
    sale_to: str | None = None
    returnable_to: str | None = None


@dataclass(frozen=True)
class Snapshot:
    status: str
    holder_id: object | None
    revision: int


def scope_conditions(scope: ItemScope) -> list:
    conditions = []
    if scope.tenant_id is not None:
        conditions.append(Item.tenant_id == scope.tenant_id)
    if scope.held_by is not None:
        conditions.append(Item.current_holder_id == scope.held_by)
    if scope.stock_or_held_by is not None:
        conditions.append(
            or_(
                Item.status == ItemStatus.IN_INVENTORY.value,
                Item.current_holder_id == scope.stock_or_held_by,
            )
        )
    if scope.statuses is not None:
        conditions.append(Item.status.in_(sorted(status.value for status in scope.statuses)))
    return conditions


def filter_conditions(candidate: CandidateFilter) -> list:
    conditions = [Item.item_type_id == candidate.item_type_id]
    if candidate.status is not None:
        conditions.append(Item.status == candidate.status.value)
    if candidate.sale_to is not None:
        conditions.append(Item.sale_to_id == candidate.sale_to)
    if candidate.returnable_to is not None:
        conditions.append(
            or_(Item.current_holder_id.is_(None), Item.current_holder_id == candidate.returnable_to)
        )
    return conditions


def _chunks(values: list, size: int) -> Iterable[list]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class ItemRepository:
    def __init__(self, db):
        self.db = db

    def get(self, item_id, tenant_id=None) -> Item | None:
        stmt = select(Item).where(Item.id == item_id)
        if tenant_id is not None:
            stmt = stmt.where(Item.tenant_id == tenant_id)
        return self.db.execute(stmt).scalars().first()

    def select_candidates(self, conditions: list, limit: int) -> list[Item]:
        stmt = (
            select(Item)
            .where(*conditions)
            .order_by(Item.created_at.asc(), Item.id.asc())
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        return list(self.db.execute(stmt).scalars().all())

    def insert_items(self, rows: list[dict], history_rows: list[dict], *, chunk_size: int) -> None:
        for chunk in _chunks(rows, chunk_size):
            self.db.execute(insert(Item), chunk)
        self.append_history(history_rows, chunk_size=chunk_size)

    def append_history(self, history_rows: list[dict], *, chunk_size: int) -> None:
        for chunk in _chunks(history_rows, chunk_size):
            self.db.execute(insert(ItemStatusChange), chunk)

    def claim(self, item_ids: list, snapshot: Snapshot, values: dict, *, conditions: list, chunk_size: int) -> int:
        """Apply ``values`` to items still matching ``snapshot``; returns rows changed."""
        claimed = 0
        for chunk in _chunks(item_ids, chunk_size):
            stmt = (
                update(Item)
                .where(Item.id.in_(chunk), *self._snapshot_guard(snapshot), *conditions)
                .values(revision=Item.revision + 1, **values)
                .execution_options(synchronize_session=False)
            )
            claimed += self.db.execute(stmt).rowcount
        return claimed

    def delete_claimed(self, item_ids: list, snapshot: Snapshot, *, conditions: list, chunk_size: int) -> int:
        deleted = 0
        for chunk in _chunks(item_ids, chunk_size):
            stmt = (
                delete(Item)
                .where(Item.id.in_(chunk), *self._snapshot_guard(snapshot), *conditions)
                .execution_options(synchronize_session=False)
            )
            deleted += self.db.execute(stmt).rowcount
        return deleted

    def delete_history(self, item_ids: list, *, chunk_size: int) -> None:
        for chunk in _chunks(item_ids, chunk_size):
            self.db.execute(
                delete(ItemStatusChange)
                .where(ItemStatusChange.item_id.in_(chunk))
                .execution_options(synchronize_session=False)
            )

    def get_many(self, item_ids: list) -> list[Item]:
        if not item_ids:
            return []
        stmt = select(Item).where(Item.id.in_(item_ids)).order_by(Item.created_at.asc(), Item.id.asc())
        return list(self.db.execute(stmt).scalars().all())

    def history_for(self, item_id) -> list[ItemStatusChange]:
        stmt = (
            select(ItemStatusChange)
            .where(ItemStatusChange.item_id == item_id)
            .order_by(ItemStatusChange.sequence.asc())
        )
        return list(self.db.execute(stmt).scalars().all())

    def list_items(self, conditions: list, *, page: int, page_size: int) -> tuple[list[Item], int]:
        total = self.db.execute(select(func.count()).select_from(Item).where(*conditions)).scalar_one()
        stmt = (
            select(Item)
            .where(*conditions)
            .order_by(Item.created_at.desc(), Item.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        return list(self.db.execute(stmt).scalars().all()), total

    def status_counts(self, conditions: list) -> list[tuple]:
        stmt = (
            select(Item.item_type_id, ItemType.name, Item.status, func.count(Item.id))
            .join(ItemType, ItemType.id == Item.item_type_id)
            .where(*conditions)
            .group_by(Item.item_type_id, ItemType.name, Item.status)
            .order_by(ItemType.name.asc(), Item.item_type_id.asc())
        )
        return list(self.db.execute(stmt).all())

    @staticmethod
    def _snapshot_guard(snapshot: Snapshot) -> list:
        holder_guard = (
            Item.current_holder_id.is_(None)
            if snapshot.holder_id is None
            else Item.current_holder_id == snapshot.holder_id
        )
        return [Item.status == snapshot.status, holder_guard, Item.revision == snapshot.revision]
