import logging

from sqlalchemy.exc import IntegrityError

from app.invtrack.core.error_catalog import AppError, ErrorCatalog
from app.invtrack.core.logging import log_json
from app.invtrack.core.scope import Actor, require_owner
from app.invtrack.db.models import ItemGrouping, ItemType, utcnow
from app.invtrack.domain.grouping import Grouping, validate_groupings
from app.invtrack.repos.item_types import ItemTypeRepository

logger = logging.getLogger("invtrack.item_types")


def _grouping_rows(groupings: list[Grouping]) -> list[ItemGrouping]:
    return [
        ItemGrouping(
            position=position,
            name=grouping.name,
            units_per_group=grouping.units_per_group,
            weight_label=grouping.weight_label,
        )
        for position, grouping in enumerate(groupings)
    ]


def item_type_snapshot(item_type: ItemType) -> dict:
    return {
        "name": item_type.name,
        "description": item_type.description,
        "is_active": item_type.is_active,
        "groupings": [
            {"name": grouping.name, "units_per_group": grouping.units_per_group, "weight_label": grouping.weight_label}
            for grouping in item_type.groupings
        ],
    }


class ItemTypeService:
    def __init__(self, db):
        self.db = db
        self.repo = ItemTypeRepository(db)

    def create(
        self,
        actor: Actor,
        *,
        name: str,
        description: str | None = None,
        groupings: list[Grouping] | None = None,
    ) -> ItemType:
        require_owner(actor)
        name = self._clean_name(name)
        cleaned = validate_groupings(groupings or [])
        if self.repo.get_by_name(actor.tenant_id, name) is not None:
            raise AppError(ErrorCatalog.DUPLICATE_ITEM_TYPE, details={"name": name})

        item_type = ItemType(
            tenant_id=actor.tenant_id,
            name=name,
            description=description,
            is_active=True,
            created_by=actor.user_id,
            groupings=_grouping_rows(cleaned),
        )
        try:
            item_type = self.repo.create(item_type)
        except IntegrityError:
            self.db.rollback()
            raise AppError(ErrorCatalog.DUPLICATE_ITEM_TYPE, details={"name": name})
        log_json(
            logger,
            {"event": "item_types.create", "tenant_id": actor.tenant_id, "item_type_id": str(item_type.id)},
        )
        return item_type

    def update(
        self,
        actor: Actor,
        item_type_id,
        *,
        name: str | None = None,
        description: str | None = None,
        groupings: list[Grouping] | None = None,
        is_active: bool | None = None,
        fields_set: set[str] | None = None,
    ) -> tuple[ItemType, dict]:
        """Apply a partial update; returns the item type and its prior snapshot.

        ``fields_set`` names the fields the caller actually sent, so an explicit
        ``description: null`` clears the description while an absent one keeps it.
        """
        require_owner(actor)
        item_type = self.get(actor, item_type_id)
        before = item_type_snapshot(item_type)
        fields_set = fields_set if fields_set is not None else {
            key
            for key, value in (
                ("name", name),
                ("description", description),
                ("groupings", groupings),
                ("is_active", is_active),
            )
            if value is not None
        }

        if "name" in fields_set and name is not None:
            cleaned_name = self._clean_name(name)
            if cleaned_name != item_type.name:
                existing = self.repo.get_by_name(actor.tenant_id, cleaned_name)
                if existing is not None and existing.id != item_type.id:
                    raise AppError(ErrorCatalog.DUPLICATE_ITEM_TYPE, details={"name": cleaned_name})
                item_type.name = cleaned_name
        if "description" in fields_set:
            item_type.description = description
        if "groupings" in fields_set:
            cleaned = validate_groupings(groupings or [])
            item_type.groupings.clear()
            self.db.flush()
            item_type.groupings.extend(_grouping_rows(cleaned))
        if "is_active" in fields_set and is_active is not None:
            item_type.is_active = is_active
        item_type.updated_at = utcnow()

        try:
            item_type = self.repo.update(item_type)
        except IntegrityError:
            self.db.rollback()
            raise AppError(ErrorCatalog.DUPLICATE_ITEM_TYPE, details={"name": item_type.name})
        log_json(
            logger,
            {
                "event": "item_types.update",
                "tenant_id": actor.tenant_id,
                "item_type_id": str(item_type.id),
                "fields": sorted(fields_set),
            },
        )
        return item_type, before

    def get(self, actor: Actor, item_type_id) -> ItemType:
        if actor.is_superadmin and not actor.impersonating:
            item_type = self.repo.get_by_id(item_type_id)
        else:
            item_type = self.repo.get_in_tenant(item_type_id, actor.tenant_id)
        if item_type is None:
            raise AppError(ErrorCatalog.NOT_FOUND, details={"item_type_id": str(item_type_id)})
        return item_type

    def list_item_types(
        self,
        actor: Actor,
        *,
        search: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ItemType], int]:
        tenant_id = None if actor.is_superadmin and not actor.impersonating else actor.tenant_id
        return self.repo.list_item_types(
            tenant_id,
            search=search,
            is_active=is_active,
            page=page,
            page_size=page_size,
        )

    @staticmethod
    def _clean_name(name: str) -> str:
        cleaned = (name or "").strip()
        if not cleaned:
            raise AppError(ErrorCatalog.VALIDATION_ERROR, details={"message": "name must not be empty"})
        return cleaned
