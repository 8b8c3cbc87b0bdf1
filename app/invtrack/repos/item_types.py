from sqlalchemy import func, select

from app.invtrack.db.models import ItemType


class ItemTypeRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, item_type_id):
        return self.db.get(ItemType, item_type_id)

    def get_in_tenant(self, item_type_id, tenant_id):
        stmt = select(ItemType).where(ItemType.id == item_type_id, ItemType.tenant_id == tenant_id)
        return self.db.execute(stmt).scalars().first()

    def get_by_name(self, tenant_id, name: str):
        stmt = select(ItemType).where(ItemType.tenant_id == tenant_id, ItemType.name == name)
        return self.db.execute(stmt).scalars().first()

    def list_item_types(
        self,
        tenant_id=None,
        *,
        search: str | None = None,
        is_active: bool | None = None,
        page: int = 1,
        page_size: int = 50,
    ) -> tuple[list[ItemType], int]:
        stmt = select(ItemType)
        count_stmt = select(func.count()).select_from(ItemType)
        if tenant_id is not None:
            stmt = stmt.where(ItemType.tenant_id == tenant_id)
            count_stmt = count_stmt.where(ItemType.tenant_id == tenant_id)
        if is_active is not None:
            stmt = stmt.where(ItemType.is_active.is_(is_active))
            count_stmt = count_stmt.where(ItemType.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            stmt = stmt.where(ItemType.name.ilike(pattern))
            count_stmt = count_stmt.where(ItemType.name.ilike(pattern))

        total = self.db.execute(count_stmt).scalar_one()
        stmt = stmt.order_by(ItemType.name.asc(), ItemType.id.asc()).offset((page - 1) * page_size).limit(page_size)
        return self.db.execute(stmt).scalars().all(), total

    def create(self, item_type: ItemType) -> ItemType:
        self.db.add(item_type)
        self.db.commit()
        self.db.refresh(item_type)
        return item_type

    def update(self, item_type: ItemType) -> ItemType:
        self.db.add(item_type)
        self.db.commit()
        self.db.refresh(item_type)
        return item_type
