from app.invtrack.db.models import User
from app.invtrack.domain.lifecycle import HolderInfo


class UserRepository:
    def __init__(self, db):
        self.db = db

    def get_by_id(self, user_id):
        return self.db.get(User, user_id)

    def holder_info(self, user_id) -> HolderInfo | None:
        user = self.get_by_id(user_id)
        if user is None:
            return None
        return HolderInfo(
            user_id=str(user.id),
            tenant_id=str(user.tenant_id) if user.tenant_id else None,
            role=user.role,
            is_active=user.is_active,
        )
