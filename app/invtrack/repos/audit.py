from sqlalchemy import select

from app.invtrack.db.models import AuditEvent


class AuditRepository:
    def __init__(self, db):
        self.db = db

    def create(self, event: AuditEvent) -> AuditEvent:
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def list_for_tenant(self, tenant_id, *, action: str | None = None) -> list[AuditEvent]:
        stmt = select(AuditEvent).where(AuditEvent.tenant_id == tenant_id)
        if action:
            stmt = stmt.where(AuditEvent.action == action)
        return list(self.db.execute(stmt.order_by(AuditEvent.created_at.asc())).scalars().all())
