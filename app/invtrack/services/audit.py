import logging
from dataclasses import dataclass

from app.invtrack.db.models import AuditEvent, utcnow
from app.invtrack.repos.audit import AuditRepository

logger = logging.getLogger("invtrack.audit")


@dataclass
class AuditEventPayload:
    tenant_id: str | None
    user_id: str | None
    trace_id: str | None
    actor: str
    action: str
    entity_type: str
    entity_id: str | None
    before: dict | None
    after: dict | None
    metadata: dict | None
    result: str
    actor_role: str | None = None


class AuditService:
    """Best-effort audit logging.

    Runs after the audited change has been committed; a failed write is logged
    and swallowed so it never turns a completed operation into an error.
    """

    def __init__(self, db):
        self.repo = AuditRepository(db)

    def record_event(self, payload: AuditEventPayload) -> None:
        metadata = dict(payload.metadata or {})
        metadata.setdefault("actor_role", payload.actor_role)
        try:
            event = AuditEvent(
                tenant_id=payload.tenant_id,
                user_id=payload.user_id,
                trace_id=payload.trace_id,
                actor=payload.actor,
                action=payload.action,
                entity_type=payload.entity_type,
                entity_id=payload.entity_id,
                before_payload=payload.before,
                after_payload=payload.after,
                event_metadata=metadata,
                result=payload.result,
                created_at=utcnow(),
            )
            self.repo.create(event)
        except Exception:
            self.repo.db.rollback()
            logger.exception(
                "Failed to write audit event",
                extra={
                    "action": payload.action,
                    "trace_id": payload.trace_id,
                    "tenant_id": payload.tenant_id,
                    "entity_id": payload.entity_id,
                },
            )
