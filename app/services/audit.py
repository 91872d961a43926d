from decimal import Decimal
from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from app.services.base import BaseService
from app.models.audit_log import AuditLog


def _sanitize(obj: Any) -> Any:
    """Make nested values JSON-serializable for the audit columns."""
    if hasattr(obj, "model_dump"):
        return _sanitize(obj.model_dump())
    if isinstance(obj, dict):
        return {str(k): _sanitize(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_sanitize(i) for i in obj]
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, Enum):
        return obj.value
    return obj


class AuditService(BaseService):
    def log_action(
        self,
        action: str,
        entity_type: str,
        entity_id: Optional[int],
        actor: Optional[str],
        details: Optional[dict] = None,
        organization_id: Optional[int] = None,
        before_state: Optional[dict] = None,
        after_state: Optional[dict] = None
    ) -> AuditLog:
        """
        Create an audit log entry in the caller's transaction.
        Strictly append-only. The caller commits, so the entry lands
        together with the change it describes or not at all.
        """
        db_log = AuditLog(
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            details=_sanitize(details or {}),
            organization_id=organization_id or self.org_id,
            before_state=_sanitize(before_state),
            after_state=_sanitize(after_state)
        )
        self.db.add(db_log)
        self.db.flush()
        self._logger.debug(
            f"Audit {action} on {entity_type} {entity_id}",
            extra={"org_id": db_log.organization_id, "actor": actor}
        )
        return db_log

    # Convenience wrapper for one-off entries
    @staticmethod
    def log(db, *args, **kwargs):
        service = AuditService(db)
        return service.log_action(*args, **kwargs)
