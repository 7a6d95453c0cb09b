"""
Audit logging for business entity changes.

Entries are added to the caller's session and committed with the business
change they describe. Building an entry never raises: a failure is logged
and the operation carries on.
"""

import enum
import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Convert UUIDs, datetimes and enums so the value fits a JSON column."""
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


def diff_changes(obj, updates: Dict[str, Any]) -> Dict[str, List[Any]]:
    """{field: [old, new]} for each update that differs from the object's current value."""
    changes = {}
    for field, new_value in updates.items():
        old_value = getattr(obj, field, None)
        if old_value != new_value:
            changes[field] = [old_value, new_value]
    return changes


def log_audit(
    db: Session,
    entity_type: str,
    entity_id: UUID,
    action: str,
    actor_id: Optional[UUID] = None,
    org_id: Optional[UUID] = None,
    changes: Optional[Dict[str, Tuple[Any, Any]]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Add an audit entry to the session.

    Args:
        entity_type: "job", "credential", "policy", "technician", ...
        entity_id: Id of the changed entity
        action: "created", "updated", "deleted", "assigned", "completed", "dispatched"
        actor_id: User who made the change (None for system actions)
        org_id: Owning organization
        changes: {field: [old, new]}
        metadata: Free-form context

    Returns:
        The pending AuditLog row, or None if it could not be built
    """
    try:
        entry = AuditLog(
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            actor_id=actor_id,
            actor_type="user" if actor_id else "system",
            org_id=org_id,
            changes=_jsonable(changes) if changes else None,
            extra=_jsonable(metadata) if metadata else None,
        )
        db.add(entry)
        return entry
    except Exception as e:
        logger.error(f"Failed to create audit log for {entity_type} {entity_id} ({action}): {e}")
        return None


def log_credential_change(
    db: Session,
    credential_type: str,
    credential_id: UUID,
    action: str,
    actor_id: Optional[UUID],
    technician_id: UUID,
    org_id: Optional[UUID] = None,
    changes: Optional[Dict[str, Tuple[Any, Any]]] = None,
) -> Optional[AuditLog]:
    return log_audit(
        db,
        entity_type="credential",
        entity_id=credential_id,
        action=action,
        actor_id=actor_id,
        org_id=org_id,
        changes=changes,
        metadata={"credential_type": credential_type, "technician_id": technician_id},
    )


def get_entity_history(db: Session, entity_type: str, entity_id: UUID, limit: int = 100) -> List[AuditLog]:
    """Most recent first."""
    return (
        db.query(AuditLog)
        .filter(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
        .order_by(AuditLog.created_at.desc())
        .limit(limit)
        .all()
    )
