"""
Audit recorder: the single entry point workflows use to persist audit events.

Events are written after the state change they describe has committed. A
failed write is logged and dropped; it never fails or rolls back the caller.
"""
from dataclasses import dataclass
from sqlalchemy.orm import Session
from typing import Optional
import json
import logging
import uuid

from orgaccess.models.audit_log import AuditLog, AuditAction
from orgaccess.stores import audit as audit_store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditMetadata:
    """Request context copied onto every audit row."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def record_event(
    db: Session,
    action: AuditAction,
    organization_id: uuid.UUID,
    user_id: uuid.UUID,
    details: Optional[dict] = None,
    metadata: Optional[AuditMetadata] = None,
    target_user_id: Optional[uuid.UUID] = None,
    resource_id: Optional[str] = None,
    resource_type: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Append one audit event and commit it.

    Args:
        db: Database session
        action: What happened
        organization_id: Organization the action happened in
        user_id: Acting user
        details: Action-specific payload (JSON-encoded on write)
        metadata: IP address / user agent of the request
        target_user_id: User acted upon, if any
        resource_id: Identifier of the affected resource, if any
        resource_type: Kind of the affected resource, e.g. "invitation"

    Returns the stored entry, or None when the write failed.
    """
    metadata = metadata or AuditMetadata()
    try:
        entry = audit_store.append(
            db,
            organization_id=organization_id,
            user_id=user_id,
            action=AuditAction(action),
            details=json.dumps(details, default=str) if details else None,
            ip_address=metadata.ip_address,
            user_agent=metadata.user_agent,
            target_user_id=target_user_id,
            resource_id=resource_id,
            resource_type=resource_type,
        )
        db.commit()
        return entry
    except Exception:
        # Losing an audit entry is tolerated; failing the request is not
        logger.warning(
            "[AUDIT] Failed to record %s for organization %s", action, organization_id, exc_info=True
        )
        db.rollback()
        return None
