from sqlalchemy.orm import Session
from typing import List, Optional, Tuple
import uuid

from orgaccess.models.audit_log import AuditLog, AuditAction


def append(db: Session, **fields) -> AuditLog:
    entry = AuditLog(**fields)
    db.add(entry)
    db.flush()
    return entry


def page(
    db: Session,
    organization_id: uuid.UUID,
    page: int,
    limit: int,
    action: Optional[AuditAction] = None,
) -> Tuple[List[AuditLog], int]:
    """Newest-first slice of an organization's audit trail plus the total count."""
    query = db.query(AuditLog).filter(AuditLog.organization_id == organization_id)
    if action is not None:
        query = query.filter(AuditLog.action == action)
    total = query.count()
    rows = (
        query.order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rows, total
