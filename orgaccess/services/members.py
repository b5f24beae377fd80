"""
Member management: role changes, removals and the audit trail view.
"""
from sqlalchemy.orm import Session
from typing import Optional
import logging
import math

from orgaccess.core.audit import AuditMetadata, record_event
from orgaccess.core.config import settings
from orgaccess.core.errors import Conflict, CrossOrganizationMismatch, InvalidAuditAction, PermissionDenied
from orgaccess.core.roles import Role, rank, can_assign_role, can_remove, can_view_audit
from orgaccess.models.audit_log import AuditAction
from orgaccess.models.user import PlanTier
from orgaccess.schemas.audit import AuditLogEntry, AuditLogPage, Pagination
from orgaccess.schemas.member import RoleChange, Removal
from orgaccess.services.access import as_uuid, get_user_or_404, require_member
from orgaccess.stores import audit as audit_store
from orgaccess.stores import memberships
from orgaccess.stores import organizations as org_store

logger = logging.getLogger(__name__)

# Plan a removed user falls back to
REMOVED_MEMBER_PLAN = PlanTier.FREE


def _load_pair(db: Session, actor_user_id, target_user_id, organization_id):
    actor = get_user_or_404(db, actor_user_id)
    target = get_user_or_404(db, target_user_id)
    if actor.organization_id != organization_id or target.organization_id != organization_id:
        raise CrossOrganizationMismatch()
    return actor, target


def update_user_role(
    db: Session,
    actor_user_id,
    target_user_id,
    new_role,
    organization_id,
    metadata: Optional[AuditMetadata] = None,
) -> RoleChange:
    organization_id = as_uuid(organization_id)
    new_role = Role(new_role)
    actor, target = _load_pair(db, actor_user_id, target_user_id, organization_id)

    old_role = target.role
    if not can_assign_role(rank(actor.role), rank(old_role), rank(new_role)):
        raise PermissionDenied("You cannot assign this role to this member")

    actor_id, target_id = actor.id, target.id
    if not memberships.change_role(db, target_id, organization_id, old_role, new_role):
        db.rollback()
        raise Conflict()
    db.commit()

    record_event(
        db,
        AuditAction.USER_ROLE_CHANGED,
        organization_id=organization_id,
        user_id=actor_id,
        details={"target_user_id": str(target_id), "old_role": old_role.value, "new_role": new_role.value},
        metadata=metadata,
        target_user_id=target_id,
    )
    logger.info("User %s changed role of %s from %s to %s", actor_id, target_id, old_role.value, new_role.value)
    return RoleChange(user_id=target_id, old_role=old_role, new_role=new_role)


def remove_user(
    db: Session,
    actor_user_id,
    target_user_id,
    organization_id,
    metadata: Optional[AuditMetadata] = None,
) -> Removal:
    organization_id = as_uuid(organization_id)
    actor, target = _load_pair(db, actor_user_id, target_user_id, organization_id)

    if not can_remove(rank(actor.role), rank(target.role)):
        raise PermissionDenied("You cannot remove this member")

    actor_id, target_id, removed_email = actor.id, target.id, target.email
    if not memberships.clear_membership(db, target_id, organization_id, target.role, REMOVED_MEMBER_PLAN):
        db.rollback()
        raise Conflict()
    org_store.decrement_seats(db, organization_id)
    db.commit()

    record_event(
        db,
        AuditAction.USER_REMOVED,
        organization_id=organization_id,
        user_id=actor_id,
        details={"removed_user_id": str(target_id), "removed_email": removed_email},
        metadata=metadata,
        target_user_id=target_id,
    )
    logger.info("User %s removed %s from organization %s", actor_id, target_id, organization_id)
    return Removal(user_id=target_id, email=removed_email)


def get_audit_logs(
    db: Session,
    actor_user_id,
    organization_id,
    page: int = 1,
    limit: int = 50,
    action=None,
) -> AuditLogPage:
    organization_id = as_uuid(organization_id)
    actor = require_member(db, actor_user_id, organization_id)
    if not can_view_audit(rank(actor.role)):
        raise PermissionDenied("Only administrators can view the audit trail")

    page = max(1, int(page))
    limit = min(max(1, int(limit)), settings.AUDIT_MAX_PAGE_SIZE)
    if action:
        try:
            action = AuditAction(action)
        except ValueError:
            raise InvalidAuditAction(f"Unknown audit action: {action}")
    else:
        action = None

    rows, total = audit_store.page(db, organization_id, page, limit, action)
    return AuditLogPage(
        logs=[AuditLogEntry.model_validate(row) for row in rows],
        pagination=Pagination(total=total, limit=limit, page=page, pages=math.ceil(total / limit)),
    )
