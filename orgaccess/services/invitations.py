"""
Invitation workflow: invite, accept, cancel, resend and preview invitations.

State machine: pending -> accepted | cancelled. "Expired" is read-time only
(pending and past expires_at); the optional sweep may relabel such rows but
nothing relies on it.

Inviting is a two-step saga: the invitation row is committed, then the email
is dispatched. If dispatch fails the row is deleted again so no pending
invitation exists that nobody was told about.
"""
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from datetime import datetime, timedelta
from typing import List, Optional
import logging
import uuid

from orgaccess.core.audit import AuditMetadata, record_event
from orgaccess.core.config import settings
from orgaccess.core.errors import (
    AlreadyInOrganization,
    AlreadyMember,
    DuplicatePendingInvitation,
    EmailDeliveryFailed,
    EmailMismatch,
    InvalidOrExpiredInvitation,
    NotFound,
    PermissionDenied,
)
from orgaccess.core.roles import Role, rank, can_invite
from orgaccess.models.audit_log import AuditAction
from orgaccess.models.invitation import Invitation, InvitationStatus
from orgaccess.models.user import PlanTier
from orgaccess.schemas.invitation import InvitationPreview, InviteAcceptResponse
from orgaccess.schemas.organization import OrganizationSummary
from orgaccess.services.access import as_uuid, get_user_or_404, normalize_email, require_member
from orgaccess.services.email import EmailDeliveryError, send_invitation_email
from orgaccess.stores import invitations as inv_store
from orgaccess.stores import memberships
from orgaccess.stores import organizations as org_store
from orgaccess.utils.dates import utcnow

logger = logging.getLogger(__name__)


def _require_inviter(db: Session, actor_user_id, organization_id):
    actor = require_member(db, actor_user_id, organization_id)
    if not can_invite(rank(actor.role)):
        raise PermissionDenied("Only managers and administrators can manage invitations")
    return actor


def _inviter_name(user) -> str:
    return user.display_name or user.email


def _compensate_failed_send(db: Session, invitation_id: uuid.UUID, organization_id: uuid.UUID, email: str) -> None:
    """Undo the invitation insert. A failure here is logged, not retried."""
    try:
        inv_store.delete_invitation(db, invitation_id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.critical(
            "[INTEGRITY] Orphaned pending invitation %s for %s in organization %s: "
            "email was not delivered and the rollback delete failed",
            invitation_id, email, organization_id, exc_info=True,
        )


def invite_user(
    db: Session,
    inviter_user_id,
    organization_id,
    email: str,
    role,
    metadata: Optional[AuditMetadata] = None,
    custom_message: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Invitation:
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    role = Role(role)
    email = normalize_email(email)

    inviter = _require_inviter(db, inviter_user_id, organization_id)
    org = org_store.get_organization(db, organization_id)
    if org is None:
        raise NotFound("Organization not found")

    if memberships.find_member_by_email(db, email, organization_id) is not None:
        raise AlreadyMember()

    existing = inv_store.find_pending(db, email, organization_id)
    if existing is not None:
        if not existing.is_expired(now):
            raise DuplicatePendingInvitation()
        # Stale but still labelled pending; free the slot held by the unique index
        inv_store.expire_stale(db, now, email=email, organization_id=organization_id)

    try:
        invitation = inv_store.insert_invitation(
            db,
            email=email,
            token=inv_store.generate_token(),
            organization_id=organization_id,
            role=role,
            invited_by=inviter.id,
            custom_message=custom_message or "",
            expires_at=now + timedelta(days=settings.INVITATION_EXPIRES_DAYS),
            created_at=now,
            updated_at=now,
        )
        db.commit()
    except IntegrityError:
        # A concurrent invite for the same pair won the race
        db.rollback()
        raise DuplicatePendingInvitation()

    invitation_id = invitation.id
    try:
        send_invitation_email(
            email,
            organization_name=org.name,
            inviter_name=_inviter_name(inviter),
            role=role.value,
            invitation_token=invitation.token,
            custom_message=custom_message,
        )
    except EmailDeliveryError as exc:
        logger.error("Invitation email to %s failed: %s", email, exc)
        _compensate_failed_send(db, invitation_id, organization_id, email)
        raise EmailDeliveryFailed() from exc
    except Exception:
        # Any failure before a confirmed send leaves nobody notified
        logger.exception("Unexpected error sending invitation email to %s", email)
        db.rollback()
        _compensate_failed_send(db, invitation_id, organization_id, email)
        raise

    inv_store.mark_email_sent(db, invitation_id, now)
    db.commit()

    record_event(
        db,
        AuditAction.USER_INVITED,
        organization_id=organization_id,
        user_id=inviter.id,
        details={"invited_email": email, "role": role.value},
        metadata=metadata,
        resource_id=str(invitation_id),
        resource_type="invitation",
    )
    logger.info("Invitation %s sent to %s for organization %s", invitation_id, email, organization_id)
    db.refresh(invitation)
    return invitation


def accept_invitation(
    db: Session,
    token: str,
    accepting_user_id,
    metadata: Optional[AuditMetadata] = None,
    now: Optional[datetime] = None,
) -> InviteAcceptResponse:
    now = now or utcnow()
    invitation = inv_store.get_by_token(db, (token or "").strip())
    if invitation is None or not invitation.is_usable(now):
        raise InvalidOrExpiredInvitation()

    user = get_user_or_404(db, accepting_user_id)
    if normalize_email(user.email) != invitation.email:
        raise EmailMismatch()
    if user.organization_id is not None:
        raise AlreadyInOrganization()

    org = org_store.get_organization(db, invitation.organization_id)
    if org is None:
        raise NotFound("Organization not found")

    invitation_id = invitation.id
    role = invitation.role
    org_summary = OrganizationSummary(id=org.id, name=org.name)
    user_id = user.id

    # All four writes commit together or not at all
    try:
        if not inv_store.resolve_pending(
            db, invitation_id, InvitationStatus.ACCEPTED, now,
            unexpired_at=now, accepted_at=now, accepted_by=user_id,
        ):
            db.rollback()
            raise InvalidOrExpiredInvitation()
        if not memberships.join_organization(db, user_id, org.id, role, PlanTier(org.plan.value), now):
            db.rollback()
            raise AlreadyInOrganization()
        org_store.increment_seats(db, org.id)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    record_event(
        db,
        AuditAction.USER_JOINED,
        organization_id=org_summary.id,
        user_id=user_id,
        details={"role": role.value},
        metadata=metadata,
        resource_id=str(invitation_id),
        resource_type="invitation",
    )
    logger.info("User %s joined organization %s as %s", user_id, org_summary.id, role.value)
    return InviteAcceptResponse(organization=org_summary, role=role)


def cancel_invitation(
    db: Session,
    organization_id,
    invitation_id,
    actor_user_id=None,
    now: Optional[datetime] = None,
) -> Invitation:
    """Cancel a pending invitation. When an actor is given they must be allowed to invite."""
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    invitation_id = as_uuid(invitation_id)
    if actor_user_id is not None:
        _require_inviter(db, actor_user_id, organization_id)

    if not inv_store.resolve_pending(
        db, invitation_id, InvitationStatus.CANCELLED, now, organization_id=organization_id,
    ):
        db.rollback()
        raise NotFound("Invitation not found or no longer pending")
    db.commit()
    logger.info("Invitation %s cancelled in organization %s", invitation_id, organization_id)
    return inv_store.get_in_organization(db, organization_id, invitation_id)


def list_pending_invitations(
    db: Session,
    actor_user_id,
    organization_id,
    now: Optional[datetime] = None,
) -> List[Invitation]:
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    _require_inviter(db, actor_user_id, organization_id)
    return inv_store.list_pending(db, organization_id, now)


def get_invitation_preview(db: Session, token: str, now: Optional[datetime] = None) -> InvitationPreview:
    """Public details shown on the acceptance page."""
    invitation = inv_store.get_by_token(db, (token or "").strip())
    if invitation is None or not invitation.is_usable(now or utcnow()):
        raise InvalidOrExpiredInvitation()
    org = org_store.get_organization(db, invitation.organization_id)
    if org is None:
        raise InvalidOrExpiredInvitation()
    inviter = memberships.get_user(db, invitation.invited_by) if invitation.invited_by else None
    return InvitationPreview(
        email=invitation.email,
        organization_name=org.name,
        role=invitation.role,
        inviter_name=_inviter_name(inviter) if inviter else None,
        custom_message=invitation.custom_message or "",
        expires_at=invitation.expires_at,
    )


def resend_invitation(
    db: Session,
    actor_user_id,
    organization_id,
    invitation_id,
    now: Optional[datetime] = None,
) -> Invitation:
    """
    Send the email again for a live pending invitation. The token is not
    rotated, and a failed resend leaves the invitation in place.
    """
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    actor = _require_inviter(db, actor_user_id, organization_id)

    invitation = inv_store.get_in_organization(db, organization_id, as_uuid(invitation_id))
    if invitation is None or invitation.status != InvitationStatus.PENDING:
        raise NotFound("Invitation not found or no longer pending")
    if invitation.is_expired(now):
        raise InvalidOrExpiredInvitation()
    org = org_store.get_organization(db, organization_id)
    if org is None:
        raise NotFound("Organization not found")

    try:
        send_invitation_email(
            invitation.email,
            organization_name=org.name,
            inviter_name=_inviter_name(actor),
            role=invitation.role.value,
            invitation_token=invitation.token,
            custom_message=invitation.custom_message or None,
        )
    except EmailDeliveryError as exc:
        logger.error("Resending invitation %s failed: %s", invitation.id, exc)
        raise EmailDeliveryFailed() from exc

    inv_store.mark_email_sent(db, invitation.id, now)
    db.commit()
    db.refresh(invitation)
    return invitation


def expire_stale_invitations(db: Session, now: Optional[datetime] = None) -> int:
    """Relabel pending invitations past expiry. Cosmetic; reads never depend on it."""
    count = inv_store.expire_stale(db, now or utcnow())
    db.commit()
    if count:
        logger.info("Marked %d stale invitation(s) as expired", count)
    return count
