from sqlalchemy import update, delete
from sqlalchemy.orm import Session
from datetime import datetime
from typing import List, Optional
import secrets
import uuid

from orgaccess.models.invitation import Invitation, InvitationStatus

TOKEN_BYTES = 32


def generate_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def get_by_token(db: Session, token: str) -> Optional[Invitation]:
    if not token:
        return None
    return db.query(Invitation).filter(Invitation.token == token).first()


def get_in_organization(db: Session, organization_id: uuid.UUID, invitation_id: uuid.UUID) -> Optional[Invitation]:
    return db.query(Invitation).filter(
        Invitation.id == invitation_id,
        Invitation.organization_id == organization_id,
    ).first()


def find_pending(db: Session, email: str, organization_id: uuid.UUID) -> Optional[Invitation]:
    return db.query(Invitation).filter(
        Invitation.email == email,
        Invitation.organization_id == organization_id,
        Invitation.status == InvitationStatus.PENDING,
    ).first()


def list_pending(db: Session, organization_id: uuid.UUID, now: datetime) -> List[Invitation]:
    return (
        db.query(Invitation)
        .filter(
            Invitation.organization_id == organization_id,
            Invitation.status == InvitationStatus.PENDING,
            Invitation.expires_at >= now,
        )
        .order_by(Invitation.created_at.desc())
        .all()
    )


def insert_invitation(db: Session, **fields) -> Invitation:
    """Raises IntegrityError if a pending invitation for the pair already exists."""
    invitation = Invitation(status=InvitationStatus.PENDING, **fields)
    db.add(invitation)
    db.flush()
    return invitation


def mark_email_sent(db: Session, invitation_id: uuid.UUID, now: datetime) -> int:
    result = db.execute(
        update(Invitation)
        .where(Invitation.id == invitation_id)
        .values(email_sent=True, email_sent_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def delete_invitation(db: Session, invitation_id: uuid.UUID) -> int:
    # Idempotent: deleting an already-deleted row touches nothing
    result = db.execute(
        delete(Invitation)
        .where(Invitation.id == invitation_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def resolve_pending(
    db: Session,
    invitation_id: uuid.UUID,
    new_status: InvitationStatus,
    now: datetime,
    organization_id: Optional[uuid.UUID] = None,
    unexpired_at: Optional[datetime] = None,
    **values,
) -> bool:
    """
    Move a pending invitation to new_status. The WHERE clause carries the
    precondition, so only one concurrent caller can win.
    """
    criteria = [Invitation.id == invitation_id, Invitation.status == InvitationStatus.PENDING]
    if organization_id is not None:
        criteria.append(Invitation.organization_id == organization_id)
    if unexpired_at is not None:
        criteria.append(Invitation.expires_at >= unexpired_at)
    result = db.execute(
        update(Invitation)
        .where(*criteria)
        .values(status=new_status, updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def expire_stale(
    db: Session,
    now: datetime,
    email: Optional[str] = None,
    organization_id: Optional[uuid.UUID] = None,
) -> int:
    """Relabel pending invitations past their expiry as expired."""
    criteria = [Invitation.status == InvitationStatus.PENDING, Invitation.expires_at < now]
    if email is not None:
        criteria.append(Invitation.email == email)
    if organization_id is not None:
        criteria.append(Invitation.organization_id == organization_id)
    result = db.execute(
        update(Invitation)
        .where(*criteria)
        .values(status=InvitationStatus.EXPIRED, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
