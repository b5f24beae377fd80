from sqlalchemy import Column, String, DateTime, ForeignKey, Boolean, Text, Index, Uuid, Enum as SQLEnum, text
import uuid
import enum
from datetime import datetime
from typing import Optional
from orgaccess.db.session import Base
from orgaccess.core.roles import Role
from orgaccess.utils.dates import utcnow


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"
    EXPIRED = "expired"  # only written by the optional relabelling sweep


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Invitation(Base):
    """
    Invitation to join an organization with a given role.
    Token is single-use; rows are never deleted except to compensate a failed email send.
    """
    __tablename__ = "invitations"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    email = Column(String(255), nullable=False, index=True)  # lower-cased, trimmed
    token = Column(String(128), nullable=False, unique=True, index=True)
    organization_id = Column(Uuid, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(SQLEnum(Role, name="member_role", values_callable=_enum_values), nullable=False)
    invited_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    status = Column(
        SQLEnum(InvitationStatus, name="invitation_status", values_callable=_enum_values),
        default=InvitationStatus.PENDING,
        nullable=False,
    )
    custom_message = Column(Text, nullable=False, default="")
    email_sent = Column(Boolean, nullable=False, default=False)
    email_sent_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    accepted_by = Column(Uuid, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        # Hard backstop: one pending invitation per (email, organization)
        Index(
            "uq_invitations_pending_email_org",
            "email",
            "organization_id",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) > self.expires_at

    def is_usable(self, now: Optional[datetime] = None) -> bool:
        """Pending and not past expiry."""
        return self.status == InvitationStatus.PENDING and not self.is_expired(now)
