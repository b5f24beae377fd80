from sqlalchemy import Column, String, DateTime, Text, ForeignKey, Index, Uuid, Enum as SQLEnum, event
import uuid
import enum
from orgaccess.db.session import Base
from orgaccess.utils.dates import utcnow


class AuditAction(str, enum.Enum):
    """
    Closed set of audited actions. `details` payload per action:

    user_invited                    {"invited_email", "role"}
    user_joined                     {"role"}
    user_role_changed               {"target_user_id", "old_role", "new_role"}
    user_removed                    {"removed_user_id", "removed_email"}
    organization_settings_updated   {"changed_fields"}
    organization_branding_updated   {"changed_fields"}
    analysis_created                {"total_analyses", "monthly_analyses"}
    billing_viewed / subscription_updated / analysis_* / comparative_analysis_created
                                    emitted by collaborators, payload owned by them
    """
    ANALYSIS_CREATED = "analysis_created"
    ANALYSIS_VIEWED = "analysis_viewed"
    ANALYSIS_EDITED = "analysis_edited"
    ANALYSIS_DELETED = "analysis_deleted"
    ANALYSIS_EXPORTED = "analysis_exported"
    COMPARATIVE_ANALYSIS_CREATED = "comparative_analysis_created"
    USER_INVITED = "user_invited"
    USER_ROLE_CHANGED = "user_role_changed"
    USER_REMOVED = "user_removed"
    USER_JOINED = "user_joined"
    ORGANIZATION_SETTINGS_UPDATED = "organization_settings_updated"
    ORGANIZATION_BRANDING_UPDATED = "organization_branding_updated"
    BILLING_VIEWED = "billing_viewed"
    SUBSCRIPTION_UPDATED = "subscription_updated"


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    organization_id = Column(Uuid, ForeignKey("organizations.id"), nullable=False)
    user_id = Column(Uuid, ForeignKey("users.id"), nullable=False)  # actor
    action = Column(
        SQLEnum(AuditAction, name="audit_action", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    details = Column(Text, nullable=True)  # JSON string, schema depends on action
    ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    target_user_id = Column(Uuid, nullable=True)
    resource_id = Column(String, nullable=True)
    resource_type = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_audit_logs_org_created", "organization_id", "created_at"),
        Index("ix_audit_logs_user_created", "user_id", "created_at"),
        Index("ix_audit_logs_action_created", "action", "created_at"),
    )


class AuditLogImmutableError(RuntimeError):
    pass


@event.listens_for(AuditLog, "before_update")
def _refuse_update(mapper, connection, target):
    raise AuditLogImmutableError("audit_logs rows are append-only")


@event.listens_for(AuditLog, "before_delete")
def _refuse_delete(mapper, connection, target):
    raise AuditLogImmutableError("audit_logs rows are append-only")
