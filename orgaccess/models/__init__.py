from orgaccess.models.organization import Organization, OrganizationPlan, BillingCycle
from orgaccess.models.user import User, PlanTier
from orgaccess.models.analysis import UserAnalysis
from orgaccess.models.invitation import Invitation, InvitationStatus
from orgaccess.models.audit_log import AuditLog, AuditAction, AuditLogImmutableError

__all__ = [
    "Organization", "OrganizationPlan", "BillingCycle",
    "User", "PlanTier", "UserAnalysis",
    "Invitation", "InvitationStatus",
    "AuditLog", "AuditAction", "AuditLogImmutableError",
]
