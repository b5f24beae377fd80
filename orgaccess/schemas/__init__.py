from orgaccess.schemas.organization import (
    Organization, OrganizationCreate, OrganizationSettingsUpdate, OrganizationDetails,
    MyOrganization, BillingSummary,
)
from orgaccess.schemas.invitation import (
    InviteUserRequest, InvitationResponse, InvitationPreview, InviteAcceptRequest, InviteAcceptResponse,
)
from orgaccess.schemas.member import RoleUpdateRequest, RoleChange, Removal
from orgaccess.schemas.audit import AuditLogEntry, AuditLogPage, Pagination

__all__ = [
    "Organization", "OrganizationCreate", "OrganizationSettingsUpdate", "OrganizationDetails",
    "MyOrganization", "BillingSummary",
    "InviteUserRequest", "InvitationResponse", "InvitationPreview", "InviteAcceptRequest",
    "InviteAcceptResponse",
    "RoleUpdateRequest", "RoleChange", "Removal",
    "AuditLogEntry", "AuditLogPage", "Pagination",
]
