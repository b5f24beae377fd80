from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID

from orgaccess.core.roles import Role
from orgaccess.models.invitation import InvitationStatus
from orgaccess.schemas.organization import OrganizationSummary


class InviteUserRequest(BaseModel):
    """Manager/admin: invite someone to the organization."""
    email: str = Field(..., min_length=3, max_length=255)
    role: Role
    message: Optional[str] = Field(None, max_length=2000)


class InvitationResponse(BaseModel):
    id: UUID
    email: str
    organization_id: UUID
    role: Role
    status: InvitationStatus
    custom_message: str = ""
    email_sent: bool
    email_sent_at: Optional[datetime] = None
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class InvitationPreview(BaseModel):
    """Public: what the acceptance page shows before sign-up."""
    email: str
    organization_name: str
    role: Role
    inviter_name: Optional[str] = None
    custom_message: str = ""
    expires_at: datetime


class InviteAcceptRequest(BaseModel):
    token: str = Field(..., min_length=1)


class InviteAcceptResponse(BaseModel):
    organization: OrganizationSummary
    role: Role
