"""
Organization-scoped endpoints: tenant settings, billing, invitations,
member roles and the audit trail.
"""
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID

from orgaccess.api.deps import get_current_user, get_audit_metadata
from orgaccess.core.audit import AuditMetadata
from orgaccess.core.errors import PermissionDenied
from orgaccess.core.rate_limit import rate_limit
from orgaccess.db.session import get_db
from orgaccess.models.audit_log import AuditAction
from orgaccess.models.user import User
from orgaccess.schemas.audit import AuditLogPage
from orgaccess.schemas.invitation import InviteUserRequest, InvitationResponse
from orgaccess.schemas.member import RoleUpdateRequest, RoleChange, Removal
from orgaccess.schemas.organization import (
    Organization as OrganizationSchema,
    OrganizationCreate,
    OrganizationSettingsUpdate,
    OrganizationDetails,
    MyOrganization,
    BillingSummary,
)
from orgaccess.services import invitations, members, organizations

router = APIRouter()


@router.post("", response_model=OrganizationSchema, status_code=status.HTTP_201_CREATED)
def create_organization(
    body: OrganizationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create an organization; the caller becomes its admin."""
    org = organizations.create_organization(
        db,
        name=body.name,
        admin_user_id=current_user.id,
        domain=body.domain,
        branding=body.branding.model_dump(exclude_none=True) if body.branding else None,
    )
    return OrganizationSchema.model_validate(org)


@router.get("/me", response_model=MyOrganization)
def get_my_organization(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return organizations.get_my_organization(db, current_user.id)


@router.get("/{organization_id}", response_model=OrganizationDetails)
def get_organization(
    organization_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Organization details with roster and usage analytics. Members only."""
    if current_user.organization_id != organization_id:
        raise PermissionDenied("You are not a member of this organization")
    return organizations.get_organization_details(db, organization_id)


@router.patch("/{organization_id}/settings", response_model=OrganizationSchema)
def update_settings(
    organization_id: UUID,
    body: OrganizationSettingsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    audit_metadata: AuditMetadata = Depends(get_audit_metadata),
):
    org = organizations.update_organization_settings(
        db,
        organization_id,
        body.model_dump(exclude_unset=True),
        actor_user_id=current_user.id,
        metadata=audit_metadata,
    )
    return OrganizationSchema.model_validate(org)


@router.get("/{organization_id}/billing", response_model=BillingSummary)
def get_billing(
    organization_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return organizations.get_organization_billing(db, organization_id, current_user.id)


@router.post("/{organization_id}/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
@rate_limit(max_requests=20, window_seconds=900)  # 20 invites per 15 min per user
def invite_user(
    organization_id: UUID,
    body: InviteUserRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Invite someone by email. Requires manager or admin."""
    invitation = invitations.invite_user(
        db,
        inviter_user_id=current_user.id,
        organization_id=organization_id,
        email=body.email,
        role=body.role,
        metadata=get_audit_metadata(request),
        custom_message=body.message,
    )
    return InvitationResponse.model_validate(invitation)


@router.get("/{organization_id}/invitations", response_model=List[InvitationResponse])
def list_invitations(
    organization_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List live pending invitations, newest first."""
    return [
        InvitationResponse.model_validate(inv)
        for inv in invitations.list_pending_invitations(db, current_user.id, organization_id)
    ]


@router.post("/{organization_id}/invitations/{invitation_id}/resend", response_model=InvitationResponse)
def resend_invitation(
    organization_id: UUID,
    invitation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    invitation = invitations.resend_invitation(db, current_user.id, organization_id, invitation_id)
    return InvitationResponse.model_validate(invitation)


@router.delete("/{organization_id}/invitations/{invitation_id}", response_model=InvitationResponse)
def cancel_invitation(
    organization_id: UUID,
    invitation_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    invitation = invitations.cancel_invitation(
        db, organization_id, invitation_id, actor_user_id=current_user.id
    )
    return InvitationResponse.model_validate(invitation)


@router.put("/{organization_id}/members/{user_id}/role", response_model=RoleChange)
def change_member_role(
    organization_id: UUID,
    user_id: UUID,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    audit_metadata: AuditMetadata = Depends(get_audit_metadata),
):
    return members.update_user_role(
        db,
        actor_user_id=current_user.id,
        target_user_id=user_id,
        new_role=body.new_role,
        organization_id=organization_id,
        metadata=audit_metadata,
    )


@router.delete("/{organization_id}/members/{user_id}", response_model=Removal)
def remove_member(
    organization_id: UUID,
    user_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    audit_metadata: AuditMetadata = Depends(get_audit_metadata),
):
    return members.remove_user(
        db,
        actor_user_id=current_user.id,
        target_user_id=user_id,
        organization_id=organization_id,
        metadata=audit_metadata,
    )


@router.get("/{organization_id}/audit-logs", response_model=AuditLogPage)
def get_audit_logs(
    organization_id: UUID,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1),
    action: Optional[AuditAction] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return members.get_audit_logs(db, current_user.id, organization_id, page=page, limit=limit, action=action)
