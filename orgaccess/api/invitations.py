"""
Invitation endpoints reached through the emailed link.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from orgaccess.api.deps import get_current_user, get_audit_metadata
from orgaccess.core.rate_limit import rate_limit
from orgaccess.db.session import get_db
from orgaccess.models.user import User
from orgaccess.schemas.invitation import InvitationPreview, InviteAcceptRequest, InviteAcceptResponse
from orgaccess.services import invitations

router = APIRouter()


@router.post("/accept", response_model=InviteAcceptResponse)
@rate_limit(max_requests=10, window_seconds=900)  # 10 accept attempts per 15 min per user
def accept_invitation(
    body: InviteAcceptRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Join the inviting organization. The signed-in email must match the invitation."""
    return invitations.accept_invitation(
        db, body.token, current_user.id, metadata=get_audit_metadata(request)
    )


@router.get("/{token}", response_model=InvitationPreview)
@rate_limit(max_requests=30, window_seconds=300)  # 30 lookups per 5 min per IP
def preview_invitation(
    token: str,
    request: Request,
    db: Session = Depends(get_db),
):
    """Public: details used to pre-fill the sign-up page."""
    return invitations.get_invitation_preview(db, token)
