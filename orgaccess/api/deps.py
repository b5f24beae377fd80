from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from typing import Optional
import logging

from orgaccess.core.audit import AuditMetadata
from orgaccess.db.session import get_db
from orgaccess.models.user import User
from orgaccess.stores import memberships

logger = logging.getLogger(__name__)


def _split_name(full_name: Optional[str]):
    parts = (full_name or "").strip().split(" ", 1)
    first = parts[0] if parts else ""
    last = parts[1] if len(parts) > 1 else ""
    return first, last


def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    x_user_name: Optional[str] = Header(None, alias="X-User-Name"),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the identity headers set by the upstream
    identity provider. Users are provisioned on first sight.
    """
    if not x_user_id or not x_user_email:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing identity headers",
        )
    email = x_user_email.strip().lower()

    user = memberships.get_user_by_external_id(db, x_user_id)
    if user is None:
        first, last = _split_name(x_user_name)
        try:
            user = memberships.provision_user(db, x_user_id, email, first, last)
            db.commit()
            logger.info("Provisioned user %s for subject %s", user.id, x_user_id)
        except IntegrityError:
            # A parallel request provisioned the same subject first
            db.rollback()
            user = memberships.get_user_by_external_id(db, x_user_id)
    elif user.email != email:
        # The identity provider is authoritative for the verified email
        user.email = email
        db.commit()

    db.refresh(user)
    return user


def get_audit_metadata(request: Request) -> AuditMetadata:
    return AuditMetadata(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
