"""
Membership checks shared by the workflows.
"""
from sqlalchemy.orm import Session
from typing import Union
import uuid

from orgaccess.core.errors import NotFound, PermissionDenied
from orgaccess.models.user import User
from orgaccess.stores import memberships


def as_uuid(value: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFound(f"Unknown identifier: {value}")


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def get_user_or_404(db: Session, user_id) -> User:
    user = memberships.get_user(db, as_uuid(user_id))
    if user is None:
        raise NotFound("User not found")
    return user


def require_member(db: Session, user_id, organization_id) -> User:
    """Return the user if they belong to the organization, else PermissionDenied."""
    user = get_user_or_404(db, user_id)
    if user.organization_id is None or user.organization_id != as_uuid(organization_id):
        raise PermissionDenied("You are not a member of this organization")
    return user
