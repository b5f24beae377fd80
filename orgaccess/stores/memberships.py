from sqlalchemy import update, func
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Dict, Iterable, List, Optional
import uuid

from orgaccess.core.roles import Role
from orgaccess.models.user import User, PlanTier
from orgaccess.models.analysis import UserAnalysis


def get_user(db: Session, user_id: uuid.UUID) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    return db.query(User).filter(User.external_id == external_id).first()


def provision_user(db: Session, external_id: str, email: str, first_name: str = "", last_name: str = "") -> User:
    user = User(
        external_id=external_id,
        email=email.strip().lower(),
        first_name=first_name,
        last_name=last_name,
        plan=PlanTier.FREE,
    )
    db.add(user)
    db.flush()
    return user


def find_member_by_email(db: Session, email: str, organization_id: uuid.UUID) -> Optional[User]:
    return db.query(User).filter(
        func.lower(User.email) == email,
        User.organization_id == organization_id,
    ).first()


def list_members(db: Session, organization_id: uuid.UUID) -> List[User]:
    return (
        db.query(User)
        .filter(User.organization_id == organization_id)
        .order_by(User.joined_at.asc())
        .all()
    )


def join_organization(
    db: Session,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    role: Role,
    plan: PlanTier,
    now: datetime,
) -> bool:
    """Set the membership only if the user currently has none."""
    result = db.execute(
        update(User)
        .where(User.id == user_id, User.organization_id.is_(None))
        .values(organization_id=organization_id, role=role, joined_at=now, plan=plan)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def change_role(
    db: Session,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    expected_role: Role,
    new_role: Role,
) -> bool:
    """Overwrite the role only if the member still has the role the decision was made on."""
    result = db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.organization_id == organization_id,
            User.role == expected_role,
        )
        .values(role=new_role)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def clear_membership(
    db: Session,
    user_id: uuid.UUID,
    organization_id: uuid.UUID,
    expected_role: Role,
    plan: PlanTier,
) -> bool:
    result = db.execute(
        update(User)
        .where(
            User.id == user_id,
            User.organization_id == organization_id,
            User.role == expected_role,
        )
        .values(organization_id=None, role=None, joined_at=None, plan=plan)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def analysis_counts(
    db: Session,
    user_ids: Iterable[uuid.UUID],
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> Dict[uuid.UUID, int]:
    """Number of analyses per user, optionally restricted to [start, end)."""
    user_ids = list(user_ids)
    if not user_ids:
        return {}
    query = (
        db.query(UserAnalysis.user_id, func.count(UserAnalysis.id))
        .filter(UserAnalysis.user_id.in_(user_ids))
    )
    if start is not None:
        query = query.filter(UserAnalysis.created_at >= start)
    if end is not None:
        query = query.filter(UserAnalysis.created_at < end)
    return {user_id: count for user_id, count in query.group_by(UserAnalysis.user_id).all()}
