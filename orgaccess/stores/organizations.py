from sqlalchemy import update, case
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional
import uuid

from orgaccess.models.organization import Organization


def get_organization(db: Session, organization_id: uuid.UUID) -> Optional[Organization]:
    return db.query(Organization).filter(Organization.id == organization_id).first()


def domain_in_use(db: Session, domain: str, exclude_id: Optional[uuid.UUID] = None) -> bool:
    query = db.query(Organization.id).filter(Organization.domain == domain)
    if exclude_id is not None:
        query = query.filter(Organization.id != exclude_id)
    return query.first() is not None


def insert_organization(db: Session, **fields) -> Organization:
    org = Organization(**fields)
    db.add(org)
    db.flush()
    return org


def apply_settings(db: Session, organization_id: uuid.UUID, values: dict, now: datetime) -> int:
    """Write allow-listed settings columns. Returns the number of rows touched."""
    result = db.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(updated_at=now, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def increment_seats(db: Session, organization_id: uuid.UUID, by: int = 1) -> int:
    result = db.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(current_seats=Organization.current_seats + by)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def decrement_seats(db: Session, organization_id: uuid.UUID) -> int:
    result = db.execute(
        update(Organization)
        .where(Organization.id == organization_id, Organization.current_seats > 0)
        .values(current_seats=Organization.current_seats - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def store_usage(
    db: Session,
    organization_id: uuid.UUID,
    seats: int,
    total_analyses: int,
    monthly_analyses: int,
    period: str,
    now: datetime,
) -> int:
    """Persist recomputed analytics. Resets the window timestamp when the period rolled over."""
    result = db.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(
            current_seats=seats,
            total_analyses=total_analyses,
            monthly_analyses=monthly_analyses,
            usage_last_reset_at=case(
                (Organization.usage_period == period, Organization.usage_last_reset_at),
                else_=now,
            ),
            usage_period=period,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def bump_analysis_usage(db: Session, organization_id: uuid.UUID, period: str, now: datetime) -> int:
    """
    Count one more analysis. The monthly counter restarts at 1 when the stored
    period differs from the current one; both branches happen in one UPDATE.
    """
    same_period = Organization.usage_period == period
    result = db.execute(
        update(Organization)
        .where(Organization.id == organization_id)
        .values(
            total_analyses=Organization.total_analyses + 1,
            monthly_analyses=case((same_period, Organization.monthly_analyses + 1), else_=1),
            usage_last_reset_at=case((same_period, Organization.usage_last_reset_at), else_=now),
            usage_period=period,
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
