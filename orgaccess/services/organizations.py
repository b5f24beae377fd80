"""
Organization workflow: create, inspect and configure tenants, and read billing.
"""
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from datetime import datetime
from decimal import Decimal
from typing import Optional
import logging

from orgaccess.core.audit import AuditMetadata, record_event
from orgaccess.core.config import settings
from orgaccess.core.errors import AlreadyInOrganization, DomainTaken, NotFound, PermissionDenied
from orgaccess.core.roles import Role, rank, can_manage_settings, can_view_billing
from orgaccess.models.audit_log import AuditAction
from orgaccess.models.organization import (
    Organization,
    BillingCycle,
    DEFAULT_PRIMARY_COLOR,
    DEFAULT_SECONDARY_COLOR,
)
from orgaccess.models.user import PlanTier
from orgaccess.schemas.organization import (
    Organization as OrganizationSchema,
    OrganizationDetails,
    OrganizationAnalytics,
    MemberSummary,
    MyOrganization,
    BillingSummary,
    BillingCosts,
)
from orgaccess.services.access import as_uuid, get_user_or_404, require_member
from orgaccess.stores import organizations as org_store
from orgaccess.stores import memberships
from orgaccess.utils.dates import utcnow, period_tag, month_bounds, add_months

logger = logging.getLogger(__name__)

BRANDING_FIELDS = ("logo_url", "primary_color", "secondary_color", "display_name")


def _normalize_domain(domain: Optional[str]) -> Optional[str]:
    if domain is None:
        return None
    domain = domain.strip().lower()
    return domain or None


def create_organization(
    db: Session,
    name: str,
    admin_user_id,
    domain: Optional[str] = None,
    branding: Optional[dict] = None,
    now: Optional[datetime] = None,
) -> Organization:
    """Create a tenant and make the creator its first admin (one seat, enterprise plan)."""
    now = now or utcnow()
    name = (name or "").strip()
    domain = _normalize_domain(domain)
    branding = branding or {}

    admin = get_user_or_404(db, admin_user_id)
    if admin.organization_id is not None:
        raise AlreadyInOrganization()
    if domain and org_store.domain_in_use(db, domain):
        raise DomainTaken()

    try:
        org = org_store.insert_organization(
            db,
            name=name,
            domain=domain,
            logo_url=branding.get("logo_url") or "",
            primary_color=branding.get("primary_color") or DEFAULT_PRIMARY_COLOR,
            secondary_color=branding.get("secondary_color") or DEFAULT_SECONDARY_COLOR,
            display_name=branding.get("display_name") or name,
            max_seats=settings.DEFAULT_MAX_SEATS,
            price_per_seat=settings.DEFAULT_PRICE_PER_SEAT,
            billing_cycle=BillingCycle.MONTHLY,
            current_seats=1,
            usage_period=period_tag(now),
            usage_last_reset_at=now,
            created_at=now,
            updated_at=now,
        )
        joined = memberships.join_organization(db, admin.id, org.id, Role.ADMIN, PlanTier.ENTERPRISE, now)
    except IntegrityError:
        # Another request claimed the domain between our check and the insert
        db.rollback()
        raise DomainTaken()
    if not joined:
        db.rollback()
        raise AlreadyInOrganization()
    db.commit()
    db.refresh(org)

    logger.info("Organization %s (%s) created by user %s", org.id, org.name, admin.id)
    return org


def get_organization_details(db: Session, organization_id, now: Optional[datetime] = None) -> OrganizationDetails:
    """Roster plus usage analytics; the recomputed counters are written back."""
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    org = org_store.get_organization(db, organization_id)
    if org is None:
        raise NotFound("Organization not found")

    members = memberships.list_members(db, organization_id)
    member_ids = [m.id for m in members]
    lifetime_counts = memberships.analysis_counts(db, member_ids)
    month_start, month_end = month_bounds(now)
    monthly_counts = memberships.analysis_counts(db, member_ids, month_start, month_end)

    total_analyses = sum(lifetime_counts.values())
    monthly_analyses = sum(monthly_counts.values())

    org_store.store_usage(
        db,
        organization_id,
        seats=len(members),
        total_analyses=total_analyses,
        monthly_analyses=monthly_analyses,
        period=period_tag(now),
        now=now,
    )
    db.commit()
    db.refresh(org)

    users = [
        MemberSummary(
            id=m.id,
            email=m.email,
            name=m.display_name,
            role=m.role,
            joined_at=m.joined_at,
            analyses_count=lifetime_counts.get(m.id, 0),
        )
        for m in members
    ]
    return OrganizationDetails(
        organization=OrganizationSchema.model_validate(org),
        users=users,
        analytics=OrganizationAnalytics(
            total_users=len(members),
            total_analyses=total_analyses,
            monthly_analyses=monthly_analyses,
            average_analyses_per_user=total_analyses // len(members) if members else 0,
        ),
    )


def get_my_organization(db: Session, user_id, now: Optional[datetime] = None) -> MyOrganization:
    user = get_user_or_404(db, user_id)
    if user.organization_id is None:
        raise NotFound("You do not belong to an organization")
    role = user.role
    details = get_organization_details(db, user.organization_id, now=now)
    return MyOrganization(**details.model_dump(), user_role=role)


def update_organization_settings(
    db: Session,
    organization_id,
    updates: dict,
    actor_user_id,
    metadata: Optional[AuditMetadata] = None,
    now: Optional[datetime] = None,
) -> Organization:
    """
    Apply name / domain / branding changes. Only admins of this organization
    may do so; keys outside that allow-list are ignored.
    """
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    actor = require_member(db, actor_user_id, organization_id)
    if not can_manage_settings(rank(actor.role)):
        raise PermissionDenied("Only administrators can change organization settings")

    updates = updates or {}
    values = {}

    name = updates.get("name")
    if isinstance(name, str) and name.strip():
        values["name"] = name.strip()

    domain = _normalize_domain(updates.get("domain")) if isinstance(updates.get("domain"), str) else None
    if domain:
        if org_store.domain_in_use(db, domain, exclude_id=organization_id):
            raise DomainTaken()
        values["domain"] = domain

    branding = updates.get("branding")
    if isinstance(branding, dict):
        for field in BRANDING_FIELDS:
            if branding.get(field) is not None:
                values[field] = str(branding[field])

    if values:
        try:
            touched = org_store.apply_settings(db, organization_id, values, now)
            db.flush()
        except IntegrityError:
            db.rollback()
            raise DomainTaken()
        if touched == 0:
            db.rollback()
            raise NotFound("Organization not found")
        db.commit()

    org = org_store.get_organization(db, organization_id)
    if org is None:
        raise NotFound("Organization not found")

    if values:
        record_event(
            db,
            AuditAction.ORGANIZATION_SETTINGS_UPDATED,
            organization_id=organization_id,
            user_id=actor.id,
            details={"changed_fields": sorted(values)},
            metadata=metadata,
            resource_id=str(organization_id),
            resource_type="organization",
        )
        logger.info("Organization %s settings updated by %s: %s", organization_id, actor.id, sorted(values))
    return org


def get_organization_billing(
    db: Session,
    organization_id,
    actor_user_id,
    now: Optional[datetime] = None,
) -> BillingSummary:
    """Seat-based cost view for managers and admins. Pure read."""
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    actor = require_member(db, actor_user_id, organization_id)
    if not can_view_billing(rank(actor.role)):
        raise PermissionDenied("Only managers and administrators can view billing")

    org = org_store.get_organization(db, organization_id)
    if org is None:
        raise NotFound("Organization not found")

    price = Decimal(org.price_per_seat)
    monthly_total = org.current_seats * price
    yearly_total = monthly_total * 12 * settings.ANNUAL_DISCOUNT_FACTOR
    months_ahead = 12 if org.billing_cycle == BillingCycle.YEARLY else 1

    return BillingSummary(
        current_seats=org.current_seats,
        max_seats=org.max_seats,
        price_per_seat=float(price),
        billing_cycle=org.billing_cycle.value,
        costs=BillingCosts(monthly=float(monthly_total), yearly=float(yearly_total)),
        next_billing_date=add_months(now, months_ahead),
        billing_customer_id=org.billing_customer_id,
    )


def record_analysis_usage(
    db: Session,
    organization_id,
    user_id,
    resource_id: Optional[str] = None,
    metadata: Optional[AuditMetadata] = None,
    now: Optional[datetime] = None,
) -> Organization:
    """Called by the analysis subsystem each time a member runs an analysis."""
    now = now or utcnow()
    organization_id = as_uuid(organization_id)
    user = require_member(db, user_id, organization_id)

    if org_store.bump_analysis_usage(db, organization_id, period_tag(now), now) == 0:
        db.rollback()
        raise NotFound("Organization not found")
    db.commit()
    org = org_store.get_organization(db, organization_id)

    record_event(
        db,
        AuditAction.ANALYSIS_CREATED,
        organization_id=organization_id,
        user_id=user.id,
        details={"total_analyses": org.total_analyses, "monthly_analyses": org.monthly_analyses},
        metadata=metadata,
        resource_id=resource_id,
        resource_type="analysis" if resource_id else None,
    )
    return org
