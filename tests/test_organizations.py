"""Organization workflow: create, details, settings, billing and usage"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from orgaccess.core.errors import AlreadyInOrganization, DomainTaken, NotFound, PermissionDenied
from orgaccess.core.roles import Role
from orgaccess.models.analysis import UserAnalysis
from orgaccess.models.audit_log import AuditLog, AuditAction
from orgaccess.models.organization import BillingCycle, DEFAULT_PRIMARY_COLOR, DEFAULT_SECONDARY_COLOR
from orgaccess.models.user import PlanTier
from orgaccess.services import organizations
from orgaccess.stores import organizations as org_store


def test_create_organization_makes_creator_admin(db, make_user):
    user = make_user(email="founder@acme.io")
    org = organizations.create_organization(db, name="  Acme  ", admin_user_id=user.id, domain="Acme.IO")

    db.refresh(user)
    assert org.name == "Acme"
    assert org.domain == "acme.io"
    assert org.current_seats == 1
    assert org.max_seats == 50
    assert org.price_per_seat == Decimal("30.00")
    assert org.billing_cycle == BillingCycle.MONTHLY
    assert org.primary_color == DEFAULT_PRIMARY_COLOR
    assert org.display_name == "Acme"
    assert user.organization_id == org.id
    assert user.role == Role.ADMIN
    assert user.plan == PlanTier.ENTERPRISE
    assert user.joined_at is not None


def test_create_organization_rejects_taken_domain(db, make_org, make_user):
    make_org(domain="acme.io")
    other = make_user()
    with pytest.raises(DomainTaken):
        organizations.create_organization(db, name="Copycat", admin_user_id=other.id, domain="ACME.io")
    db.refresh(other)
    assert other.organization_id is None


def test_create_organization_allows_many_without_domain(db, make_org):
    first, _ = make_org(name="One")
    second, _ = make_org(name="Two")
    assert first.domain is None and second.domain is None


def test_create_organization_rejects_existing_member(db, make_org):
    _, admin = make_org()
    with pytest.raises(AlreadyInOrganization):
        organizations.create_organization(db, name="Second", admin_user_id=admin.id)


def test_create_organization_unknown_user(db):
    with pytest.raises(NotFound):
        organizations.create_organization(db, name="Ghost", admin_user_id="00000000-0000-0000-0000-000000000000")


def test_details_recompute_usage(db, make_org, add_member):
    org, admin = make_org()
    analyst = add_member(org, Role.ANALYST)
    now = datetime(2026, 3, 15, 12, 0, 0)

    db.add_all([
        UserAnalysis(user_id=admin.id, created_at=datetime(2026, 3, 2)),
        UserAnalysis(user_id=admin.id, created_at=datetime(2026, 1, 20)),
        UserAnalysis(user_id=analyst.id, created_at=datetime(2026, 3, 10)),
    ])
    db.commit()

    details = organizations.get_organization_details(db, org.id, now=now)

    assert details.analytics.total_users == 2
    assert details.analytics.total_analyses == 3
    assert details.analytics.monthly_analyses == 2
    assert details.analytics.average_analyses_per_user == 1
    counts = {u.email: u.analyses_count for u in details.users}
    assert counts == {admin.email: 2, analyst.email: 1}
    assert details.organization.usage_period == "2026-03"

    db.refresh(org)
    assert org.total_analyses == 3
    assert org.monthly_analyses == 2
    assert org.current_seats == 2


def test_details_unknown_organization(db):
    with pytest.raises(NotFound):
        organizations.get_organization_details(db, "not-a-uuid")


def test_my_organization_includes_role(db, make_org, add_member):
    org, _ = make_org()
    viewer = add_member(org, Role.VIEWER)
    mine = organizations.get_my_organization(db, viewer.id)
    assert mine.user_role == Role.VIEWER
    assert mine.organization.id == org.id


def test_my_organization_without_membership(db, make_user):
    user = make_user()
    with pytest.raises(NotFound):
        organizations.get_my_organization(db, user.id)


def test_settings_update_by_admin(db, make_org):
    org, admin = make_org(domain="acme.io")
    updated = organizations.update_organization_settings(
        db,
        org.id,
        {
            "name": "Acme Corp",
            "branding": {"primary_color": "#000000", "logo_url": "https://cdn/logo.png"},
            "max_seats": 9999,
            "price_per_seat": 0,
        },
        actor_user_id=admin.id,
    )
    assert updated.name == "Acme Corp"
    assert updated.primary_color == "#000000"
    assert updated.logo_url == "https://cdn/logo.png"
    # Untouched branding keys survive the merge
    assert updated.secondary_color == DEFAULT_SECONDARY_COLOR
    # Fields outside the allow-list are ignored
    assert updated.max_seats == 50
    assert updated.price_per_seat == Decimal("30.00")

    entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.ORGANIZATION_SETTINGS_UPDATED).one()
    assert entry.user_id == admin.id


def test_settings_update_domain_conflict(db, make_org):
    make_org(name="First", domain="first.io")
    org, admin = make_org(name="Second", domain="second.io")
    with pytest.raises(DomainTaken):
        organizations.update_organization_settings(db, org.id, {"domain": "first.io"}, actor_user_id=admin.id)


def test_settings_update_keeps_own_domain(db, make_org):
    org, admin = make_org(domain="acme.io")
    updated = organizations.update_organization_settings(db, org.id, {"domain": "acme.io"}, actor_user_id=admin.id)
    assert updated.domain == "acme.io"


@pytest.mark.parametrize("role", [Role.MANAGER, Role.ANALYST, Role.VIEWER])
def test_settings_update_requires_admin(db, make_org, add_member, role):
    org, _ = make_org()
    member = add_member(org, role)
    with pytest.raises(PermissionDenied):
        organizations.update_organization_settings(db, org.id, {"name": "Nope"}, actor_user_id=member.id)


def test_settings_update_by_outsider(db, make_org):
    org, _ = make_org(name="Mine")
    _, other_admin = make_org(name="Theirs")
    with pytest.raises(PermissionDenied):
        organizations.update_organization_settings(db, org.id, {"name": "Hijack"}, actor_user_id=other_admin.id)


def test_billing_monthly(db, make_org, add_member):
    org, admin = make_org()
    add_member(org, Role.VIEWER)
    add_member(org, Role.ANALYST)
    now = datetime(2026, 1, 31, 9, 0, 0)

    billing = organizations.get_organization_billing(db, org.id, admin.id, now=now)

    assert billing.current_seats == 3
    assert billing.costs.monthly == pytest.approx(90.0)
    assert billing.costs.yearly == pytest.approx(918.0)
    assert billing.billing_cycle == "monthly"
    # Jan 31 + 1 month clamps to the end of February
    assert billing.next_billing_date == datetime(2026, 2, 28, 9, 0, 0)


def test_billing_yearly_cycle(db, make_org):
    org, admin = make_org()
    org.billing_cycle = BillingCycle.YEARLY
    db.commit()
    now = datetime(2026, 5, 1)
    billing = organizations.get_organization_billing(db, org.id, admin.id, now=now)
    assert billing.next_billing_date == datetime(2027, 5, 1)


@pytest.mark.parametrize("role,allowed", [(Role.MANAGER, True), (Role.ANALYST, False), (Role.VIEWER, False)])
def test_billing_visibility(db, make_org, add_member, role, allowed):
    org, _ = make_org()
    member = add_member(org, role)
    if allowed:
        assert organizations.get_organization_billing(db, org.id, member.id).current_seats == 2
    else:
        with pytest.raises(PermissionDenied):
            organizations.get_organization_billing(db, org.id, member.id)


def test_record_analysis_usage_resets_on_new_month(db, make_org):
    org, admin = make_org()
    march = datetime(2026, 3, 30, 10, 0, 0)
    april = datetime(2026, 4, 1, 8, 0, 0)

    org_store.store_usage(db, org.id, seats=1, total_analyses=0, monthly_analyses=0, period="2026-03", now=march)
    db.commit()

    organizations.record_analysis_usage(db, org.id, admin.id, now=march)
    organizations.record_analysis_usage(db, org.id, admin.id, now=march + timedelta(hours=1))
    org = organizations.record_analysis_usage(db, org.id, admin.id, resource_id="a-3", now=april)

    assert org.total_analyses == 3
    assert org.monthly_analyses == 1
    assert org.usage_period == "2026-04"
    assert org.usage_last_reset_at == april
    assert db.query(AuditLog).filter(AuditLog.action == AuditAction.ANALYSIS_CREATED).count() == 3


def test_record_analysis_usage_requires_membership(db, make_org, make_user):
    org, _ = make_org()
    outsider = make_user()
    with pytest.raises(PermissionDenied):
        organizations.record_analysis_usage(db, org.id, outsider.id)
