"""Member management: role changes, removal, seat accounting and the audit view"""
from datetime import datetime, timedelta
from unittest.mock import patch
import json

import pytest
from sqlalchemy.exc import SQLAlchemyError

from orgaccess.core.audit import record_event, AuditMetadata
from orgaccess.core.errors import Conflict, CrossOrganizationMismatch, InvalidAuditAction, PermissionDenied
from orgaccess.core.roles import Role
from orgaccess.models.audit_log import AuditLog, AuditAction
from orgaccess.models.user import PlanTier
from orgaccess.services import invitations, members
from orgaccess.stores import audit as audit_store
from orgaccess.stores import memberships


def test_admin_promotes_viewer(db, make_org, add_member):
    org, admin = make_org()
    viewer = add_member(org, Role.VIEWER)

    change = members.update_user_role(
        db, admin.id, viewer.id, Role.MANAGER, org.id,
        metadata=AuditMetadata(ip_address="10.0.0.1", user_agent="pytest"),
    )

    assert change.old_role == Role.VIEWER
    assert change.new_role == Role.MANAGER
    db.refresh(viewer)
    assert viewer.role == Role.MANAGER

    entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.USER_ROLE_CHANGED).one()
    assert entry.target_user_id == viewer.id
    assert entry.ip_address == "10.0.0.1"
    assert json.loads(entry.details) == {
        "target_user_id": str(viewer.id),
        "old_role": "viewer",
        "new_role": "manager",
    }


def test_manager_cannot_grant_admin(db, make_org, add_member):
    org, _ = make_org()
    manager = add_member(org, Role.MANAGER)
    viewer = add_member(org, Role.VIEWER)
    with pytest.raises(PermissionDenied):
        members.update_user_role(db, manager.id, viewer.id, Role.ADMIN, org.id)
    db.refresh(viewer)
    assert viewer.role == Role.VIEWER


def test_manager_cannot_demote_peer(db, make_org, add_member):
    org, _ = make_org()
    manager = add_member(org, Role.MANAGER)
    peer = add_member(org, Role.MANAGER)
    with pytest.raises(PermissionDenied):
        members.update_user_role(db, manager.id, peer.id, Role.VIEWER, org.id)


def test_admin_cannot_change_own_role(db, make_org):
    org, admin = make_org()
    with pytest.raises(PermissionDenied):
        members.update_user_role(db, admin.id, admin.id, Role.VIEWER, org.id)


def test_role_change_across_organizations(db, make_org, add_member):
    org_a, admin_a = make_org(name="A")
    org_b, _ = make_org(name="B")
    stranger = add_member(org_b, Role.VIEWER)
    with pytest.raises(CrossOrganizationMismatch):
        members.update_user_role(db, admin_a.id, stranger.id, Role.ANALYST, org_a.id)
    with pytest.raises(CrossOrganizationMismatch):
        members.update_user_role(db, admin_a.id, stranger.id, Role.ANALYST, org_b.id)


def test_role_change_lost_race(db, make_org, add_member):
    org, admin = make_org()
    viewer = add_member(org, Role.VIEWER)
    with patch("orgaccess.services.members.memberships.change_role", return_value=False):
        with pytest.raises(Conflict):
            members.update_user_role(db, admin.id, viewer.id, Role.ANALYST, org.id)
    assert db.query(AuditLog).filter(AuditLog.action == AuditAction.USER_ROLE_CHANGED).count() == 0


def test_change_role_store_checks_expected_role(db, make_org, add_member):
    org, _ = make_org()
    viewer = add_member(org, Role.VIEWER)
    assert not memberships.change_role(db, viewer.id, org.id, Role.ANALYST, Role.MANAGER)
    assert memberships.change_role(db, viewer.id, org.id, Role.VIEWER, Role.MANAGER)
    db.commit()


def test_admin_removes_member(db, make_org, add_member):
    org, admin = make_org()
    analyst = add_member(org, Role.ANALYST, email="leaving@example.com")
    db.refresh(org)
    assert org.current_seats == 2

    removal = members.remove_user(db, admin.id, analyst.id, org.id)

    assert removal.user_id == analyst.id
    assert removal.email == "leaving@example.com"
    db.refresh(analyst)
    db.refresh(org)
    assert analyst.organization_id is None
    assert analyst.role is None
    assert analyst.plan == PlanTier.FREE
    assert org.current_seats == 1

    entry = db.query(AuditLog).filter(AuditLog.action == AuditAction.USER_REMOVED).one()
    assert json.loads(entry.details) == {"removed_user_id": str(analyst.id), "removed_email": "leaving@example.com"}


@pytest.mark.parametrize("actor_role,target_role", [
    (Role.MANAGER, Role.MANAGER),
    (Role.MANAGER, Role.ADMIN),
    (Role.VIEWER, Role.VIEWER),
    (Role.ANALYST, Role.MANAGER),
])
def test_removal_requires_higher_rank(db, make_org, add_member, actor_role, target_role):
    org, _ = make_org()
    actor = add_member(org, actor_role)
    target = add_member(org, target_role)
    with pytest.raises(PermissionDenied):
        members.remove_user(db, actor.id, target.id, org.id)
    db.refresh(target)
    assert target.organization_id == org.id


def test_manager_removes_analyst(db, make_org, add_member):
    org, _ = make_org()
    manager = add_member(org, Role.MANAGER)
    analyst = add_member(org, Role.ANALYST)
    members.remove_user(db, manager.id, analyst.id, org.id)
    db.refresh(analyst)
    assert analyst.organization_id is None


def test_removed_user_can_be_invited_back(db, make_org, add_member, make_user):
    org, admin = make_org()
    viewer = add_member(org, Role.VIEWER, email="back@example.com")
    members.remove_user(db, admin.id, viewer.id, org.id)

    inv = invitations.invite_user(db, admin.id, org.id, "back@example.com", Role.ANALYST)
    invitations.accept_invitation(db, inv.token, viewer.id)

    db.refresh(viewer)
    assert viewer.organization_id == org.id
    assert viewer.role == Role.ANALYST


def test_seat_counter_tracks_membership(db, make_org, make_user):
    org, admin = make_org()
    now = datetime(2026, 6, 1)
    joined = []
    for i in range(3):
        email = f"seat{i}@example.com"
        inv = invitations.invite_user(db, admin.id, org.id, email, Role.VIEWER, now=now)
        user = make_user(email=email)
        invitations.accept_invitation(db, inv.token, user.id, now=now)
        joined.append(user)
    members.remove_user(db, admin.id, joined[0].id, org.id)

    db.refresh(org)
    assert org.current_seats == len(memberships.list_members(db, org.id)) == 3


def test_audit_write_failure_does_not_fail_workflow(db, make_org, add_member, caplog):
    org, admin = make_org()
    viewer = add_member(org, Role.VIEWER)
    with patch("orgaccess.core.audit.audit_store.append", side_effect=SQLAlchemyError("audit table locked")):
        change = members.update_user_role(db, admin.id, viewer.id, Role.ANALYST, org.id)

    assert change.new_role == Role.ANALYST
    db.refresh(viewer)
    assert viewer.role == Role.ANALYST
    assert db.query(AuditLog).count() == 0
    assert any("[AUDIT]" in r.getMessage() for r in caplog.records)


def test_record_event_returns_none_on_failure(db, make_org):
    org, admin = make_org()
    with patch("orgaccess.core.audit.audit_store.append", side_effect=SQLAlchemyError("boom")):
        assert record_event(db, AuditAction.BILLING_VIEWED, org.id, admin.id) is None


def _seed_audit(db, org, actor, count, start=datetime(2026, 1, 1)):
    for i in range(count):
        audit_store.append(
            db,
            organization_id=org.id,
            user_id=actor.id,
            action=AuditAction.ANALYSIS_VIEWED if i % 2 else AuditAction.ANALYSIS_CREATED,
            details=json.dumps({"n": i}),
            created_at=start + timedelta(minutes=i),
        )
    db.commit()


def test_audit_logs_paginate_newest_first(db, make_org):
    org, admin = make_org()
    _seed_audit(db, org, admin, 7)

    first = members.get_audit_logs(db, admin.id, org.id, page=1, limit=3)
    last = members.get_audit_logs(db, admin.id, org.id, page=3, limit=3)

    assert [e.details["n"] for e in first.logs] == [6, 5, 4]
    assert [e.details["n"] for e in last.logs] == [0]
    assert first.pagination.total == 7
    assert first.pagination.pages == 3


def test_audit_logs_filter_by_action(db, make_org):
    org, admin = make_org()
    _seed_audit(db, org, admin, 6)
    page = members.get_audit_logs(db, admin.id, org.id, action="analysis_viewed")
    assert page.pagination.total == 3
    assert {e.action for e in page.logs} == {AuditAction.ANALYSIS_VIEWED}


def test_audit_logs_unknown_action(db, make_org):
    org, admin = make_org()
    with pytest.raises(InvalidAuditAction):
        members.get_audit_logs(db, admin.id, org.id, action="user_teleported")


def test_audit_logs_limit_is_capped(db, make_org):
    org, admin = make_org()
    page = members.get_audit_logs(db, admin.id, org.id, limit=10_000)
    assert page.pagination.limit == 100
    assert page.pagination.pages == 0


def test_audit_logs_are_scoped_to_organization(db, make_org):
    org_a, admin_a = make_org(name="A")
    org_b, admin_b = make_org(name="B")
    _seed_audit(db, org_b, admin_b, 4)
    assert members.get_audit_logs(db, admin_a.id, org_a.id).pagination.total == 0


@pytest.mark.parametrize("role", [Role.MANAGER, Role.ANALYST, Role.VIEWER])
def test_audit_logs_admin_only(db, make_org, add_member, role):
    org, _ = make_org()
    member = add_member(org, role)
    with pytest.raises(PermissionDenied):
        members.get_audit_logs(db, member.id, org.id)
