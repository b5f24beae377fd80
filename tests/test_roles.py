"""Role hierarchy and permission predicates"""
import itertools

import pytest

from orgaccess.core.roles import (
    Role,
    rank,
    can_assign_role,
    can_remove,
    can_invite,
    can_view_audit,
    can_view_billing,
    can_manage_settings,
)

ALL_ROLES = list(Role)


def test_ranks_are_totally_ordered():
    assert [rank(r) for r in (Role.VIEWER, Role.ANALYST, Role.MANAGER, Role.ADMIN)] == [0, 1, 2, 3]


def test_rank_accepts_string_values():
    assert rank("manager") == rank(Role.MANAGER)


def test_rank_rejects_unknown_role():
    with pytest.raises(ValueError):
        rank("owner")


@pytest.mark.parametrize("actor,target,requested", list(itertools.product(ALL_ROLES, repeat=3)))
def test_can_assign_role_grid(actor, target, requested):
    expected = rank(actor) >= rank(requested) and rank(actor) > rank(target)
    assert can_assign_role(rank(actor), rank(target), rank(requested)) is expected


def test_peer_admins_cannot_touch_each_other():
    admin = rank(Role.ADMIN)
    assert not can_assign_role(admin, admin, rank(Role.VIEWER))
    assert not can_remove(admin, admin)


def test_manager_cannot_grant_admin():
    assert not can_assign_role(rank(Role.MANAGER), rank(Role.VIEWER), rank(Role.ADMIN))
    assert can_assign_role(rank(Role.MANAGER), rank(Role.VIEWER), rank(Role.MANAGER))


@pytest.mark.parametrize("actor,target", list(itertools.product(ALL_ROLES, repeat=2)))
def test_can_remove_requires_strictly_higher_rank(actor, target):
    assert can_remove(rank(actor), rank(target)) is (rank(actor) > rank(target))


@pytest.mark.parametrize(
    "role,invite,audit,billing,settings",
    [
        (Role.VIEWER, False, False, False, False),
        (Role.ANALYST, False, False, False, False),
        (Role.MANAGER, True, False, True, False),
        (Role.ADMIN, True, True, True, True),
    ],
)
def test_capability_predicates(role, invite, audit, billing, settings):
    r = rank(role)
    assert can_invite(r) is invite
    assert can_view_audit(r) is audit
    assert can_view_billing(r) is billing
    assert can_manage_settings(r) is settings
