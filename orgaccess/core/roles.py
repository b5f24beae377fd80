"""
Role hierarchy and permission predicates for organization members.

Roles form a total order: viewer < analyst < manager < admin. Every
permission decision compares ranks; the predicates here return booleans and
callers turn a False into PermissionDenied.
"""
import enum


class Role(str, enum.Enum):
    VIEWER = "viewer"
    ANALYST = "analyst"
    MANAGER = "manager"
    ADMIN = "admin"


_RANKS = {
    Role.VIEWER: 0,
    Role.ANALYST: 1,
    Role.MANAGER: 2,
    Role.ADMIN: 3,
}


def rank(role: Role) -> int:
    """Position of a role in the hierarchy. Accepts the enum or its string value."""
    return _RANKS[Role(role)]


def can_assign_role(actor_rank: int, target_current_rank: int, requested_rank: int) -> bool:
    # An actor cannot grant above its own level, nor act on a peer or superior.
    return actor_rank >= requested_rank and actor_rank > target_current_rank


def can_remove(actor_rank: int, target_rank: int) -> bool:
    return actor_rank > target_rank


def can_invite(actor_rank: int) -> bool:
    return actor_rank >= rank(Role.MANAGER)


def can_view_audit(actor_rank: int) -> bool:
    return actor_rank >= rank(Role.ADMIN)


def can_view_billing(actor_rank: int) -> bool:
    return actor_rank >= rank(Role.MANAGER)


def can_manage_settings(actor_rank: int) -> bool:
    return actor_rank == rank(Role.ADMIN)
