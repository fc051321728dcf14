"""
Role model.

Every account carries exactly one role.  Roles are totally ordered by
capability (``user < organizer < admin``) and all permission checks
are derived from that order, except for the administrator-only
checks (`is_admin` and resource approval).

The helpers accept a ``Role``, its string value or ``None`` so they
can be fed directly from a database row.  An unknown or missing role
never raises; it simply grants nothing.
"""

from enum import Enum
from typing import Optional, Union


class Role(str, Enum):
    USER = "user"
    ORGANIZER = "organizer"
    ADMIN = "admin"


ROLE_RANK: dict[Role, int] = {
    Role.USER: 1,
    Role.ORGANIZER: 2,
    Role.ADMIN: 3,
}

RoleLike = Union[Role, str, None]


def parse_role(value: RoleLike) -> Optional[Role]:
    """Return the ``Role`` for ``value`` or ``None`` if it is not a known role."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip().lower())
    except ValueError:
        return None


def role_rank(value: RoleLike) -> int:
    """Rank of a role; ``0`` for unknown values."""
    role = parse_role(value)
    return ROLE_RANK[role] if role is not None else 0


def required_role_satisfied(actual: RoleLike, required: RoleLike) -> bool:
    """True when ``actual`` ranks at least as high as ``required``."""
    if parse_role(actual) is None or parse_role(required) is None:
        return False
    return role_rank(actual) >= role_rank(required)


def can_manage_content(role: RoleLike) -> bool:
    """Create events, resources and communities; book resources."""
    return required_role_satisfied(role, Role.ORGANIZER)


def is_admin(role: RoleLike) -> bool:
    """User administration, moderation and the audit log."""
    return parse_role(role) is Role.ADMIN


def can_approve_resources(role: RoleLike) -> bool:
    """Approve or reject resources.  Administrators only."""
    return is_admin(role)


def can_view_analytics(role: RoleLike) -> bool:
    return required_role_satisfied(role, Role.USER)


def can_join_rooms(role: RoleLike) -> bool:
    return required_role_satisfied(role, Role.USER)


def permission_flags(role: RoleLike) -> dict[str, bool]:
    """All derived permissions for ``role``, keyed by predicate name."""
    return {
        "can_manage_content": can_manage_content(role),
        "can_approve_resources": can_approve_resources(role),
        "can_view_analytics": can_view_analytics(role),
        "can_join_rooms": can_join_rooms(role),
    }
