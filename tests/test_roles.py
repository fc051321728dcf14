import pytest

from campus_hub_api.app.core.roles import (
    Role,
    can_approve_resources,
    can_join_rooms,
    can_manage_content,
    can_view_analytics,
    is_admin,
    parse_role,
    permission_flags,
    required_role_satisfied,
    role_rank,
)

ROLES = [Role.USER, Role.ORGANIZER, Role.ADMIN]


@pytest.mark.parametrize("actual", ROLES)
@pytest.mark.parametrize("required", ROLES)
def test_rank_order_decides_satisfaction(actual, required):
    assert required_role_satisfied(actual, required) == (role_rank(actual) >= role_rank(required))


def test_examples():
    assert required_role_satisfied("admin", "organizer") is True
    assert required_role_satisfied("user", "organizer") is False
    assert required_role_satisfied(Role.ORGANIZER, Role.ORGANIZER) is True


def test_only_admin_approves_resources():
    assert can_approve_resources("admin") is True
    assert can_approve_resources("organizer") is False
    assert can_approve_resources("user") is False


def test_admin_predicate_is_exact():
    assert is_admin(Role.ADMIN)
    assert not is_admin("organizer")
    assert not is_admin(None)


def test_content_management_needs_organizer():
    assert not can_manage_content("user")
    assert can_manage_content("organizer")
    assert can_manage_content("admin")


def test_every_role_can_join_and_view_analytics():
    for role in ROLES:
        assert can_join_rooms(role)
        assert can_view_analytics(role)


@pytest.mark.parametrize("value", [None, "", "superuser", 3])
def test_unknown_roles_grant_nothing(value):
    assert parse_role(value) is None
    assert role_rank(value) == 0
    assert not any(permission_flags(value).values())
    assert not required_role_satisfied(value, Role.USER)
    assert not required_role_satisfied(Role.ADMIN, value)


def test_parse_role_is_case_insensitive():
    assert parse_role(" Admin ") is Role.ADMIN


def test_permission_flags_for_organizer():
    assert permission_flags("organizer") == {
        "can_manage_content": True,
        "can_approve_resources": False,
        "can_view_analytics": True,
        "can_join_rooms": True,
    }
