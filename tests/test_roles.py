import pytest

from frontdesk.core.roles import (
    HOME_PATH,
    LOGIN_PATH,
    View,
    can_access_view,
    can_manage_users,
    get_default_path,
    get_nav_items,
    resolve_route,
)
from frontdesk.db.models import UserRole


@pytest.mark.parametrize(
    "role, expected",
    [
        (UserRole.super_admin, "/admin"),
        (UserRole.admin, "/admin"),
        (UserRole.hierarchy_person, "/hierarchy"),
        (UserRole.front_desk, "/front-desk"),
        ("janitor", LOGIN_PATH),
        (None, LOGIN_PATH),
    ],
)
def test_default_path(role, expected):
    assert get_default_path(role) == expected


def test_nav_items_per_role():
    assert [item["label"] for item in get_nav_items(UserRole.admin)] == ["Admin Dashboard", "Reports"]
    assert [item["label"] for item in get_nav_items("super-admin")] == ["Admin Dashboard", "Reports"]
    assert [item["label"] for item in get_nav_items(UserRole.front_desk)] == ["Dashboard"]
    assert [item["label"] for item in get_nav_items(UserRole.hierarchy_person)] == ["Reports"]
    assert get_nav_items("unknown") == []


def test_nav_items_are_copies():
    items = get_nav_items(UserRole.admin)
    items[0]["label"] = "changed"
    assert get_nav_items(UserRole.admin)[0]["label"] == "Admin Dashboard"


@pytest.mark.parametrize(
    "role, view, allowed",
    [
        (UserRole.admin, View.admin, True),
        (UserRole.admin, View.reports, True),
        (UserRole.admin, View.front_desk, False),
        (UserRole.hierarchy_person, View.reports, True),
        (UserRole.hierarchy_person, View.hierarchy, True),
        (UserRole.hierarchy_person, View.admin, False),
        (UserRole.front_desk, View.front_desk, True),
        (UserRole.front_desk, View.reports, False),
        (UserRole.super_admin, View.front_desk, True),
        (UserRole.super_admin, View.hierarchy, True),
        (UserRole.super_admin, "anything", True),
        (UserRole.front_desk, "anything", False),
    ],
)
def test_can_access_view(role, view, allowed):
    assert can_access_view(role, view) is allowed


def test_resolve_route_redirects():
    assert resolve_route(None, View.admin) == LOGIN_PATH
    assert resolve_route(UserRole.front_desk, View.admin) == HOME_PATH
    assert resolve_route(UserRole.admin, "admin") is None


def test_can_manage_users():
    assert can_manage_users(UserRole.super_admin)
    assert can_manage_users("admin")
    assert not can_manage_users(UserRole.hierarchy_person)
    assert not can_manage_users(UserRole.front_desk)
    assert not can_manage_users(None)
