"""Role-keyed navigation and view guarding.

Every staff-facing view is reachable by the roles listed for it in
``VIEW_ROLES``; ``super-admin`` reaches every view.
"""

from enum import Enum

from frontdesk.db.models.user import UserRole


class View(str, Enum):
    admin = "admin"
    reports = "reports"
    front_desk = "front-desk"
    hierarchy = "hierarchy"


LOGIN_PATH = "/login"
HOME_PATH = "/"

VIEW_ROLES: dict[View, frozenset[UserRole]] = {
    View.admin: frozenset({UserRole.admin}),
    View.reports: frozenset({UserRole.admin, UserRole.hierarchy_person}),
    View.front_desk: frozenset({UserRole.front_desk}),
    View.hierarchy: frozenset({UserRole.hierarchy_person}),
}

DEFAULT_PATHS: dict[UserRole, str] = {
    UserRole.super_admin: "/admin",
    UserRole.admin: "/admin",
    UserRole.hierarchy_person: "/hierarchy",
    UserRole.front_desk: "/front-desk",
}

_ADMIN_NAV = [
    {"id": View.admin.value, "label": "Admin Dashboard", "path": "/admin"},
    {"id": View.reports.value, "label": "Reports", "path": "/reports"},
]

NAV_ITEMS: dict[UserRole, list[dict]] = {
    UserRole.super_admin: _ADMIN_NAV,
    UserRole.admin: _ADMIN_NAV,
    UserRole.front_desk: [{"id": View.front_desk.value, "label": "Dashboard", "path": "/front-desk"}],
    UserRole.hierarchy_person: [{"id": View.hierarchy.value, "label": "Reports", "path": "/hierarchy"}],
}

USER_MANAGER_ROLES = frozenset({UserRole.super_admin, UserRole.admin})


def _coerce_role(role) -> UserRole | None:
    if isinstance(role, UserRole):
        return role
    try:
        return UserRole(role)
    except ValueError:
        return None


def get_nav_items(role) -> list[dict]:
    resolved = _coerce_role(role)
    if resolved is None:
        return []
    return [dict(item) for item in NAV_ITEMS.get(resolved, [])]


def get_default_path(role) -> str:
    resolved = _coerce_role(role)
    if resolved is None:
        return LOGIN_PATH
    return DEFAULT_PATHS.get(resolved, LOGIN_PATH)


def can_access_view(role, view: View | str) -> bool:
    resolved = _coerce_role(role)
    if resolved is None:
        return False
    if resolved == UserRole.super_admin:
        return True
    try:
        view = View(view)
    except ValueError:
        return False
    return resolved in VIEW_ROLES.get(view, frozenset())


def resolve_route(role, view: View | str) -> str | None:
    """Return the redirect path for a guarded view, or None when allowed."""
    if role is None:
        return LOGIN_PATH
    if not can_access_view(role, view):
        return HOME_PATH
    return None


def can_manage_users(role) -> bool:
    return _coerce_role(role) in USER_MANAGER_ROLES
