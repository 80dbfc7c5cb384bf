"""
Access gates for dashboard areas and user management.

Pure predicates over Role; no store access, never raise. Page guards read the
session first, then apply a gate and decide whether to redirect or deny.
"""

from typing import TYPE_CHECKING
from urllib.parse import urlencode

from app.services.roles import Role, resolve_role

if TYPE_CHECKING:
    from app.schemas.auth import SessionAssertion

DASHBOARD_ROOT = "/admin"
LOGIN_PATH = "/admin/login"
PUBLIC_LOGIN_PATH = "/user/login"
CUSTOMER_HOME = "/my-account"
STAFF_HOME = "/dashboard"

# Dashboard sections a Manager may open (the root itself matches exactly).
MANAGER_ALLOWED_PREFIXES = (
    "/admin/products",
    "/admin/orders",
    "/admin/categories",
    "/admin/tags",
    "/admin/sales",
    "/admin/customers",
    "/admin/coupons",
    "/admin/reviews",
)


def can_access_admin(role: Role) -> bool:
    """Any staff role may enter the dashboard; customers may not."""
    return resolve_role(role) != Role.CUSTOMER


def can_access_settings(role: Role) -> bool:
    return resolve_role(role) in (Role.SUPER_ADMIN, Role.ADMIN)


def can_access_dashboard_path(role: Role, path: str) -> bool:
    """True if role may open the dashboard page at path (internal /admin form)."""
    role = resolve_role(role)
    if role == Role.CUSTOMER:
        return False
    if role == Role.MANAGER:
        if path == DASHBOARD_ROOT:
            return True
        return any(path.startswith(prefix) for prefix in MANAGER_ALLOWED_PREFIXES)
    return True


def can_create_user_role(actor: Role, target: Role) -> bool:
    actor = resolve_role(actor)
    target = resolve_role(target)
    if actor == Role.SUPER_ADMIN:
        return True
    if actor == Role.ADMIN:
        return target != Role.SUPER_ADMIN
    if actor == Role.MANAGER:
        return target in (Role.MANAGER, Role.CUSTOMER)
    return False


def can_delete_user(actor: Role, target: Role) -> bool:
    """Deletion and deactivation rule: staff only, and only a Super Admin touches a Super Admin."""
    actor = resolve_role(actor)
    target = resolve_role(target)
    if actor == Role.CUSTOMER:
        return False
    if actor == Role.SUPER_ADMIN:
        return True
    if target == Role.SUPER_ADMIN:
        return False
    return actor in (Role.ADMIN, Role.MANAGER)


def to_internal_path(path: str) -> str:
    """Map the public /dashboard and /user/login paths onto their /admin equivalents."""
    if path == STAFF_HOME or path.startswith(STAFF_HOME + "/"):
        return DASHBOARD_ROOT + path[len(STAFF_HOME):]
    if path == PUBLIC_LOGIN_PATH:
        return LOGIN_PATH
    return path


def resolve_dashboard_redirect(path: str, session: "SessionAssertion") -> str | None:
    """
    Page-guard decision for a dashboard path.

    Returns the location to redirect to, or None when the page may be served.
    Paths outside the dashboard are always allowed.
    """
    internal = to_internal_path(path)
    if internal != DASHBOARD_ROOT and not internal.startswith(DASHBOARD_ROOT + "/"):
        return None

    role = session.role if session.authenticated and session.role else Role.CUSTOMER
    home = STAFF_HOME if can_access_admin(role) else CUSTOMER_HOME

    if internal == LOGIN_PATH:
        return home if session.authenticated else None
    if not session.authenticated:
        return f"{PUBLIC_LOGIN_PATH}?{urlencode({'next': path})}"
    if not can_access_admin(role):
        return CUSTOMER_HOME
    if not can_access_dashboard_path(role, internal):
        return STAFF_HOME
    return None
