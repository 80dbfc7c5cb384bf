"""Role resolution: map free-text role strings onto the closed Role set."""

from enum import Enum


class Role(str, Enum):
    """Authorization roles. Values are the canonical stored/cookie strings."""

    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    MANAGER = "Manager"
    CUSTOMER = "Customer"


DEFAULT_ROLE = Role.CUSTOMER

# Lower-cased, trimmed input -> role. Anything else resolves to DEFAULT_ROLE.
_ROLE_ALIASES: dict[str, Role] = {
    "super admin": Role.SUPER_ADMIN,
    "superadmin": Role.SUPER_ADMIN,
    "admin": Role.ADMIN,
    "manager": Role.MANAGER,
    "customer": Role.CUSTOMER,
}


def resolve_role(raw: object) -> Role:
    """
    Resolve a raw role value (cookie, DB column, CLI arg) to a Role.

    Total: None, non-strings and unknown names all give Customer.
    """
    if isinstance(raw, Role):
        return raw
    if not isinstance(raw, str):
        return DEFAULT_ROLE
    return _ROLE_ALIASES.get(raw.strip().lower(), DEFAULT_ROLE)


def role_to_string(role: Role) -> str:
    """Canonical string for a role; resolve_role() maps it back to the same role."""
    return role.value
