"""
Role capabilities.

Every route and service asks "may this role do X?" through has_permission()
instead of comparing role strings inline. Roles come from User.role.
"""

from .models.auth import ROLE_ADMIN, ROLE_CUSTOMER


class PermissionCategory:
    """Groups permissions by area for listing."""
    ORDERS = "ORDERS"
    CATALOG = "CATALOG"
    CASH_FLOW = "CASH_FLOW"
    HR = "HR"


# Each permission is defined as: (code, description, category, roles)
PERMISSION_DEFINITIONS = [
    ("CREATE_ORDER", "Place orders (reserves stock)", PermissionCategory.ORDERS, {ROLE_CUSTOMER}),
    ("VIEW_ORDERS", "View own orders", PermissionCategory.ORDERS, {ROLE_ADMIN, ROLE_CUSTOMER}),
    ("UPDATE_ORDER_STATUS", "Change the status of own orders", PermissionCategory.ORDERS, {ROLE_ADMIN, ROLE_CUSTOMER}),
    ("DELETE_OWN_ORDER", "Delete own orders", PermissionCategory.ORDERS, {ROLE_CUSTOMER}),
    ("MANAGE_ANY_ORDER", "View, update and delete any user's orders", PermissionCategory.ORDERS, {ROLE_ADMIN}),
    ("VIEW_CATALOG", "View products and categories", PermissionCategory.CATALOG, {ROLE_ADMIN, ROLE_CUSTOMER}),
    ("MANAGE_CATALOG", "Create and edit products, restock", PermissionCategory.CATALOG, {ROLE_ADMIN}),
    ("VIEW_CASH_FLOW", "View cash-flow dashboards, history and forecast", PermissionCategory.CASH_FLOW, {ROLE_ADMIN}),
    ("MANAGE_CASH_FLOW", "Create/edit transactions and sync orders", PermissionCategory.CASH_FLOW, {ROLE_ADMIN}),
    ("MANAGE_EMPLOYEES", "Employee records and HR analytics", PermissionCategory.HR, {ROLE_ADMIN}),
]

PERMISSION_CODES = {code for code, _, _, _ in PERMISSION_DEFINITIONS}

_ROLE_PERMISSIONS: dict[str, set[str]] = {}
for _code, _desc, _category, _roles in PERMISSION_DEFINITIONS:
    for _role in _roles:
        _ROLE_PERMISSIONS.setdefault(_role, set()).add(_code)


def get_role_permissions(role: str) -> set[str]:
    return set(_ROLE_PERMISSIONS.get(role, set()))


def has_permission(role: str, permission_code: str) -> bool:
    if permission_code not in PERMISSION_CODES:
        raise KeyError(f"Unknown permission code: {permission_code}")
    return permission_code in _ROLE_PERMISSIONS.get(role, set())
