"""
Permission System Constants and Definitions

All permission codes and role mappings are defined here.

DESIGN PRINCIPLES:
- Permissions are "<resource>:<action>" codes (e.g. "invoices:write")
- A user's permission set is a pure function of the role, computed on read
- Admin has all permissions
"""

from __future__ import annotations


# =============================================================================
# PERMISSION CATEGORIES
# =============================================================================

class PermissionCategory:
    """Permission categories for grouping and UI display."""
    SUPPLIERS = "SUPPLIERS"
    CLIENTS = "CLIENTS"
    PRODUCTS = "PRODUCTS"
    INVOICES = "INVOICES"
    USERS = "USERS"
    REPORTS = "REPORTS"
    SYSTEM = "SYSTEM"


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    ("suppliers:read", "View Suppliers", "List and view suppliers and their catalogs", PermissionCategory.SUPPLIERS),
    ("suppliers:write", "Manage Suppliers", "Create and edit suppliers and catalog entries", PermissionCategory.SUPPLIERS),
    ("suppliers:delete", "Deactivate Suppliers", "Soft-delete suppliers", PermissionCategory.SUPPLIERS),

    ("clients:read", "View Clients", "List and view clients", PermissionCategory.CLIENTS),
    ("clients:write", "Manage Clients", "Create and edit clients", PermissionCategory.CLIENTS),
    ("clients:delete", "Deactivate Clients", "Soft-delete clients", PermissionCategory.CLIENTS),

    ("products:read", "View Products", "List products, stock levels and movements", PermissionCategory.PRODUCTS),
    ("products:write", "Manage Products", "Create and edit products, adjust inventory", PermissionCategory.PRODUCTS),
    ("products:delete", "Discontinue Products", "Soft-delete products", PermissionCategory.PRODUCTS),

    ("invoices:read", "View Invoices", "List and view invoices", PermissionCategory.INVOICES),
    ("invoices:write", "Manage Invoices", "Create invoices, change status, record payments", PermissionCategory.INVOICES),
    ("invoices:delete", "Delete Invoices", "Delete draft invoices", PermissionCategory.INVOICES),

    ("users:read", "View Users", "List user accounts", PermissionCategory.USERS),
    ("users:write", "Manage Users", "Create users, change roles and status", PermissionCategory.USERS),
    ("users:delete", "Delete Users", "Deactivate user accounts", PermissionCategory.USERS),

    ("reports:read", "View Reports", "View sales reports", PermissionCategory.REPORTS),
    ("reports:write", "Manage Reports", "Create and export reports", PermissionCategory.REPORTS),
    ("dashboard:read", "View Dashboard", "View the dashboard summary", PermissionCategory.REPORTS),

    ("settings:read", "View Settings", "View system settings", PermissionCategory.SYSTEM),
    ("settings:write", "Manage Settings", "Change system settings", PermissionCategory.SYSTEM),
]


def get_all_permission_codes() -> list[str]:
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code: str) -> bool:
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()


# =============================================================================
# ROLE MAPPINGS
# =============================================================================

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "admin": frozenset(get_all_permission_codes()),
    "manager": frozenset({
        "suppliers:read", "suppliers:write",
        "clients:read", "clients:write",
        "products:read", "products:write",
        "invoices:read", "invoices:write",
        "users:read",
        "reports:read",
        "dashboard:read",
    }),
    "employee": frozenset({
        "suppliers:read",
        "clients:read", "clients:write",
        "products:read",
        "invoices:read", "invoices:write",
        "dashboard:read",
    }),
    "viewer": frozenset({
        "suppliers:read",
        "clients:read",
        "products:read",
        "invoices:read",
        "dashboard:read",
    }),
}


def permissions_for_role(role: str | None) -> frozenset[str]:
    """Permission set for a role. Unknown roles get nothing (fail closed)."""
    return ROLE_PERMISSIONS.get(role or "", frozenset())


def has_any_permission(permissions: frozenset[str], *codes: str) -> bool:
    """Any-of check used by the route decorators. No codes means no requirement."""
    if not codes:
        return True
    return any(code in permissions for code in codes)
