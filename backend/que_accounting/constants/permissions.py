"""
Canonical permission names for QUE Accounting.

IMPORTANT: Module/action strings used by route guards MUST reference these
constants. The catalog itself is data (the permissions table); the default
catalog below is what seed_permission_catalog loads into an empty database.

Role names:
- ADMIN_ROLE_NAME: the business's administrative role. Memberships holding
  it bypass the fine-grained catalog check.
- DEFAULT_ROLE_NAME: landing role for invited collaborators (no grants).
"""

from enum import Enum
from typing import Dict, FrozenSet, Tuple

ADMIN_ROLE_NAME = "Admin"
DEFAULT_ROLE_NAME = "User"

# Granted-everything marker returned for owner/admin bypass
ALL_PERMISSIONS = "*"


class Module(str, Enum):
    """Modules guarded by the permission evaluator."""
    INVOICE = "invoice"
    CUSTOMER = "customer"
    SETTINGS = "settings"
    PAYMENT = "payment"
    USER = "user"


class Action(str, Enum):
    """Actions within a module."""
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


DEFAULT_PERMISSION_CATALOG: Dict[str, Tuple[str, ...]] = {
    Module.INVOICE.value: ("create", "read", "update", "delete"),
    Module.CUSTOMER.value: ("create", "read", "update", "delete"),
    Module.SETTINGS.value: ("create", "update"),
    Module.PAYMENT.value: ("create", "read"),
    Module.USER.value: ("create", "read", "update", "delete"),
}


def catalog_keys(catalog: Dict[str, Tuple[str, ...]] = DEFAULT_PERMISSION_CATALOG) -> FrozenSet[str]:
    """Flatten a catalog mapping into 'module:action' keys."""
    return frozenset(
        f"{module}:{action}"
        for module, actions in catalog.items()
        for action in actions
    )
