# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_ACCOUNTANT = "accountant"
ROLE_CASHIER = "cashier"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_ACCOUNTANT,
    ROLE_CASHIER,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Services and views protect capabilities, not raw roles.
CAP_DOCUMENTS_VIEW = "documents.view"
CAP_SALES_EDIT = "documents.sales.edit"          # quotes, orders, deliveries, invoices
CAP_PURCHASES_EDIT = "documents.purchases.edit"  # supplier-side chain
CAP_DOCUMENTS_CONVERT = "documents.convert"
CAP_DOCUMENTS_CANCEL = "documents.cancel"
CAP_CREDIT_NOTES = "documents.credit_notes"

CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_ADJUST = "inventory.adjust"        # manual movements

ALL_CAPABILITIES = {
    CAP_DOCUMENTS_VIEW,
    CAP_SALES_EDIT,
    CAP_PURCHASES_EDIT,
    CAP_DOCUMENTS_CONVERT,
    CAP_DOCUMENTS_CANCEL,
    CAP_CREDIT_NOTES,
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_ADJUST,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        *ALL_CAPABILITIES,
    },
    ROLE_ACCOUNTANT: {
        CAP_DOCUMENTS_VIEW,
        CAP_SALES_EDIT,
        CAP_PURCHASES_EDIT,
        CAP_DOCUMENTS_CONVERT,
        CAP_CREDIT_NOTES,
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_ADJUST,
    },
    ROLE_CASHIER: {
        # cashiers decrement stock through sales documents only
        CAP_DOCUMENTS_VIEW,
        CAP_SALES_EDIT,
        CAP_DOCUMENTS_CONVERT,
        CAP_INVENTORY_VIEW,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def capabilities_for_role(role: Optional[str]) -> set[str]:
    return set(ROLE_CAPABILITIES.get(role or "", set()))


def role_has_capability(role: Optional[str], capability: str) -> bool:
    return capability in capabilities_for_role(role)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_INVENTORY_ADJUST
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default to avoid accidental open endpoints
            return False

        return role_has_capability(get_user_role(user), required)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a set.

    Usage:
        view.required_any_capabilities = {CAP_SALES_EDIT, CAP_PURCHASES_EDIT}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = capabilities_for_role(get_user_role(user))
        return any(cap in caps for cap in set(required))


class BelongsToCompany(BasePermission):
    """
    Tenant guard: authenticated staff attached to an active company.
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if get_user_role(user) not in STAFF_ROLES:
            return False

        company = getattr(user, "company", None)
        return bool(company is not None and getattr(company, "is_active", False))
