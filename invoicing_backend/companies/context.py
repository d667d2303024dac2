# companies/context.py

"""
TENANT CONTEXT

Every document / stock service receives the caller's tenant explicitly:

    ctx = TenantContext(company_id=..., user_id=..., role="manager")
    create_document(ctx=ctx, data=...)

Nothing in the services reads "current company" or "current role" from
ambient state. Views build the context from the authenticated user.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from django.core.exceptions import PermissionDenied

from permissions.roles import get_user_role, role_has_capability


@dataclass(frozen=True)
class TenantContext:
    company_id: Any
    user_id: Optional[Any]
    role: Optional[str]

    @classmethod
    def for_user(cls, user) -> "TenantContext":
        company_id = getattr(user, "company_id", None)
        if company_id is None:
            raise PermissionDenied("User is not attached to a company")

        return cls(
            company_id=company_id,
            user_id=getattr(user, "pk", None),
            role=get_user_role(user),
        )

    @classmethod
    def from_request(cls, request) -> "TenantContext":
        return cls.for_user(request.user)

    def can(self, capability: str) -> bool:
        return role_has_capability(self.role, capability)

    def require(self, capability: str) -> None:
        if not self.can(capability):
            raise PermissionDenied(
                f"Role {self.role!r} is not allowed to perform {capability!r}"
            )
