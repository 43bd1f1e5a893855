"""
Authenticated principal supplied by the auth layer.
"""

from enum import Enum

from pydantic import BaseModel

from src.services.errors import AuthorizationError


class Role(str, Enum):
    ADMIN = "admin"
    BUSINESS_OWNER = "business-owner"


class Principal(BaseModel):
    id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    def require_role(self, role: Role):
        """Raise AuthorizationError unless the principal holds the given role."""
        if self.role != role:
            raise AuthorizationError(f"Access denied, only {role.value} users can perform this action")
