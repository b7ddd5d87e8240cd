"""
auth/models.py -- Domain types for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in tracker/models.py -- dataclasses own domain shape; stores, the policy
table, and routes do the work.

Layer rule: no imports from api/ or tracker/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Closed set of permission classes. Compared by identity, never by raw string."""

    admin = "admin"
    user = "user"


@dataclass
class User:
    """Represents a registered identity.

    email is the login identifier and is unique across all users.
    hashed_password is a bcrypt hash; it never leaves the auth layer --
    response models in api/models.py have no field for it.
    """

    fullname: str
    email: str
    role: Role = Role.user
    id: int | None = None
    hashed_password: str | None = None
    created_at: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin
