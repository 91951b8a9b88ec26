"""Closed set of roles and the two access policies used across the API."""

from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role names as stored in the roles table and carried in token claims."""

    ADMIN = "admin"
    MODERATOR = "moderador"
    USER = "usuario"

    @classmethod
    def parse(cls, name: str | None) -> Role:
        """Validate a role name coming from storage or a token.

        A missing name falls back to the default user role; anything outside
        the enumeration is rejected.
        """
        if not name:
            return cls.USER
        try:
            return cls(name)
        except ValueError:
            msg = f"Unknown role: {name}"
            raise ValueError(msg) from None


ADMIN_ONLY: frozenset[Role] = frozenset({Role.ADMIN})
MODERATOR_OR_ADMIN: frozenset[Role] = frozenset({Role.ADMIN, Role.MODERATOR})
