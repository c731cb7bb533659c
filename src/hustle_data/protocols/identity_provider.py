"""Identity provider protocol.

Exposes the authenticated caller to facades that enforce ownership.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class IdentityProvider(Protocol):
    """Protocol for auth identity sources."""

    def current_user_id(self) -> str | None:
        """Return the caller's user id, or None when signed out."""
        ...
