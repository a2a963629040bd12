"""
Protocol for authentication backends used by the auth router and AuthSession.

A backend turns callback credentials into a local user and resolves a user id
held in the session back into a user. Swapping identity providers means
providing another implementation; the router and session code only depend on
this protocol.
"""

from typing import Optional, Protocol, Tuple, runtime_checkable

from oauth_login.models import Credentials, User


@runtime_checkable
class AuthnBackend(Protocol):
    """Protocol for an authentication backend (e.g. Google OAuth2)."""

    def authorize_url(self) -> Tuple[str, str]:
        """Return (authorization_url, csrf_token) for a new login attempt."""
        ...

    async def authenticate(self, credentials: Credentials) -> Optional[User]:
        """Return the authenticated user, or None if the credentials are refused."""
        ...

    async def get_user(self, user_id: str) -> Optional[User]:
        """Return the user for a session-held id, or None if it no longer exists."""
        ...

    async def logout(self, user: User) -> None:
        """Release provider-side state for a user who is logging out."""
        ...
