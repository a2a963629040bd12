"""
Google OAuth2 authentication backend.

A login attempt moves through: started (authorization URL issued) -> callback
received -> rejected on CSRF mismatch, or token exchanged -> profile fetched ->
user resolved. Any step after the CSRF check can fail, and each failure is
raised as the BackendError subclass for that step:

- code exchange  -> OAuth2Error
- profile fetch  -> NetworkError
- user insert    -> DatabaseError

Nothing is retried; the caller treats an error as a failed login and the user
starts again from /auth/login. A CSRF mismatch is a refusal (None), not an error.
"""

import hmac
from typing import Optional, Tuple

from loguru import logger

from oauth_login.errors import (
    DatabaseError,
    ExchangeError,
    FetchError,
    NetworkError,
    OAuth2Error,
    RevocationError,
    StoreError,
)
from oauth_login.models import Credentials, User
from oauth_login.profile import ProfileFetcher
from oauth_login.protocol import AuthnBackend
from oauth_login.provider import GoogleOAuthClient
from oauth_login.store import UserStore


def states_match(client_state: Optional[str], server_state: Optional[str]) -> bool:
    """Exact, constant-time comparison of the echoed and remembered CSRF states."""
    if not client_state or not server_state:
        return False
    return hmac.compare_digest(client_state.encode("utf-8"), server_state.encode("utf-8"))


class Backend(AuthnBackend):
    """Authentication backend: provider client + profile fetcher + user store."""

    def __init__(self, client: GoogleOAuthClient, profiles: ProfileFetcher, store: UserStore):
        self.client = client
        self.profiles = profiles
        self.store = store

    def authorize_url(self) -> Tuple[str, str]:
        """Return (authorization_url, csrf_token) from the provider client."""
        url, csrf_token = self.client.authorization_request()
        logger.debug("Login attempt started")
        return url, csrf_token

    async def authenticate(self, credentials: Credentials) -> Optional[User]:
        """Check the CSRF state, then exchange the code, fetch the profile and create the user."""
        if not states_match(credentials.client_state, credentials.server_state):
            logger.warning("Login attempt rejected: CSRF state mismatch or missing session state")
            return None

        try:
            access_token = await self.client.exchange_code(credentials.code)
        except ExchangeError as e:
            logger.error(f"Login attempt failed at code exchange: {e}")
            raise OAuth2Error(str(e)) from e
        logger.debug("Login attempt: token exchanged")

        try:
            profile = await self.profiles.fetch_profile(access_token)
        except FetchError as e:
            logger.error(f"Login attempt failed at profile fetch: {e}")
            raise NetworkError(str(e)) from e
        logger.debug("Login attempt: profile fetched")

        try:
            user = await self.store.create_user(profile.email, profile.name, access_token)
        except StoreError as e:
            logger.error(f"Login attempt failed at user insert: {e}")
            raise DatabaseError(str(e)) from e
        logger.info(f"Login attempt succeeded for user {user.id}")
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        """Look up a session-held user id; None if the row does not exist."""
        try:
            user = await self.store.find_by_id(user_id)
        except StoreError as e:
            logger.error(f"Could not load user {user_id}: {e}")
            raise DatabaseError(str(e)) from e
        if user is None:
            logger.info(f"Session refers to unknown user {user_id}")
        return user

    async def logout(self, user: User) -> None:
        """Revoke the user's access token; a provider failure is logged, not raised."""
        try:
            await self.client.revoke_token(user.access_token)
        except RevocationError as e:
            logger.warning(f"Token revocation failed for user {user.id}: {e}")
