"""Fetch the signed-in user's profile from the provider's userinfo endpoint."""

from typing import Optional

import httpx
from loguru import logger

from oauth_login.config import Settings
from oauth_login.errors import FetchError
from oauth_login.models import Profile

USER_AGENT = "oauth-login"


class ProfileFetcher:
    """Client for the provider's userinfo endpoint."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def fetch_profile(self, access_token: str) -> Profile:
        """
        GET the userinfo endpoint with the access token as a bearer token.

        Some providers (GitHub among them) reject requests without a User-Agent,
        so one is always sent. Only `email` is required; `name` may be absent.
        No retries: a failure is raised as FetchError.
        """
        headers = {
            "Authorization": f"Bearer {access_token}",
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds, transport=self._transport
            ) as client:
                r = await client.get(self.settings.userinfo_url, headers=headers)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as e:
            raise FetchError(f"Profile endpoint returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"Profile request failed ({type(e).__name__})") from e
        except ValueError as e:
            raise FetchError("Profile endpoint returned a non-JSON body") from e

        if not isinstance(data, dict):
            raise FetchError("Profile response is not a JSON object")
        email = data.get("email")
        if not isinstance(email, str) or not email.strip():
            raise FetchError("Profile response is missing the email field")
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            name = str(name)

        logger.debug("Fetched provider profile")
        return Profile(email=email.strip(), name=name or None)
