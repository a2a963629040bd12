"""
Google OAuth2 provider client.

Builds the authorization URL (with a fresh CSRF token as `state`), exchanges
authorization codes for access tokens and revokes tokens at logout. Uses
Authlib for the OAuth2 parameters and the httpx-based AsyncOAuth2Client for
the token request. A new AsyncOAuth2Client is created per exchange because the
client keeps the fetched token on itself and must not be shared between
concurrent logins.
"""

from typing import Optional, Tuple

import httpx
from authlib.common.security import generate_token
from authlib.integrations.httpx_client import AsyncOAuth2Client, OAuthError
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri
from loguru import logger

from oauth_login.config import Settings
from oauth_login.errors import ExchangeError, RevocationError

CSRF_TOKEN_LENGTH = 32


def _raise_for_non_oauth_error(resp: httpx.Response) -> httpx.Response:
    """
    Compliance hook for token responses.

    Error bodies in the OAuth2 format ({"error": ...}) are left for Authlib to
    turn into OAuthError. Any other non-2xx response is raised as an HTTP error.
    """
    if resp.status_code < 400:
        return resp
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and "error" in body:
        return resp
    resp.raise_for_status()
    return resp


class GoogleOAuthClient:
    """OAuth2 Authorization Code client for Google (or any provider with the same endpoints)."""

    name: str = "google"

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """`transport` lets tests substitute httpx.MockTransport for the network."""
        self.settings = settings
        self._transport = transport

    def authorization_request(self) -> Tuple[str, str]:
        """Return (authorization_url, csrf_token) for a new login attempt."""
        csrf_token = generate_token(CSRF_TOKEN_LENGTH)
        url = prepare_grant_uri(
            self.settings.auth_url,
            self.settings.client_id,
            "code",
            redirect_uri=self.settings.redirect_url,
            scope=self.settings.scopes,
            state=csrf_token,
        )
        return url, csrf_token

    def _oauth_client(self) -> AsyncOAuth2Client:
        client = AsyncOAuth2Client(
            client_id=self.settings.client_id,
            client_secret=self.settings.client_secret,
            redirect_uri=self.settings.redirect_url,
            timeout=self.settings.http_timeout_seconds,
            transport=self._transport,
        )
        client.register_compliance_hook("access_token_response", _raise_for_non_oauth_error)
        return client

    async def exchange_code(self, code: str) -> str:
        """
        Exchange an authorization code for an access token.

        Codes are single-use at the provider, so there is no retry: any failure
        raises ExchangeError and the user has to start the login again.
        """
        try:
            async with self._oauth_client() as client:
                token = await client.fetch_token(
                    self.settings.token_url,
                    grant_type="authorization_code",
                    code=code,
                )
        except OAuthError as e:
            raise ExchangeError(f"Provider rejected the authorization code ({e.error})") from e
        except httpx.HTTPStatusError as e:
            raise ExchangeError(f"Token endpoint returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise ExchangeError(f"Token endpoint request failed ({type(e).__name__})") from e
        except ValueError as e:
            raise ExchangeError("Token endpoint returned a malformed response") from e

        access_token = token.get("access_token") if isinstance(token, dict) else None
        if not access_token or not isinstance(access_token, str):
            raise ExchangeError("Token response did not include an access_token")
        logger.debug(f"Exchanged authorization code with {self.name} (token_type={token.get('token_type')})")
        return access_token

    async def revoke_token(self, access_token: str) -> None:
        """Revoke an access token at the provider's RFC 7009 revocation endpoint."""
        try:
            async with httpx.AsyncClient(
                timeout=self.settings.http_timeout_seconds, transport=self._transport
            ) as client:
                r = await client.post(
                    self.settings.revocation_url,
                    data={"token": access_token, "token_type_hint": "access_token"},
                )
                r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RevocationError(f"Revocation endpoint returned status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise RevocationError(f"Revocation request failed ({type(e).__name__})") from e
