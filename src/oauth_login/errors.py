"""
Error types for the login flow.

Component errors (ExchangeError, FetchError, StoreError) are raised by the
provider client, profile fetcher and user store. The backend wraps them into
BackendError subclasses so callers only need to handle one family. A CSRF
mismatch or an unknown user id is not an error: those surface as None.
"""


class AuthError(Exception):
    """Base class for every error raised by this package."""


class ConfigError(AuthError):
    """Required configuration is missing or invalid (fatal at startup)."""


class ExchangeError(AuthError):
    """The authorization code could not be exchanged for an access token."""


class FetchError(AuthError):
    """The provider profile could not be fetched or did not match the expected schema."""


class StoreError(AuthError):
    """The user store failed (connectivity or constraint violation)."""


class RevocationError(AuthError):
    """The provider did not accept a token revocation request."""


class BackendError(AuthError):
    """A login attempt or user lookup failed for a reason other than refusal."""


class DatabaseError(BackendError):
    pass


class NetworkError(BackendError):
    pass


class OAuth2Error(BackendError):
    pass


class SessionError(AuthError):
    """The session layer failed."""


class SessionSerializationError(SessionError):
    """A session value could not be serialized; the session cannot be trusted."""
