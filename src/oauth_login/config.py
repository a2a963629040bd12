"""
Configuration for the login backend.

All values come from environment variables (main.py loads .env first).
Provider credentials, the registered redirect URL, the database URL and the
session secret are required: load_settings() raises ConfigError naming every
missing variable so the process refuses to start. Endpoint URLs default to
Google's OAuth2 endpoints.
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from oauth_login.errors import ConfigError

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_REVOCATION_URL = "https://oauth2.googleapis.com/revoke"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v1/userinfo?alt=json"
DEFAULT_SCOPES = (
    "https://www.googleapis.com/auth/userinfo.profile "
    "https://www.googleapis.com/auth/userinfo.email"
)

REQUIRED_VARS = (
    "OAUTH_CLIENT_ID",
    "OAUTH_CLIENT_SECRET",
    "OAUTH_REDIRECT_URL",
    "DATABASE_URL",
    "SESSION_SECRET",
)


@dataclass(frozen=True)
class Settings:
    client_id: str
    client_secret: str = field(repr=False)
    redirect_url: str
    database_url: str
    session_secret: str = field(repr=False)

    auth_url: str = GOOGLE_AUTH_URL
    token_url: str = GOOGLE_TOKEN_URL
    revocation_url: str = GOOGLE_REVOCATION_URL
    userinfo_url: str = GOOGLE_USERINFO_URL
    scopes: List[str] = field(default_factory=lambda: DEFAULT_SCOPES.split())

    http_timeout_seconds: float = 10.0
    db_pool_size: int = 5
    db_pool_timeout_seconds: float = 30.0

    session_max_age_seconds: int = 86400
    session_cookie_secure: bool = False
    login_page_url: str = "/login"
    log_level: str = "DEBUG"


def _env(name: str, default: str = "") -> str:
    return (os.getenv(name, "") or "").strip() or default


def _env_bool(name: str, default: bool) -> bool:
    raw = _env(name).lower()
    if raw in ("1", "true", "yes", "on"):
        return True
    if raw in ("0", "false", "no", "off"):
        return False
    return default


def _env_number(name: str, default: float, minimum: float) -> float:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    return max(value, minimum)


@lru_cache(maxsize=1)
def load_settings() -> Settings:
    """Build Settings from the environment; raise ConfigError if anything required is missing."""
    missing = [name for name in REQUIRED_VARS if not _env(name)]
    if missing:
        raise ConfigError(f"Missing required configuration: {', '.join(missing)}")

    endpoints = {
        "auth_url": _env("OAUTH_AUTH_URL", GOOGLE_AUTH_URL),
        "token_url": _env("OAUTH_TOKEN_URL", GOOGLE_TOKEN_URL),
        "revocation_url": _env("OAUTH_REVOCATION_URL", GOOGLE_REVOCATION_URL),
        "userinfo_url": _env("OAUTH_USERINFO_URL", GOOGLE_USERINFO_URL),
    }
    for key, url in endpoints.items():
        if not url.startswith(("https://", "http://")):
            raise ConfigError(f"{key} must be an absolute http(s) URL, got {url!r}")

    return Settings(
        client_id=_env("OAUTH_CLIENT_ID"),
        client_secret=_env("OAUTH_CLIENT_SECRET"),
        redirect_url=_env("OAUTH_REDIRECT_URL"),
        database_url=_env("DATABASE_URL"),
        session_secret=_env("SESSION_SECRET"),
        scopes=_env("OAUTH_SCOPES", DEFAULT_SCOPES).split(),
        http_timeout_seconds=_env_number("OAUTH_HTTP_TIMEOUT_SECONDS", 10.0, 1.0),
        db_pool_size=int(_env_number("DATABASE_POOL_SIZE", 5, 1)),
        db_pool_timeout_seconds=_env_number("DATABASE_POOL_TIMEOUT_SECONDS", 30.0, 1.0),
        session_max_age_seconds=int(_env_number("SESSION_MAX_AGE_SECONDS", 86400, 60)),
        session_cookie_secure=_env_bool("SESSION_COOKIE_SECURE", False),
        login_page_url=_env("LOGIN_PAGE_URL", "/login"),
        log_level=_env("LOG_LEVEL", "DEBUG").upper(),
        **endpoints,
    )
