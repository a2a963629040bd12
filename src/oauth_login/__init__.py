"""
OAuth2 login for FastAPI applications.

Exposes the authentication backend (Backend, AuthnBackend), session helpers
(AuthSession, SessionBridge, require_login), configuration (load_settings) and
the app/router factories (create_app, create_auth_router).
"""

from .app import build_backend, create_app
from .backend import Backend
from .config import Settings, load_settings
from .errors import (
    AuthError,
    BackendError,
    ConfigError,
    DatabaseError,
    NetworkError,
    OAuth2Error,
    SessionError,
    SessionSerializationError,
)
from .logs import configure_logging
from .models import Credentials, Profile, User
from .protocol import AuthnBackend
from .router import create_auth_router
from .session import AuthSession, SessionBridge, get_auth_session, require_login

__all__ = [
    "AuthError",
    "AuthSession",
    "AuthnBackend",
    "Backend",
    "BackendError",
    "ConfigError",
    "Credentials",
    "DatabaseError",
    "NetworkError",
    "OAuth2Error",
    "Profile",
    "SessionBridge",
    "SessionError",
    "SessionSerializationError",
    "Settings",
    "User",
    "build_backend",
    "configure_logging",
    "create_app",
    "create_auth_router",
    "get_auth_session",
    "load_settings",
    "require_login",
]
