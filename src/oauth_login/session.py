"""
Session bridge, per-request AuthSession handle and FastAPI dependencies.

Session data lives in Starlette's SessionMiddleware (signed cookie with an
explicit max_age), not in process memory, so any instance can serve any
request. The login flow stores:

- auth.csrf-state / auth.next-url: written at login start, removed at callback.
- auth.user-id / auth.user-hash: the bound user and a sha256 of that user's
  access token. The token itself never goes into the session; the hash lets a
  session be invalidated when the stored token changes.

A cookie with a bad signature or past max_age is discarded by SessionMiddleware
and the request proceeds with an empty session, i.e. anonymous. Values that
cannot be serialized are rejected on write with SessionSerializationError.

Resolution of the bound id to a User is lazy and goes through the backend.
An id that no longer exists resolves to "logged out". A store outage is raised
as DatabaseError so callers can answer 503 instead of 401.
"""

import hashlib
import hmac
import json
from typing import Any, MutableMapping, Optional

from fastapi import HTTPException, Request
from loguru import logger

from oauth_login.errors import DatabaseError, SessionError, SessionSerializationError
from oauth_login.models import User
from oauth_login.protocol import AuthnBackend

CSRF_STATE_KEY = "auth.csrf-state"
NEXT_URL_KEY = "auth.next-url"
USER_ID_KEY = "auth.user-id"
USER_HASH_KEY = "auth.user-hash"

FLOW_KEYS = (CSRF_STATE_KEY, NEXT_URL_KEY)
IDENTITY_KEYS = (USER_ID_KEY, USER_HASH_KEY)


class SessionBridge:
    """Narrow get/set view over one client's session mapping."""

    def __init__(self, session: Optional[MutableMapping[str, Any]]):
        """`session` is None when no session layer is installed; every operation then raises SessionError."""
        self._session = session

    def _mapping(self) -> MutableMapping[str, Any]:
        if self._session is None:
            raise SessionError("No session available (is SessionMiddleware installed?)")
        return self._session

    def get(self, key: str) -> Optional[Any]:
        return self._mapping().get(key)

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value; anything else raises SessionSerializationError."""
        session = self._mapping()
        try:
            json.dumps(value)
        except (TypeError, ValueError) as e:
            raise SessionSerializationError(f"Session value for {key!r} is not serializable") from e
        session[key] = value

    def pop(self, key: str) -> Optional[Any]:
        return self._mapping().pop(key, None)

    def clear(self) -> None:
        self._mapping().clear()


def session_auth_hash(user: User) -> str:
    return hashlib.sha256(user.access_token.encode("utf-8")).hexdigest()


def sanitize_next_path(next_path: Optional[str]) -> str:
    """
    Prevent open-redirects: allow only relative paths like `/inbox`.
    """
    p = (next_path or "").strip().replace("\r", "").replace("\n", "")
    if not p.startswith("/") or p.startswith("//") or p.startswith("/\\"):
        return "/"
    return p


class AuthSession:
    """Backend + session for one request. The bound user is loaded on first access."""

    def __init__(self, backend: AuthnBackend, session: SessionBridge):
        self.backend = backend
        self.session = session
        self._user: Optional[User] = None
        self._resolved = False

    @property
    def user_id(self) -> Optional[str]:
        value = self.session.get(USER_ID_KEY)
        return value if isinstance(value, str) and value else None

    async def user(self) -> Optional[User]:
        """Return the bound user, or None when not logged in (raises DatabaseError on store failure)."""
        if self._resolved:
            return self._user

        user = None
        user_id = self.user_id
        if user_id is not None:
            user = await self.backend.get_user(user_id)
            stored_hash = self.session.get(USER_HASH_KEY)
            if user is not None and not (
                isinstance(stored_hash, str) and hmac.compare_digest(stored_hash, session_auth_hash(user))
            ):
                logger.warning(f"Session auth hash mismatch for user {user_id}; logging session out")
                user = None
            if user is None:
                self._forget_identity()

        self._user = user
        self._resolved = True
        return user

    async def login(self, user: User) -> None:
        """Bind the session to `user`."""
        self.session.set(USER_ID_KEY, user.id)
        self.session.set(USER_HASH_KEY, session_auth_hash(user))
        self._user = user
        self._resolved = True

    async def logout(self) -> Optional[User]:
        """Unbind the session and return the user it was bound to (if any could be resolved)."""
        try:
            user = await self.user()
        except DatabaseError as e:
            logger.warning(f"Logging out without resolving user: {e}")
            user = None
        self.session.clear()
        self._user = None
        self._resolved = True
        return user

    def _forget_identity(self) -> None:
        for key in IDENTITY_KEYS:
            self.session.pop(key)


def get_auth_session(request: Request) -> AuthSession:
    """
    FastAPI dependency: AuthSession for this request, using the backend on app.state.

    A missing session layer is not raised here: the bridge raises SessionError
    on first use, inside the handler, so handlers answer it themselves.
    """
    return AuthSession(request.app.state.backend, SessionBridge(request.scope.get("session")))


def require_login():
    """
    Dependency: request must carry a session bound to an existing user.
    Use as: Depends(require_login()). Returns the User.
    """

    async def _dep(request: Request) -> User:
        auth_session = get_auth_session(request)
        try:
            user = await auth_session.user()
        except DatabaseError:
            raise HTTPException(status_code=503, detail="Cannot verify session right now")
        except SessionError as e:
            logger.error(f"Session unavailable: {e}")
            raise HTTPException(status_code=500, detail="Session error")
        if user is None:
            raise HTTPException(status_code=401, detail="Not authenticated")
        return user

    return _dep
