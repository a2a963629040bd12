"""
FastAPI auth router: login, OAuth callback, /auth/me, logout.

Decisions:
- /auth/login returns the provider URL as JSON ({"url": ...}); the frontend
  navigates to it. The CSRF token and the post-login target are kept in the
  session until the callback.
- The callback always clears the flow state, whatever the outcome, so a state
  value can be used once.
- Backend errors are logged with detail and answered with a generic message.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, RedirectResponse
from loguru import logger

from oauth_login.errors import BackendError, DatabaseError, SessionError
from oauth_login.models import Credentials
from oauth_login.session import (
    CSRF_STATE_KEY,
    NEXT_URL_KEY,
    AuthSession,
    get_auth_session,
    sanitize_next_path,
)

LOGIN_FAILED = "Login failed, please try again"
SESSION_FAILED = "session error"


def create_auth_router(login_page_url: str = "/login") -> APIRouter:
    """Create an APIRouter with /auth/login, /oauth/callback, /auth/me and /auth/logout."""
    router = APIRouter()

    @router.get("/auth/login")
    async def login(next: Optional[str] = None, auth_session: AuthSession = Depends(get_auth_session)):
        """Issue the provider authorization URL and remember the CSRF token and next URL."""
        url, csrf_token = auth_session.backend.authorize_url()
        try:
            auth_session.session.set(CSRF_STATE_KEY, csrf_token)
            auth_session.session.set(NEXT_URL_KEY, sanitize_next_path(next))
        except SessionError as e:
            logger.error(f"Could not store login flow state: {e}")
            return JSONResponse({"error": SESSION_FAILED}, status_code=500)
        return {"url": url}

    @router.get("/oauth/callback", name="oauth_callback")
    async def oauth_callback(
        code: Optional[str] = None,
        state: Optional[str] = None,
        error: Optional[str] = None,
        auth_session: AuthSession = Depends(get_auth_session),
    ):
        """Validate state, exchange the code, create the user and bind the session."""
        try:
            server_state = auth_session.session.pop(CSRF_STATE_KEY)
            next_url = sanitize_next_path(auth_session.session.pop(NEXT_URL_KEY))
        except SessionError as e:
            logger.error(f"Could not read login flow state: {e}")
            return JSONResponse({"error": SESSION_FAILED}, status_code=500)

        if error:
            logger.warning(f"Provider returned an error on callback: {error}")
            return JSONResponse({"error": "authorization denied"}, status_code=400)
        if not code:
            return JSONResponse({"error": "missing authorization code"}, status_code=400)

        credentials = Credentials(code=code, client_state=state, server_state=server_state)
        try:
            user = await auth_session.backend.authenticate(credentials)
        except BackendError as e:
            logger.error(f"Login failed ({type(e).__name__}): {e}")
            return JSONResponse({"error": LOGIN_FAILED}, status_code=500)

        if user is None:
            return JSONResponse({"error": "invalid login state"}, status_code=401)

        try:
            await auth_session.login(user)
        except SessionError as e:
            logger.error(f"Could not bind session to user {user.id}: {e}")
            return JSONResponse({"error": LOGIN_FAILED}, status_code=500)
        return RedirectResponse(url=next_url, status_code=302)

    @router.get("/auth/me")
    async def me(auth_session: AuthSession = Depends(get_auth_session)):
        """Return the current user; 401 if not logged in, 503 if the store cannot be reached."""
        try:
            user = await auth_session.user()
        except DatabaseError:
            return JSONResponse({"error": "cannot verify session right now"}, status_code=503)
        except SessionError as e:
            logger.error(f"Could not read session: {e}")
            return JSONResponse({"error": SESSION_FAILED}, status_code=500)
        if user is None:
            return JSONResponse({"error": "not authenticated"}, status_code=401)
        return {"user": user.public_dict()}

    @router.get("/auth/logout")
    async def logout(auth_session: AuthSession = Depends(get_auth_session)):
        """Clear the session, revoke the provider token and redirect to the login page."""
        try:
            user = await auth_session.logout()
        except SessionError as e:
            logger.error(f"Logout failed: {e}")
            return JSONResponse({"error": "logout failed"}, status_code=500)
        if user is not None:
            await auth_session.backend.logout(user)
            logger.info(f"User {user.id} logged out")
        return RedirectResponse(url=login_page_url, status_code=302)

    return router
