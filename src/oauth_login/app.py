"""
Application factory.

Wires settings into the provider client, profile fetcher, user store and
backend, installs Starlette's SessionMiddleware (signed cookie, SameSite=lax so
the cookie survives the provider redirect, expiry from SESSION_MAX_AGE_SECONDS)
and mounts the auth router. The users table is created on startup.
"""

from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from loguru import logger
from starlette.middleware.sessions import SessionMiddleware

from oauth_login.backend import Backend
from oauth_login.config import Settings
from oauth_login.profile import ProfileFetcher
from oauth_login.provider import GoogleOAuthClient
from oauth_login.router import create_auth_router
from oauth_login.store import UserStore, build_engine


def build_backend(settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> Backend:
    store = UserStore(build_engine(settings))
    return Backend(
        GoogleOAuthClient(settings, transport=transport),
        ProfileFetcher(settings, transport=transport),
        store,
    )


def create_app(settings: Settings, backend: Optional[Backend] = None) -> FastAPI:
    backend = backend or build_backend(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        backend.store.create_schema()
        logger.info("User store ready")
        yield
        backend.store.dispose()

    app = FastAPI(lifespan=lifespan)
    app.state.backend = backend
    app.state.settings = settings
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret,
        max_age=settings.session_max_age_seconds,
        same_site="lax",
        https_only=settings.session_cookie_secure,
    )
    app.include_router(create_auth_router(settings.login_page_url))
    return app
