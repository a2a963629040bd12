"""
Pytest config.

Provider HTTP is served by FakeProvider through httpx.MockTransport, and the
user store is a SQLite file under tmp_path, so no test touches the network or
a real Postgres.
"""

from urllib.parse import parse_qs

import httpx
import pytest
from sqlalchemy import func, select

from oauth_login.app import build_backend, create_app
from oauth_login.config import Settings, load_settings
from oauth_login.store import users

TOKEN_URL = "https://oauth2.example.test/token"
USERINFO_URL = "https://oauth2.example.test/userinfo?alt=json"
REVOCATION_URL = "https://oauth2.example.test/revoke"
AUTH_URL = "https://accounts.example.test/o/oauth2/v2/auth"


class FakeProvider:
    """
    Stand-in for the provider's token, userinfo and revocation endpoints.

    Token responses derive the access token from the code (`token-<code>`), so
    distinct codes yield distinct tokens. Every request is recorded in `calls`.
    """

    def __init__(self) -> None:
        self.calls: list[httpx.Request] = []
        self.token_status = 200
        self.token_body = None
        self.token_error: Exception | None = None
        self.profile_status = 200
        self.profile_body: object = {"email": "a@b.com", "name": "A"}
        self.revoke_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        url = str(request.url)
        if url.startswith(TOKEN_URL):
            if self.token_error is not None:
                raise self.token_error
            if self.token_body is not None:
                return httpx.Response(self.token_status, json=self.token_body)
            code = parse_qs(request.content.decode())["code"][0]
            return httpx.Response(
                self.token_status,
                json={"access_token": f"token-{code}", "token_type": "Bearer", "expires_in": 3599},
            )
        if url.startswith("https://oauth2.example.test/userinfo"):
            return httpx.Response(self.profile_status, json=self.profile_body)
        if url.startswith(REVOCATION_URL):
            return httpx.Response(self.revoke_status)
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls_to(self, prefix: str) -> list[httpx.Request]:
        return [c for c in self.calls if str(c.url).startswith(prefix)]


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    load_settings.cache_clear()
    yield
    load_settings.cache_clear()


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        client_id="test-client-id",
        client_secret="test-client-secret",
        redirect_url="http://localhost:3000/oauth/callback",
        database_url=f"sqlite:///{tmp_path / 'users.db'}",
        session_secret="test-secret-key-for-testing-purposes-only",
        auth_url=AUTH_URL,
        token_url=TOKEN_URL,
        revocation_url=REVOCATION_URL,
        userinfo_url=USERINFO_URL,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def backend(settings, fake_provider):
    b = build_backend(settings, transport=fake_provider.transport)
    b.store.create_schema()
    yield b
    b.store.dispose()


@pytest.fixture
def app(settings, backend):
    return create_app(settings, backend)


@pytest.fixture
def user_count(backend):
    """Callable returning the number of rows in the users table."""

    def _count() -> int:
        with backend.store.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(users)).scalar_one()

    return _count
