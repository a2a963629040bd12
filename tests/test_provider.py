from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from oauth_login.config import DEFAULT_SCOPES
from oauth_login.errors import ExchangeError, RevocationError
from oauth_login.provider import GoogleOAuthClient

from conftest import AUTH_URL, REVOCATION_URL, TOKEN_URL


@pytest.fixture
def client(settings, fake_provider) -> GoogleOAuthClient:
    return GoogleOAuthClient(settings, transport=fake_provider.transport)


def test_authorization_request_builds_code_flow_url(client, settings) -> None:
    url, csrf = client.authorization_request()

    parsed = urlparse(url)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == AUTH_URL
    params = parse_qs(parsed.query)
    assert params["response_type"] == ["code"]
    assert params["client_id"] == ["test-client-id"]
    assert params["redirect_uri"] == [settings.redirect_url]
    assert params["state"] == [csrf]
    assert params["scope"][0].split() == DEFAULT_SCOPES.split()


def test_authorization_request_uses_fresh_csrf_tokens(client) -> None:
    tokens = {client.authorization_request()[1] for _ in range(20)}
    assert len(tokens) == 20
    assert all(len(t) >= 32 for t in tokens)


@pytest.mark.asyncio
async def test_exchange_code_returns_access_token(client, fake_provider, settings) -> None:
    token = await client.exchange_code("abc")

    assert token == "token-abc"
    (request,) = fake_provider.calls
    assert request.method == "POST"
    body = parse_qs(request.content.decode())
    assert body["grant_type"] == ["authorization_code"]
    assert body["code"] == ["abc"]
    assert body["redirect_uri"] == [settings.redirect_url]
    assert request.headers["Authorization"].startswith("Basic ")


@pytest.mark.asyncio
async def test_exchange_code_provider_error(client, fake_provider) -> None:
    fake_provider.token_status = 400
    fake_provider.token_body = {"error": "invalid_grant"}
    with pytest.raises(ExchangeError, match="invalid_grant"):
        await client.exchange_code("replayed")
    assert len(fake_provider.calls_to(TOKEN_URL)) == 1


@pytest.mark.asyncio
async def test_exchange_code_non_2xx_without_error_body(client, fake_provider) -> None:
    fake_provider.token_status = 403
    fake_provider.token_body = {"message": "forbidden"}
    with pytest.raises(ExchangeError, match="403"):
        await client.exchange_code("abc")


@pytest.mark.asyncio
async def test_exchange_code_server_error(client, fake_provider) -> None:
    fake_provider.token_status = 502
    fake_provider.token_body = {"message": "bad gateway"}
    with pytest.raises(ExchangeError):
        await client.exchange_code("abc")


@pytest.mark.asyncio
async def test_exchange_code_missing_access_token(client, fake_provider) -> None:
    fake_provider.token_body = {"token_type": "Bearer"}
    with pytest.raises(ExchangeError, match="access_token"):
        await client.exchange_code("abc")


@pytest.mark.asyncio
async def test_exchange_code_transport_error(client, fake_provider) -> None:
    fake_provider.token_error = httpx.ReadTimeout("timed out")
    with pytest.raises(ExchangeError, match="ReadTimeout"):
        await client.exchange_code("abc")


@pytest.mark.asyncio
async def test_revoke_token(client, fake_provider) -> None:
    await client.revoke_token("token-abc")
    (request,) = fake_provider.calls_to(REVOCATION_URL)
    body = parse_qs(request.content.decode())
    assert body["token"] == ["token-abc"]


@pytest.mark.asyncio
async def test_revoke_token_failure(client, fake_provider) -> None:
    fake_provider.revoke_status = 400
    with pytest.raises(RevocationError):
        await client.revoke_token("token-abc")
