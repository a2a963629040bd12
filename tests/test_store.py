import pytest

from oauth_login.errors import StoreError
from oauth_login.models import User
from oauth_login.store import UserStore, build_engine


@pytest.mark.asyncio
async def test_create_and_find_user(backend) -> None:
    store = backend.store
    created = await store.create_user("a@b.com", "A", "token-1")

    assert created.id
    assert created.email == "a@b.com"
    assert created.name == "A"
    assert created.access_token == "token-1"
    assert await store.find_by_id(created.id) == created


@pytest.mark.asyncio
async def test_create_user_without_name(backend) -> None:
    created = await backend.store.create_user("a@b.com", None, "token-1")
    loaded = await backend.store.find_by_id(created.id)
    assert loaded.name is None


@pytest.mark.asyncio
async def test_find_unknown_id_returns_none(backend) -> None:
    assert await backend.store.find_by_id("missing") is None


@pytest.mark.asyncio
async def test_create_user_is_not_idempotent(backend, user_count) -> None:
    first = await backend.store.create_user("a@b.com", "A", "token-1")
    second = await backend.store.create_user("a@b.com", "A", "token-1")
    assert first.id != second.id
    assert user_count() == 2


@pytest.mark.asyncio
async def test_store_errors_are_wrapped(settings) -> None:
    # schema never created: every statement fails
    store = UserStore(build_engine(settings))
    try:
        with pytest.raises(StoreError):
            await store.find_by_id("anything")
        with pytest.raises(StoreError) as excinfo:
            await store.create_user("a@b.com", "A", "secret-token")
        assert "secret-token" not in str(excinfo.value)
    finally:
        store.dispose()


def test_user_repr_hides_access_token() -> None:
    user = User(id="u1", email="a@b.com", name="A", access_token="secret-token")
    assert "secret-token" not in repr(user)
    assert user.public_dict() == {"id": "u1", "email": "a@b.com", "name": "A"}


def test_engine_pool_is_bounded(settings) -> None:
    engine = build_engine(settings)
    try:
        assert engine.pool.size() == settings.db_pool_size
    finally:
        engine.dispose()
