"""
User store backed by SQLAlchemy.

One `users` table: id (primary key, random and never reused), email, name
(nullable) and the provider access token. The engine uses a bounded QueuePool
with no overflow: when every connection is checked out, callers wait up to
pool_timeout for one to be returned. Statements run in Starlette's threadpool so
the event loop is never blocked on the database.

Decisions:
- create_user always inserts. A second login with the same email creates a new
  row; there is no find-by-email step.
- find_by_id returns None for an unknown id. Only driver/connectivity failures
  raise StoreError.
- hide_parameters=True keeps bound values (the access token) out of SQLAlchemy
  error messages.
"""

import uuid
from typing import Optional

from loguru import logger
from sqlalchemy import Column, MetaData, String, Table, Text, create_engine, insert, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import QueuePool
from starlette.concurrency import run_in_threadpool

from oauth_login.config import Settings
from oauth_login.errors import StoreError
from oauth_login.models import User

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("email", String(320), nullable=False),
    Column("name", String(255), nullable=True),
    Column("access_token", Text, nullable=False),
)


def new_user_id() -> str:
    return uuid.uuid4().hex


def build_engine(settings: Settings) -> Engine:
    """Create the engine with a bounded connection pool."""
    url = make_url(settings.database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Pooled sqlite connections are handed between threadpool workers.
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=0,
        pool_timeout=settings.db_pool_timeout_seconds,
        pool_pre_ping=True,
        hide_parameters=True,
        connect_args=connect_args,
    )


def _row_to_user(row) -> User:
    return User(id=row.id, email=row.email, name=row.name, access_token=row.access_token)


class UserStore:
    """Insert and look up local users in the users table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def create_schema(self) -> None:
        """Create the users table if it does not exist."""
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to create schema ({type(e).__name__})") from e

    def _insert_user(self, email: str, name: Optional[str], access_token: str) -> User:
        stmt = (
            insert(users)
            .values(id=new_user_id(), email=email, name=name, access_token=access_token)
            .returning(users.c.id, users.c.email, users.c.name, users.c.access_token)
        )
        try:
            with self.engine.begin() as conn:
                row = conn.execute(stmt).one()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to insert user ({type(e).__name__})") from e
        return _row_to_user(row)

    def _select_user(self, user_id: str) -> Optional[User]:
        stmt = select(users).where(users.c.id == user_id)
        try:
            with self.engine.connect() as conn:
                row = conn.execute(stmt).first()
        except SQLAlchemyError as e:
            raise StoreError(f"Failed to load user ({type(e).__name__})") from e
        if row is None:
            return None
        return _row_to_user(row)

    async def create_user(self, email: str, name: Optional[str], access_token: str) -> User:
        """Insert a new user with a freshly generated id and return the stored row."""
        user = await run_in_threadpool(self._insert_user, email, name, access_token)
        logger.info(f"Created user {user.id}")
        return user

    async def find_by_id(self, user_id: str) -> Optional[User]:
        """Return the user with this id, or None if there is no such row."""
        return await run_in_threadpool(self._select_user, user_id)

    def dispose(self) -> None:
        self.engine.dispose()
