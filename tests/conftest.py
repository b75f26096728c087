"""
Shared fixtures: a real ``UserRepository`` on a throwaway SQLite file and
an ``AuthService`` with a cheap bcrypt work factor.
"""

import logging

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import create_async_engine

from auth.service import AuthService
from config.settings import Settings
from database.models import User
from database.repository import UserRepository
from database.session import init_db

TEST_BCRYPT_ROUNDS = 4


@pytest.fixture
def settings():
    return Settings(_env_file=None)


@pytest.fixture
async def engine(tmp_path):
    # one pooled connection: SQLite writers then queue on checkout instead of
    # failing with "database is locked"
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'users.db'}", pool_size=1, max_overflow=0
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(engine):
    return UserRepository(engine)


@pytest.fixture
def service(settings, repository):
    return AuthService(
        settings,
        repository,
        logging.getLogger("auth.test"),
        bcrypt_rounds=TEST_BCRYPT_ROUNDS,
    )


@pytest.fixture
def count_users(engine):
    async def _count() -> int:
        async with engine.connect() as conn:
            result = await conn.execute(select(func.count()).select_from(User))
            return result.scalar_one()

    return _count
