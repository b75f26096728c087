"""
Tests for the pooled engine's idle-connection policy.
"""

import pytest
from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import create_async_engine

from database.session import install_idle_timeout


class _Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
async def single_conn_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'idle.db'}", pool_size=1, max_overflow=0
    )
    yield engine
    await engine.dispose()


def _count_connects(engine) -> list:
    opened = []
    event.listen(engine.sync_engine, "connect", lambda dbapi_conn, record: opened.append(dbapi_conn))
    return opened


async def _select_one(engine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


class TestIdleTimeout:
    @pytest.mark.asyncio
    async def test_recently_used_connection_is_reused(self, single_conn_engine):
        clock = _Clock()
        install_idle_timeout(single_conn_engine, 60, clock=clock)
        opened = _count_connects(single_conn_engine)

        await _select_one(single_conn_engine)
        clock.now += 30
        await _select_one(single_conn_engine)

        assert len(opened) == 1

    @pytest.mark.asyncio
    async def test_idle_connection_is_discarded_on_checkout(self, single_conn_engine):
        clock = _Clock()
        install_idle_timeout(single_conn_engine, 60, clock=clock)
        opened = _count_connects(single_conn_engine)

        await _select_one(single_conn_engine)
        clock.now += 61
        await _select_one(single_conn_engine)

        assert len(opened) == 2
        assert opened[0] is not opened[1]

    @pytest.mark.asyncio
    async def test_zero_disables_the_policy(self, single_conn_engine):
        clock = _Clock()
        install_idle_timeout(single_conn_engine, 0, clock=clock)
        opened = _count_connects(single_conn_engine)

        await _select_one(single_conn_engine)
        clock.now += 10_000
        await _select_one(single_conn_engine)

        assert len(opened) == 1
