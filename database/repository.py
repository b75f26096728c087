"""
User persistence over the pooled async engine.

Every operation is a single statement in its own session; uniqueness of
``email`` and ``username`` is enforced by the schema, so a Register that
loses a race surfaces as ``UniqueViolation`` at insert time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import exists, insert, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from config.settings import PostgreSQLSettings
from database.models import User
from database.session import create_engine_from_settings, init_db, ping
from utils.errors import BackendError, UniqueViolation, UserNotFound

logger = logging.getLogger(__name__)

_UNIQUE_VIOLATION_SQLSTATE = "23505"

# Driver failures that never reach SQLAlchemy's exception wrapping (e.g. refused connects).
_BACKEND_FAILURES = (SQLAlchemyError, OSError)


@dataclass(frozen=True)
class UserRecord:
    email: str
    username: str
    password_hash: str = field(repr=False)
    first_name: str
    last_name: str


def _to_record(row: User) -> UserRecord:
    return UserRecord(
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        first_name=row.first_name,
        last_name=row.last_name,
    )


def _is_unique_violation(error: IntegrityError) -> bool:
    sqlstate = getattr(error.orig, "sqlstate", None) or getattr(error.orig, "pgcode", None)
    if sqlstate is None:
        # sqlite reports constraints by message only
        return "UNIQUE constraint failed" in str(error.orig)
    return sqlstate == _UNIQUE_VIOLATION_SQLSTATE


class UserRepository:
    """Pooled client for the ``users`` table."""

    def __init__(self, engine: AsyncEngine):
        self._engine = engine
        self._session_factory = async_sessionmaker(
            engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    async def connect(
        cls, settings: PostgreSQLSettings, create_schema: bool = True
    ) -> "UserRepository":
        """
        Build the pool, probe it with a round-trip and (optionally) create
        the schema.  Raises ``BackendError`` if the database is unreachable;
        the pool is released before raising.
        """
        engine = create_engine_from_settings(settings)
        try:
            await ping(engine)
            if create_schema:
                await init_db(engine)
        except _BACKEND_FAILURES as exc:
            await engine.dispose()
            raise BackendError("failed to connect to database") from exc

        logger.info(
            "Connected to PostgreSQL",
            extra={"fields": {"host": settings.host, "port": settings.port, "db": settings.name}},
        )
        return cls(engine)

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def close(self) -> None:
        """Release every pooled connection."""
        await self._engine.dispose()

    # ── Operations ─────────────────────────────────────────────────────

    async def register_user(self, user: UserRecord) -> str:
        """Insert ``user`` and return the stored username."""
        stmt = (
            insert(User)
            .values(
                email=user.email,
                username=user.username,
                password_hash=user.password_hash,
                first_name=user.first_name,
                last_name=user.last_name,
            )
            .returning(User.username)
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                username = result.scalar_one()
                await session.commit()
        except IntegrityError as exc:
            if _is_unique_violation(exc):
                raise UniqueViolation("user already exists") from exc
            raise BackendError("unable to create user") from exc
        except _BACKEND_FAILURES as exc:
            raise BackendError("unable to create user") from exc
        return username

    async def check_user_exists(self, username: str, email: str) -> bool:
        """True iff a row has the given username or the given email."""
        stmt = select(exists().where(or_(User.username == username, User.email == email)))
        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return bool(result.scalar())
        except _BACKEND_FAILURES as exc:
            raise BackendError("unable to check user") from exc

    async def get_user_by_username(self, username: str) -> UserRecord:
        """Return the row whose username equals ``username``; ``UserNotFound`` otherwise."""
        return await self._get_one(User.username == username, "unable to get user by username")

    async def get_user_by_email(self, email: str) -> UserRecord:
        """Return the row whose email equals ``email``; ``UserNotFound`` otherwise."""
        return await self._get_one(User.email == email, "unable to get user by email")

    async def _get_one(self, criterion, context: str) -> UserRecord:
        try:
            async with self._session_factory() as session:
                result = await session.execute(select(User).where(criterion))
                row = result.scalar_one_or_none()
        except _BACKEND_FAILURES as exc:
            raise BackendError(context) from exc
        if row is None:
            raise UserNotFound("user not found")
        return _to_record(row)
