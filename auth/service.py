"""
Register / Login pipeline.

``AuthService`` holds no per-request state; it only wires the injected
collaborators (settings, repository, logger) together, so one instance
serves every concurrent RPC.  Failures are raised as ``utils.errors``
classes and mapped to status codes at the RPC boundary.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.jwt import issue_token
from auth.password import BCRYPT_ROUNDS, hash_password_async, verify_password_async
from auth.schemas import LoginRequestValidation, RegisterRequestValidation, validate
from config.settings import Settings
from database.repository import UserRecord
from utils.errors import AuthError, BackendError, ConflictError, NotFoundError, ValidationError


class Repository(Protocol):
    async def register_user(self, user: UserRecord) -> str: ...

    async def check_user_exists(self, username: str, email: str) -> bool: ...

    async def get_user_by_username(self, username: str) -> UserRecord: ...

    async def get_user_by_email(self, email: str) -> UserRecord: ...


def _describe(exc: BaseException) -> str:
    """Underlying driver message of a wrapped backend error."""
    cause = exc.__cause__
    if cause is None:
        return str(exc)
    return f"{exc}: {getattr(cause, 'orig', None) or cause}"


class AuthService:
    def __init__(
        self,
        settings: Settings,
        repository: Repository,
        logger: logging.Logger,
        bcrypt_rounds: int = BCRYPT_ROUNDS,
    ):
        self._settings = settings
        self._repo = repository
        self._logger = logger
        self._bcrypt_rounds = bcrypt_rounds

    async def register(
        self,
        email: str,
        username: str,
        password: str,
        first_name: str,
        last_name: str,
    ) -> str:
        """Create an account and return the stored username."""
        try:
            data = validate(
                RegisterRequestValidation,
                email=email,
                username=username,
                password=password,
                first_name=first_name,
                last_name=last_name,
            )
        except ValidationError as exc:
            self._logger.info("Invalid register input", extra={"fields": {"invalid": ",".join(exc.fields)}})
            raise

        try:
            exists = await self._repo.check_user_exists(data.username, data.email)
        except BackendError as exc:
            self._logger.error("Error checking user existence: %s", _describe(exc))
            raise
        if exists:
            self._logger.info("User already exists", extra={"fields": {"username": data.username}})
            raise ConflictError("user already exists")

        try:
            password_hash = await hash_password_async(data.password, self._bcrypt_rounds)
        except ValueError as exc:
            self._logger.error("Error hashing password: %s", type(exc).__name__)
            raise BackendError("error hashing password") from exc

        try:
            stored = await self._repo.register_user(
                UserRecord(
                    email=data.email,
                    username=data.username,
                    password_hash=password_hash,
                    first_name=data.first_name,
                    last_name=data.last_name,
                )
            )
        except ConflictError:
            # lost the race against a concurrent Register
            self._logger.info("User already exists", extra={"fields": {"username": data.username}})
            raise
        except BackendError as exc:
            self._logger.error("Failed to register user: %s", _describe(exc))
            raise

        self._logger.info("User registered", extra={"fields": {"username": stored}})
        return stored

    async def login(self, email: str, password: str) -> str:
        """
        Verify a credential and return a session token.

        ``email`` is the login identifier (email address or username).
        """
        try:
            data = validate(LoginRequestValidation, email=email, password=password)
        except ValidationError as exc:
            self._logger.info("Invalid login input", extra={"fields": {"invalid": ",".join(exc.fields)}})
            raise

        self._logger.info("Login attempt", extra={"fields": {"login": data.email}})

        lookup = self._repo.get_user_by_email if data.by_email else self._repo.get_user_by_username
        try:
            user = await lookup(data.email)
        except NotFoundError:
            self._logger.info("User not found", extra={"fields": {"login": data.email}})
            raise
        except BackendError as exc:
            self._logger.error("Error looking up user: %s", _describe(exc))
            raise

        if not await verify_password_async(data.password, user.password_hash):
            self._logger.warning("Invalid password", extra={"fields": {"login": data.email}})
            raise AuthError("invalid password")

        self._logger.info("User successfully logged in", extra={"fields": {"username": user.username}})
        return issue_token(self._settings, user.username)
