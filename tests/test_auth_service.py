"""
Tests for the Register / Login pipeline with a mocked repository.
"""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from auth.jwt import PLACEHOLDER_TOKEN
from auth.password import hash_password
from auth.service import AuthService
from database.repository import UserRecord
from utils.errors import (
    AuthError,
    BackendError,
    ConflictError,
    NotFoundError,
    UniqueViolation,
    UserNotFound,
    ValidationError,
)

PASSWORD = "p@ssw0rd"
REGISTER = {
    "email": "a@b.c",
    "username": "alice",
    "password": PASSWORD,
    "first_name": "Alice",
    "last_name": "Zed",
}


def _stored_user(password: str = PASSWORD) -> UserRecord:
    return UserRecord(
        email="a@b.c",
        username="alice",
        password_hash=hash_password(password, rounds=4),
        first_name="Alice",
        last_name="Zed",
    )


def _mock_repo() -> MagicMock:
    repo = MagicMock()
    repo.check_user_exists = AsyncMock(return_value=False)
    repo.register_user = AsyncMock(side_effect=lambda user: user.username)
    repo.get_user_by_username = AsyncMock(return_value=_stored_user())
    repo.get_user_by_email = AsyncMock(return_value=_stored_user())
    return repo


@pytest.fixture
def repo():
    return _mock_repo()


@pytest.fixture
def auth(settings, repo):
    return AuthService(settings, repo, logging.getLogger("auth.test"), bcrypt_rounds=4)


class TestRegister:
    @pytest.mark.asyncio
    async def test_happy_path_stores_hash(self, auth, repo):
        assert await auth.register(**REGISTER) == "alice"

        repo.check_user_exists.assert_awaited_once_with("alice", "a@b.c")
        stored = repo.register_user.await_args.args[0]
        assert stored.password_hash != PASSWORD
        assert stored.password_hash.startswith("$2")
        assert (stored.email, stored.first_name, stored.last_name) == ("a@b.c", "Alice", "Zed")

    @pytest.mark.asyncio
    async def test_invalid_input_touches_nothing(self, auth, repo):
        with pytest.raises(ValidationError):
            await auth.register(**{**REGISTER, "username": "a"})
        repo.check_user_exists.assert_not_awaited()
        repo.register_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_username_with_at_sign_rejected(self, auth, repo):
        with pytest.raises(ValidationError) as exc_info:
            await auth.register(**{**REGISTER, "username": "bob@home"})
        assert exc_info.value.fields == ("username",)
        repo.register_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_password_over_bcrypt_limit_is_invalid(self, auth, repo):
        with pytest.raises(ValidationError):
            await auth.register(**{**REGISTER, "password": "\U0001F600" * 20})
        repo.register_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_existing_user(self, auth, repo):
        repo.check_user_exists.return_value = True
        with pytest.raises(ConflictError):
            await auth.register(**REGISTER)
        repo.register_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_race_is_conflict(self, auth, repo):
        repo.register_user.side_effect = UniqueViolation("user already exists")
        with pytest.raises(ConflictError):
            await auth.register(**REGISTER)

    @pytest.mark.asyncio
    async def test_backend_error_on_existence_check(self, auth, repo):
        repo.check_user_exists.side_effect = BackendError("unable to check user")
        with pytest.raises(BackendError):
            await auth.register(**REGISTER)
        repo.register_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_backend_error_on_insert(self, auth, repo):
        repo.register_user.side_effect = BackendError("unable to create user")
        with pytest.raises(BackendError):
            await auth.register(**REGISTER)

    @pytest.mark.asyncio
    async def test_hashing_failure_is_backend_error(self, auth, repo):
        with patch("auth.password.bcrypt.hashpw", side_effect=ValueError("bad salt")):
            with pytest.raises(BackendError, match="hashing"):
                await auth.register(**REGISTER)
        repo.register_user.assert_not_awaited()


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_by_username(self, auth, repo):
        assert await auth.login("alice", PASSWORD) == PLACEHOLDER_TOKEN
        repo.get_user_by_username.assert_awaited_once_with("alice")
        repo.get_user_by_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_login_by_email(self, auth, repo):
        assert await auth.login("a@b.c", PASSWORD) == PLACEHOLDER_TOKEN
        repo.get_user_by_email.assert_awaited_once_with("a@b.c")

    @pytest.mark.asyncio
    async def test_wrong_password(self, auth):
        with pytest.raises(AuthError):
            await auth.login("alice", "wrong!")

    @pytest.mark.asyncio
    async def test_unknown_user(self, auth, repo):
        repo.get_user_by_username.side_effect = UserNotFound("user not found")
        with pytest.raises(NotFoundError):
            await auth.login("ghost", "whatever")

    @pytest.mark.asyncio
    async def test_backend_error(self, auth, repo):
        repo.get_user_by_username.side_effect = BackendError("unable to get user by username")
        with pytest.raises(BackendError):
            await auth.login("alice", PASSWORD)

    @pytest.mark.asyncio
    async def test_invalid_input(self, auth, repo):
        with pytest.raises(ValidationError):
            await auth.login("alice", "123")
        repo.get_user_by_username.assert_not_awaited()


class TestNoCredentialLeakage:
    @pytest.mark.asyncio
    async def test_logs_never_contain_password_or_hash(self, auth, repo, caplog):
        caplog.set_level(logging.DEBUG)
        stored = _stored_user()
        repo.get_user_by_username.return_value = stored

        await auth.register(**REGISTER)
        await auth.login("alice", PASSWORD)
        with pytest.raises(AuthError):
            await auth.login("alice", "wrong!")
        with pytest.raises(ValidationError):
            await auth.register(**{**REGISTER, "first_name": "A1"})

        written_hash = repo.register_user.await_args.args[0].password_hash
        for record in caplog.records:
            text = record.getMessage() + repr(getattr(record, "fields", ""))
            for secret in (PASSWORD, "wrong!", stored.password_hash, written_hash):
                assert secret not in text
