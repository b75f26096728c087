"""
Application settings loaded from environment variables.

``local.env`` is read first when present; real environment variables win.
Settings are frozen once constructed.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL

from utils.log import parse_level

ENV_FILE = "local.env"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> Any:
    """
    Accept Go-style durations (``300ms``, ``30s``, ``5m``, ``1h30m``) and
    bare numbers as seconds.  Anything else is handed to pydantic's own
    ``timedelta`` parsing.
    """
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    if not isinstance(value, str):
        return value

    text = value.strip()
    if re.fullmatch(r"\d+(?:\.\d+)?", text):
        return timedelta(seconds=float(text))

    parts = _DURATION_PART.findall(text)
    if parts and "".join(num + unit for num, unit in parts) == text:
        return timedelta(seconds=sum(float(num) * _UNIT_SECONDS[unit] for num, unit in parts))
    return text


class PostgreSQLSettings(BaseSettings):
    user: str = "postgres"
    password: SecretStr = SecretStr("")
    host: str = "localhost"
    port: int = 5432
    name: str = "auth"
    sslmode: str = "disable"

    # ── Pool ─────────────────────────────────────────────────────────────
    pool_max_conns: int = Field(default=10, ge=1)
    pool_max_conn_lifetime: timedelta = timedelta(hours=1)
    pool_max_conn_idle_time: timedelta = timedelta(minutes=30)
    statement_cache_size: int = Field(default=100, ge=0)  # prepared statement descriptions

    model_config = SettingsConfigDict(
        env_prefix="POSTGRESQL_",
        env_file=ENV_FILE,
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        hide_input_in_errors=True,
    )

    @field_validator("pool_max_conn_lifetime", "pool_max_conn_idle_time", mode="before")
    @classmethod
    def parse_pool_durations(cls, value: Any) -> Any:
        return parse_duration(value)

    def url(self) -> str:
        """Return the SQLAlchemy ``postgresql+asyncpg`` connection URL."""
        return URL.create(
            "postgresql+asyncpg",
            username=self.user,
            password=self.password.get_secret_value() or None,
            host=self.host,
            port=self.port,
            database=self.name,
        ).render_as_string(hide_password=False)


class Settings(BaseSettings):
    log_level: str = "info"

    # ── gRPC ─────────────────────────────────────────────────────────────
    grpc_port: str = ":50051"
    grpc_shutdown_grace: timedelta = timedelta(seconds=30)

    # ── Tokens ───────────────────────────────────────────────────────────
    jwt_secret: SecretStr = SecretStr("")       # HMAC secret; empty => placeholder token
    jwt_expiry_seconds: int = 604800            # 7 days

    postgresql: PostgreSQLSettings = Field(default_factory=PostgreSQLSettings)

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        hide_input_in_errors=True,
    )

    @field_validator("grpc_shutdown_grace", mode="before")
    @classmethod
    def parse_grace(cls, value: Any) -> Any:
        return parse_duration(value)

    @field_validator("log_level")
    @classmethod
    def check_log_level(cls, value: str) -> str:
        parse_level(value)
        return value.strip().lower()

    @property
    def listen_address(self) -> str:
        """``GRPC_PORT`` in bind form: ``:50051`` becomes ``[::]:50051``."""
        address = self.grpc_port.strip()
        if address.startswith(":"):
            return f"[::]{address}"
        if address.isdigit():
            return f"[::]:{address}"
        return address
