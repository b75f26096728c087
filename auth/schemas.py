"""
Declarative field constraints for the Register / Login requests.

``validate`` runs a model and turns pydantic's aggregate error into a
``utils.errors.ValidationError`` that names the violating fields only;
field values (passwords included) never leave this module.
"""

from __future__ import annotations

from typing import Annotated, Any, Type, TypeVar

import pydantic
from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

from utils.errors import ValidationError

USERNAME_MIN, USERNAME_MAX = 3, 30
PASSWORD_MIN, PASSWORD_MAX = 6, 50
NAME_MIN, NAME_MAX = 2, 30

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72

_ALPHA = r"^[A-Za-z]+$"
# "@" marks an email at Login, so usernames never contain one
_NO_AT = r"^[^@]+$"


def _check_email(value: str) -> str:
    """Bare ``local@domain`` only; display-name forms are rejected."""
    try:
        return validate_email(value, check_deliverability=False).normalized
    except EmailNotValidError:
        raise ValueError("value is not a valid email address") from None


def _check_password_bytes(value: str) -> str:
    if len(value.encode()) > BCRYPT_MAX_BYTES:
        raise ValueError(f"password must be at most {BCRYPT_MAX_BYTES} bytes")
    return value


Email = Annotated[str, AfterValidator(_check_email)]
Username = Annotated[str, Field(min_length=USERNAME_MIN, max_length=USERNAME_MAX, pattern=_NO_AT)]
Password = Annotated[
    str,
    Field(min_length=PASSWORD_MIN, max_length=PASSWORD_MAX),
    AfterValidator(_check_password_bytes),
]
PersonName = Annotated[str, Field(min_length=NAME_MIN, max_length=NAME_MAX, pattern=_ALPHA)]

M = TypeVar("M", bound=BaseModel)


class RegisterRequestValidation(BaseModel):
    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    email: Email
    username: Username
    password: Password
    first_name: PersonName
    last_name: PersonName


class LoginRequestValidation(BaseModel):
    """
    ``email`` is the login identifier: an address containing ``@`` must be
    a well-formed email, anything else must satisfy the username rules.
    """

    model_config = ConfigDict(frozen=True, hide_input_in_errors=True)

    email: str
    password: Password

    @field_validator("email")
    @classmethod
    def check_identifier(cls, value: str) -> str:
        if "@" in value:
            return _check_email(value)
        if not USERNAME_MIN <= len(value) <= USERNAME_MAX:
            raise ValueError(
                f"username must be {USERNAME_MIN}-{USERNAME_MAX} characters"
            )
        return value

    @property
    def by_email(self) -> bool:
        return "@" in self.email


def validate(model: Type[M], **fields: Any) -> M:
    """Build ``model`` from ``fields``; raise ``ValidationError`` naming every bad field."""
    try:
        return model(**fields)
    except pydantic.ValidationError as exc:
        names = [str(err["loc"][0]) for err in exc.errors() if err.get("loc")]
        raise ValidationError(names or ["request"]) from None
