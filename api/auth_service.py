"""
gRPC adapter for ``AuthService``: servicer, dispatcher registration and
client stub.

Outcomes are mapped to status codes here and only here; callers get a
short generic message, never the underlying error text.
"""

from __future__ import annotations

import logging
from typing import Tuple, Type

import grpc

from api.protos import (
    SERVICE_NAME,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    RegisterResponse,
    method_path,
)
from auth.service import AuthService
from utils.errors import (
    AuthError,
    AuthServiceError,
    BackendError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Checked in order: the first matching class wins.
STATUS_MAP: Tuple[Tuple[Type[AuthServiceError], grpc.StatusCode, str], ...] = (
    (ValidationError, grpc.StatusCode.INVALID_ARGUMENT, "invalid input"),
    (ConflictError, grpc.StatusCode.ALREADY_EXISTS, "user already exists"),
    (NotFoundError, grpc.StatusCode.NOT_FOUND, "user not found"),
    (AuthError, grpc.StatusCode.UNAUTHENTICATED, "invalid credentials"),
    (BackendError, grpc.StatusCode.INTERNAL, "internal error"),
)


def status_for(exc: AuthServiceError) -> Tuple[grpc.StatusCode, str]:
    for error_type, code, message in STATUS_MAP:
        if isinstance(exc, error_type):
            return code, message
    return grpc.StatusCode.INTERNAL, "internal error"


class AuthServicer:
    """Implements ``auth.AuthService`` on top of an ``AuthService``."""

    def __init__(self, service: AuthService):
        self._service = service

    async def Register(self, request, context: grpc.aio.ServicerContext):
        try:
            username = await self._service.register(
                email=request.email,
                username=request.username,
                password=request.password,
                first_name=request.first_name,
                last_name=request.last_name,
            )
        except AuthServiceError as exc:
            await context.abort(*status_for(exc))
        except Exception:
            logger.exception("Unexpected error in Register")
            await context.abort(grpc.StatusCode.INTERNAL, "internal error")
        return RegisterResponse(message=username)

    async def Login(self, request, context: grpc.aio.ServicerContext):
        try:
            token = await self._service.login(email=request.email, password=request.password)
        except AuthServiceError as exc:
            await context.abort(*status_for(exc))
        except Exception:
            logger.exception("Unexpected error in Login")
            await context.abort(grpc.StatusCode.INTERNAL, "internal error")
        return LoginResponse(token=token)


def add_AuthServiceServicer_to_server(servicer: AuthServicer, server: grpc.aio.Server) -> None:
    """Register ``servicer`` with the server's dispatcher."""
    handlers = {
        "Register": grpc.unary_unary_rpc_method_handler(
            servicer.Register,
            request_deserializer=RegisterRequest.FromString,
            response_serializer=RegisterResponse.SerializeToString,
        ),
        "Login": grpc.unary_unary_rpc_method_handler(
            servicer.Login,
            request_deserializer=LoginRequest.FromString,
            response_serializer=LoginResponse.SerializeToString,
        ),
    }
    server.add_generic_rpc_handlers(
        (grpc.method_handlers_generic_handler(SERVICE_NAME, handlers),)
    )


class AuthServiceStub:
    """Client for ``auth.AuthService``; works with sync and ``grpc.aio`` channels."""

    def __init__(self, channel):
        self.Register = channel.unary_unary(
            method_path("Register"),
            request_serializer=RegisterRequest.SerializeToString,
            response_deserializer=RegisterResponse.FromString,
        )
        self.Login = channel.unary_unary(
            method_path("Login"),
            request_serializer=LoginRequest.SerializeToString,
            response_deserializer=LoginResponse.FromString,
        )
