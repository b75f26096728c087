"""
Protobuf message classes for ``auth.AuthService`` (see ``api/auth.proto``).

The descriptors are assembled at import time from the same field layout
as the ``.proto`` file, so the wire format is identical to protoc output
without a code-generation step.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory

PACKAGE = "auth"
SERVICE_NAME = f"{PACKAGE}.AuthService"

_MESSAGES = {
    "RegisterRequest": ("email", "username", "password", "first_name", "last_name"),
    "RegisterResponse": ("message",),
    "LoginRequest": ("email", "password"),
    "LoginResponse": ("token",),
}

_METHODS = {
    "Register": ("RegisterRequest", "RegisterResponse"),
    "Login": ("LoginRequest", "LoginResponse"),
}


def _file_descriptor() -> descriptor_pb2.FileDescriptorProto:
    proto = descriptor_pb2.FileDescriptorProto(
        name="auth/auth.proto",
        package=PACKAGE,
        syntax="proto3",
    )
    for message_name, field_names in _MESSAGES.items():
        message = proto.message_type.add(name=message_name)
        for number, field_name in enumerate(field_names, start=1):
            message.field.add(
                name=field_name,
                number=number,
                type=descriptor_pb2.FieldDescriptorProto.TYPE_STRING,
                label=descriptor_pb2.FieldDescriptorProto.LABEL_OPTIONAL,
            )

    service = proto.service.add(name="AuthService")
    for method_name, (request, response) in _METHODS.items():
        service.method.add(
            name=method_name,
            input_type=f".{PACKAGE}.{request}",
            output_type=f".{PACKAGE}.{response}",
        )
    return proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_file_descriptor().SerializeToString())


def _message_class(name: str):
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{PACKAGE}.{name}"))


RegisterRequest = _message_class("RegisterRequest")
RegisterResponse = _message_class("RegisterResponse")
LoginRequest = _message_class("LoginRequest")
LoginResponse = _message_class("LoginResponse")


def method_path(method_name: str) -> str:
    """Full RPC path, e.g. ``/auth.AuthService/Login``."""
    return f"/{SERVICE_NAME}/{method_name}"
