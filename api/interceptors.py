"""
Server-wide interceptors.
"""

from __future__ import annotations

import asyncio
import logging
import time

import grpc

logger = logging.getLogger(__name__)


_CODES_BY_VALUE = {code.value[0]: code for code in grpc.StatusCode}


def _status_name(context) -> str:
    try:
        code = context.code()
    except (AttributeError, NotImplementedError):
        return "UNKNOWN"
    if code is None:
        return "OK"
    # some grpcio releases report the raw integer code
    code = _CODES_BY_VALUE.get(code, code)
    return getattr(code, "name", str(code))


class AccessLogInterceptor(grpc.aio.ServerInterceptor):
    """Log method, final status and elapsed time of every unary RPC."""

    async def intercept_service(self, continuation, handler_call_details):
        handler = await continuation(handler_call_details)
        if handler is None or handler.unary_unary is None:
            return handler

        method = handler_call_details.method
        inner = handler.unary_unary

        async def request_timer(request, context):
            start = time.perf_counter()
            status = None
            try:
                return await inner(request, context)
            except asyncio.CancelledError:
                status = "CANCELLED"
                raise
            finally:
                elapsed = time.perf_counter() - start
                logger.debug(
                    "%s — %.3fs",
                    method,
                    elapsed,
                    extra={"fields": {"status": status or _status_name(context)}},
                )

        return grpc.unary_unary_rpc_method_handler(
            request_timer,
            request_deserializer=handler.request_deserializer,
            response_serializer=handler.response_serializer,
        )
