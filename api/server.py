"""
gRPC server host: bind, serve concurrently, shut down gracefully.

On SIGINT / SIGTERM the server stops accepting new RPCs and gives the
in-flight ones up to ``grace`` seconds to finish.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Iterable, Optional

import grpc

from api.auth_service import AuthServicer, add_AuthServiceServicer_to_server
from api.interceptors import AccessLogInterceptor
from auth.service import AuthService
from utils.errors import FatalError

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class AuthServer:
    def __init__(self, service: AuthService, address: str, grace: float = 30.0):
        self.address = address
        self.grace = grace
        self.port: Optional[int] = None
        self._server = grpc.aio.server(
            interceptors=[AccessLogInterceptor()],
            # a second server on the same port must fail to bind
            options=[("grpc.so_reuseport", 0)],
        )
        add_AuthServiceServicer_to_server(AuthServicer(service), self._server)

    async def start(self) -> int:
        """Bind the listener and start serving; returns the bound port."""
        try:
            port = self._server.add_insecure_port(self.address)
        except RuntimeError as exc:
            raise FatalError(f"failed to listen on {self.address}") from exc
        if not port:
            raise FatalError(f"failed to listen on {self.address}")

        await self._server.start()
        self.port = port
        return port

    async def wait_for_termination(self) -> None:
        await self._server.wait_for_termination()

    async def stop(self) -> None:
        """Refuse new RPCs, then wait for in-flight ones (bounded by ``grace``)."""
        await self._server.stop(self.grace)


def install_signal_handlers(
    stop: asyncio.Event, signals: Iterable[signal.Signals] = SHUTDOWN_SIGNALS
) -> None:
    loop = asyncio.get_running_loop()
    for sig in signals:
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # no loop signal support (Windows)
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(stop.set))


async def serve_until_stopped(server: AuthServer, stop: asyncio.Event) -> None:
    """
    Run ``server`` until ``stop`` is set, then shut it down gracefully.

    Raises ``FatalError`` if the server terminates on its own.
    """
    serving = asyncio.create_task(server.wait_for_termination())
    stopping = asyncio.create_task(stop.wait())
    done, _ = await asyncio.wait({serving, stopping}, return_when=asyncio.FIRST_COMPLETED)

    if serving in done:
        stopping.cancel()
        exc = None if serving.cancelled() else serving.exception()
        raise FatalError("gRPC server terminated unexpectedly") from exc

    logger.info("Shutdown signal received, stopping gRPC server gracefully…")
    await server.stop()
    await serving
    logger.info("gRPC server stopped")
