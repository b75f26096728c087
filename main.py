"""
gRPC authentication service — application entry point.
"""

from __future__ import annotations

import asyncio

import pydantic

from api.server import AuthServer, install_signal_handlers, serve_until_stopped
from auth.service import AuthService
from config.settings import Settings
from database.repository import UserRepository
from utils.errors import BackendError, FatalError
from utils.log import configure_logging, fatal


async def main() -> None:
    # bootstrap logger for failures that happen before the level is known
    logger = configure_logging("info")

    try:
        settings = Settings()
    except pydantic.ValidationError as exc:
        fatal(logger, "Error processing config: %s", exc)

    logger = configure_logging(settings.log_level)

    try:
        repository = await UserRepository.connect(settings.postgresql)
    except BackendError as exc:
        fatal(logger, "Error initializing repository: %s", exc.__cause__ or exc)

    try:
        service = AuthService(settings, repository, logger)
        server = AuthServer(
            service,
            settings.listen_address,
            grace=settings.grpc_shutdown_grace.total_seconds(),
        )
        try:
            await server.start()
        except FatalError as exc:
            fatal(logger, "Error initializing listener: %s", exc)
        logger.info("gRPC server started on %s", settings.grpc_port)

        stop = asyncio.Event()
        install_signal_handlers(stop)
        try:
            await serve_until_stopped(server, stop)
        except FatalError as exc:
            fatal(logger, "Error serving: %s", exc)
    finally:
        await repository.close()


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
