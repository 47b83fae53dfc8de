"""
Entry point for the WebAI HTTP server.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys

import uvicorn

from webai.config import Configuration
from webai.logging_utils import configure_logging
from webai.server import build_services, create_app


async def serve(config: Configuration) -> None:
    """Run uvicorn until it stops or a shutdown signal arrives."""
    server_config = config.get_server_config()
    services = build_services(config)
    app = create_app(services, server_config["cors_origins"])

    server = uvicorn.Server(uvicorn.Config(
        app,
        host=server_config["host"],
        port=server_config["port"],
        log_config=None,
    ))

    # Setup graceful shutdown handler
    shutdown_event = asyncio.Event()

    def signal_handler() -> None:
        logging.info("Received shutdown signal, initiating graceful shutdown...")
        shutdown_event.set()

    if sys.platform != "win32":
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, signal_handler)

    server_task = asyncio.create_task(server.serve())
    shutdown_task = asyncio.create_task(shutdown_event.wait())
    try:
        done, pending = await asyncio.wait(
            [server_task, shutdown_task], return_when=asyncio.FIRST_COMPLETED
        )

        if shutdown_task in done:
            # Let uvicorn drain open connections and run the lifespan shutdown
            server.should_exit = True
            await server_task

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if server_task.done() and not server_task.cancelled():
            exception = server_task.exception()
            if exception is not None:
                raise exception
    except Exception as e:
        logging.error(f"Application error: {e}")
        raise
    finally:
        logging.info("Application shutdown complete")


def main() -> None:
    config = Configuration()
    configure_logging(config.get_logging_config())
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(serve(config))


if __name__ == "__main__":
    main()
