"""Application entry point."""

import asyncio
import functools
import signal
import sys

import structlog

from exabgpmon.config import settings
from exabgpmon.monitoring.logger import configure_logging
from exabgpmon.standalone import run_standalone
from exabgpmon.stream import run_stream

logger: structlog.BoundLogger | None = None


def setup_signal_handlers(loop: asyncio.AbstractEventLoop) -> None:
    """
    Setup signal handlers for graceful shutdown.

    Args:
        loop: Asyncio event loop
    """

    def signal_handler(sig: int) -> None:
        """Handle shutdown signals."""
        if logger:
            logger.info("signal_received", signal=signal.Signals(sig).name)
        # Cancel all tasks to trigger graceful shutdown
        for task in asyncio.all_tasks(loop):
            task.cancel()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, functools.partial(signal_handler, sig))


def main() -> None:
    """Main application entry point."""
    global logger

    try:
        logger = configure_logging()

        logger.info(
            "exabgpmon_starting",
            version="0.1.0",
            python_version=sys.version.split()[0],
            mode=settings.exporter_mode,
            exabgp_cli_command=settings.exabgp_cli_command,
            exabgp_root=settings.exabgp_root,
            log_level=settings.log_level,
        )

        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)

        setup_signal_handlers(loop)

        if settings.exporter_mode == "stream":
            runner = run_stream()
        else:
            runner = run_standalone()

        try:
            loop.run_until_complete(runner)
        except asyncio.CancelledError:
            logger.info("shutdown_initiated")
        except KeyboardInterrupt:
            logger.info("keyboard_interrupt")
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()

            if pending:
                loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )

            loop.close()
            logger.info("exabgpmon_stopped")

    except Exception as e:
        if logger:
            logger.critical("startup_error", error=str(e), exc_info=True)
        else:
            print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
