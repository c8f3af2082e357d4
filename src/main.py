# ABOUTME: Process entry point for the Weather.com current-conditions logger.
# ABOUTME: Loads settings, configures logging, and runs the aligned poll scheduler until SIGINT/SIGTERM.

import argparse
import asyncio
import logging
import os
import signal
import sys

from src.config import load_settings
from src.cycle import log_once
from src.deps import LoggerDeps, create_http_client
from src.errors import ConfigurationError
from src.scheduler import PollScheduler

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def resolve_log_level(raw: str | None) -> int | None:
    """Map a LOG_LEVEL name to its numeric level; None for unknown names."""
    return logging.getLevelNamesMapping().get((raw or "INFO").strip().upper())


def configure_logging() -> None:
    raw = os.environ.get("LOG_LEVEL")
    level = resolve_log_level(raw)
    logging.basicConfig(level=level if level is not None else logging.INFO, format=LOG_FORMAT)
    if level is None:
        logger.warning("Unknown LOG_LEVEL %r, using INFO", raw)
    # httpx logs every request URL at INFO, which would leak the API key into the log.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def run_forever(deps: LoggerDeps) -> None:
    """Run the scheduler until SIGINT or SIGTERM, letting an in-flight cycle finish."""
    scheduler = PollScheduler(lambda: log_once(deps), deps.settings.poll_minutes)
    stop_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
            installed.append(sig)
        except NotImplementedError:
            # Windows event loops do not support signal handlers
            pass

    logger.info(
        "Logging %s every %d min to %s (timezone %s)",
        deps.settings.target_id,
        deps.settings.poll_minutes,
        deps.settings.output_dir,
        deps.settings.timezone,
    )
    task = scheduler.start()
    waiter = asyncio.create_task(stop_event.wait())
    try:
        await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        logger.info("Stopping...")
        waiter.cancel()
        await scheduler.stop()
        for sig in installed:
            loop.remove_signal_handler(sig)


async def run(once: bool = False) -> int:
    settings = load_settings()
    async with create_http_client() as client:
        deps = LoggerDeps(settings=settings, http_client=client)
        if once:
            try:
                result = await log_once(deps)
            except OSError as e:
                logger.error("Could not write to %s: %s", settings.output_dir, e)
                return 1
            return 0 if result is not None else 1
        await run_forever(deps)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Log Weather.com current conditions and the running daily high.")
    parser.add_argument("--once", action="store_true", help="Run a single cycle immediately and exit.")
    args = parser.parse_args()

    configure_logging()
    try:
        exit_code = asyncio.run(run(once=args.once))
    except ConfigurationError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        exit_code = 0
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
