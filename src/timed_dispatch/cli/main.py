# src/timed_dispatch/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the Runtime, connects the session and keeps the process
alive so scheduled messages can fire. Stop with Ctrl+C / SIGTERM.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys

from ..cli.bootstrap import create_runtime, run_session
from ..config import get_settings
from ..connectors.registry import TransportConfigError
from ..logging_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)


async def _amain() -> int:
    settings = get_settings()

    try:
        runtime = create_runtime(settings=settings)
    except TransportConfigError as e:
        logger.error("%s", e)
        return 2

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()

    def _handle_signal(signum: int) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _handle_signal, sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops do not support signal handlers; Ctrl+C still raises KeyboardInterrupt.
            pass

    ok = await run_session(runtime, stop)
    return 0 if ok else 1


def main() -> None:
    settings = get_settings()
    setup_logging(log_dir=settings.data_dir, console_level=level_from_name(settings.log_level))

    # keep noisy libs readable
    logging.getLogger("nio").setLevel(logging.INFO)

    logger.info("Starting %s...", settings.app_name)
    try:
        code = asyncio.run(_amain())
    except KeyboardInterrupt:
        code = 0
    logger.info("Bye.")
    sys.exit(code)


if __name__ == "__main__":
    main()
