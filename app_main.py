"""
Pingoff – power the host off when a reference address stays unreachable. Entry point.
- Config from env (TARGET_ADDR, TARGET_INTERVAL, TARGET_TIMEOUT, TARGET_LOG_EVERY),
  optional JSON file (--config)
- SIGINT/SIGTERM: clean exit 0, never powers off
- Exit 1 on invalid config or unexpected monitor error
"""
import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Optional

from pingoff.config import ENV_LOG_PATH, load_config
from pingoff.errors import ConfigError
from pingoff.logging_setup import setup_logging
from pingoff.monitor import Monitor, build_monitor

logger = logging.getLogger("pingoff")

EXIT_OK = 0
EXIT_ERROR = 1


async def run_watchdog(monitor: Monitor) -> int:
    """Run the monitor until it powers off, a stop signal arrives, or it fails."""
    loop = asyncio.get_running_loop()
    task = asyncio.create_task(monitor.run())
    received: list[signal.Signals] = []

    def on_signal(sig: signal.Signals) -> None:
        logger.info("Exit by signal: %s", sig.name)
        received.append(sig)
        task.cancel()

    installed = []
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, on_signal, sig)
            installed.append(sig)
        except (NotImplementedError, RuntimeError):
            # Windows event loops: KeyboardInterrupt from asyncio.run covers Ctrl+C
            pass
    try:
        await task
    except asyncio.CancelledError:
        if received:
            return EXIT_OK
        raise
    except Exception as e:
        logger.exception("Monitor err: %s", e)
        return EXIT_ERROR
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
    return EXIT_OK


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Pingoff – power off when a host stays unreachable")
    parser.add_argument("--config", type=Path, help="JSON config file (env vars override it)")
    parser.add_argument("--log-path", help=f"Directory for daily log files (env {ENV_LOG_PATH})")
    parser.add_argument("--dry-run", action="store_true", help="Log the poweroff instead of running it")
    args = parser.parse_args(argv)

    setup_logging(args.log_path or os.environ.get(ENV_LOG_PATH) or None)
    try:
        config = load_config(args.config, dry_run=args.dry_run)
    except ConfigError as e:
        logger.error("%s, aborting", e)
        return EXIT_ERROR
    logger.info("Pingoff started: %r", config)

    try:
        return asyncio.run(run_watchdog(build_monitor(config)))
    except KeyboardInterrupt:
        logger.info("Exit by keyboard interrupt")
        return EXIT_OK


def cli() -> None:
    sys.exit(main())


if __name__ == "__main__":
    cli()
