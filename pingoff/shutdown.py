"""
Terminal action: power the host off (default `systemctl poweroff`).
Synchronous from the monitor's point of view; raises ShutdownError on failure
and is never retried. Dry-run mode only logs the command.
"""
import asyncio
import functools
import logging
import shlex
from typing import Awaitable, Callable

from pingoff.config import WatchdogConfig
from pingoff.errors import ShutdownError

logger = logging.getLogger("pingoff.shutdown")

ShutdownAction = Callable[[], Awaitable[None]]


async def poweroff(command: list[str]) -> None:
    """Run the poweroff command with stdout/stderr inherited; wait for it to exit."""
    logger.warning("Poweroff triggered: %s", shlex.join(command))
    try:
        proc = await asyncio.create_subprocess_exec(*command)
    except OSError as e:
        raise ShutdownError(f"cannot run {command[0]}: {e}") from e
    returncode = await proc.wait()
    if returncode != 0:
        raise ShutdownError(f"{shlex.join(command)} exited with status {returncode}")


async def dry_run_poweroff(command: list[str]) -> None:
    logger.warning("Poweroff triggered (dry run, not running %s)", shlex.join(command))


def make_shutdown_action(config: WatchdogConfig) -> ShutdownAction:
    fn = dry_run_poweroff if config.dry_run else poweroff
    return functools.partial(fn, list(config.poweroff_command))
