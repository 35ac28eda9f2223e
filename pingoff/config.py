"""
Load watchdog config: defaults, optional JSON file, then environment overrides.
Numeric overrides that do not parse fall back with a warning; values that
parse but make no sense abort startup (ConfigError).
"""
import json
import logging
import os
import shlex
from pathlib import Path
from typing import Any, Mapping, Optional

from pingoff.errors import ConfigError

logger = logging.getLogger("pingoff.config")

# Default config
DEFAULT_HOST = "192.168.1.1"
DEFAULT_INTERVAL = 5
DEFAULT_TIMEOUT = 120
DEFAULT_LOG_EVERY = 30
DEFAULT_POWEROFF_COMMAND = ("systemctl", "poweroff")

ENV_HOST = "TARGET_ADDR"
ENV_INTERVAL = "TARGET_INTERVAL"
ENV_TIMEOUT = "TARGET_TIMEOUT"
ENV_LOG_EVERY = "TARGET_LOG_EVERY"
ENV_POWEROFF_COMMAND = "PINGOFF_POWEROFF_CMD"
ENV_DRY_RUN = "PINGOFF_DRY_RUN"
ENV_LOG_PATH = "PINGOFF_LOG_PATH"

_TRUE_WORDS = ("1", "true", "yes", "on")


def get_default_config() -> dict[str, Any]:
    return {
        "host": DEFAULT_HOST,
        "interval": DEFAULT_INTERVAL,
        "timeout": DEFAULT_TIMEOUT,
        "log_every": DEFAULT_LOG_EVERY,
        "poweroff_command": list(DEFAULT_POWEROFF_COMMAND),
        "dry_run": False,
    }


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON config file and merge it over the defaults."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must hold a JSON object")
    config = get_default_config()
    for k, v in data.items():
        if k not in config:
            logger.warning("Unknown config key %r in %s, ignored", k, path)
            continue
        config[k] = v
    return config


def getenv_int(env: Mapping[str, str], key: str, fallback: int) -> int:
    """Integer seconds from env; a value that does not parse keeps the fallback."""
    val = env.get(key, "")
    if val == "":
        return fallback
    try:
        return int(val)
    except ValueError:
        logger.warning("Invalid env %s=%r, using %ds", key, val, fallback)
        return fallback


def apply_env(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    host = env.get(ENV_HOST, "")
    if host:
        config["host"] = host
    config["interval"] = getenv_int(env, ENV_INTERVAL, config["interval"])
    config["timeout"] = getenv_int(env, ENV_TIMEOUT, config["timeout"])
    config["log_every"] = getenv_int(env, ENV_LOG_EVERY, config["log_every"])
    cmd = env.get(ENV_POWEROFF_COMMAND, "")
    if cmd:
        config["poweroff_command"] = shlex.split(cmd)
    if env.get(ENV_DRY_RUN, ""):
        config["dry_run"] = env[ENV_DRY_RUN].strip().lower() in _TRUE_WORDS
    return config


class WatchdogConfig:
    __slots__ = ("host", "interval", "timeout", "log_every", "poweroff_command", "dry_run")

    def __init__(
        self,
        host: str = DEFAULT_HOST,
        interval: int = DEFAULT_INTERVAL,
        timeout: int = DEFAULT_TIMEOUT,
        log_every: int = DEFAULT_LOG_EVERY,
        poweroff_command: Optional[list[str]] = None,
        dry_run: bool = False,
    ):
        self.host = host.strip()
        self.interval = interval
        self.timeout = timeout
        self.log_every = log_every
        if poweroff_command is None:
            poweroff_command = list(DEFAULT_POWEROFF_COMMAND)
        self.poweroff_command = list(poweroff_command)
        self.dry_run = bool(dry_run)

    def __repr__(self) -> str:
        return (
            f"WatchdogConfig(host={self.host!r}, interval={self.interval}, timeout={self.timeout}, "
            f"log_every={self.log_every}, poweroff_command={self.poweroff_command!r}, dry_run={self.dry_run})"
        )


def dict_to_config(d: dict[str, Any]) -> WatchdogConfig:
    """Build a validated WatchdogConfig; raises ConfigError on bad values."""
    durations = {}
    for key in ("interval", "timeout", "log_every"):
        value = d.get(key)
        # bool is an int subclass; "true" seconds is not a duration
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"{key} must be an integer number of seconds, got {value!r}")
        if value <= 0:
            raise ConfigError(f"Invalid time value {key}={value}, must be > 0")
        durations[key] = value

    host = d.get("host")
    if not isinstance(host, str) or not host.strip():
        raise ConfigError("Address to monitor is empty")

    cmd = d.get("poweroff_command")
    if isinstance(cmd, str):
        cmd = shlex.split(cmd)
    if not isinstance(cmd, list) or not cmd or not all(isinstance(p, str) and p for p in cmd):
        raise ConfigError(f"poweroff_command must be a non-empty command, got {cmd!r}")

    dry_run = d.get("dry_run", False)
    if not isinstance(dry_run, bool):
        raise ConfigError(f"dry_run must be true or false, got {dry_run!r}")

    return WatchdogConfig(
        host=host,
        poweroff_command=cmd,
        dry_run=dry_run,
        **durations,
    )


def load_config(
    path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    dry_run: bool = False,
) -> WatchdogConfig:
    """
    Defaults < JSON file at `path` < environment. `dry_run=True` (from the CLI)
    forces dry-run mode on.
    """
    if env is None:
        env = os.environ
    config = load_config_file(path) if path is not None else get_default_config()
    config = apply_env(config, env)
    if dry_run:
        config["dry_run"] = True
    return dict_to_config(config)
