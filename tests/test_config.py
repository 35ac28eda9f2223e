"""Tests for config loading and validation (pingoff.config)."""
import json
import logging

import pytest
from pingoff.config import (
    DEFAULT_HOST,
    DEFAULT_INTERVAL,
    DEFAULT_LOG_EVERY,
    DEFAULT_TIMEOUT,
    dict_to_config,
    get_default_config,
    load_config,
)
from pingoff.errors import ConfigError


def test_defaults_with_empty_env():
    cfg = load_config(env={})
    assert cfg.host == DEFAULT_HOST == "192.168.1.1"
    assert (cfg.interval, cfg.timeout, cfg.log_every) == (5, 120, 30)
    assert (DEFAULT_INTERVAL, DEFAULT_TIMEOUT, DEFAULT_LOG_EVERY) == (5, 120, 30)
    assert cfg.poweroff_command == ["systemctl", "poweroff"]
    assert cfg.dry_run is False


def test_env_overrides():
    env = {
        "TARGET_ADDR": "10.1.1.1",
        "TARGET_INTERVAL": "2",
        "TARGET_TIMEOUT": "60",
        "TARGET_LOG_EVERY": "10",
        "PINGOFF_POWEROFF_CMD": "sudo /sbin/shutdown -h now",
        "PINGOFF_DRY_RUN": "yes",
    }
    cfg = load_config(env=env)
    assert cfg.host == "10.1.1.1"
    assert (cfg.interval, cfg.timeout, cfg.log_every) == (2, 60, 10)
    assert cfg.poweroff_command == ["sudo", "/sbin/shutdown", "-h", "now"]
    assert cfg.dry_run is True


def test_empty_env_address_keeps_default():
    cfg = load_config(env={"TARGET_ADDR": ""})
    assert cfg.host == DEFAULT_HOST


def test_non_numeric_env_falls_back_with_warning(caplog):
    caplog.set_level(logging.WARNING, logger="pingoff.config")
    cfg = load_config(env={"TARGET_TIMEOUT": "two minutes"})
    assert cfg.timeout == DEFAULT_TIMEOUT
    assert "TARGET_TIMEOUT" in caplog.text


@pytest.mark.parametrize("key", ["TARGET_INTERVAL", "TARGET_TIMEOUT", "TARGET_LOG_EVERY"])
@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_duration_aborts(key, value):
    with pytest.raises(ConfigError):
        load_config(env={key: value})


def test_blank_address_aborts():
    with pytest.raises(ConfigError, match="empty"):
        dict_to_config({**get_default_config(), "host": "   "})


def test_bool_duration_rejected():
    with pytest.raises(ConfigError):
        dict_to_config({**get_default_config(), "interval": True})


def test_empty_poweroff_command_rejected():
    with pytest.raises(ConfigError):
        dict_to_config({**get_default_config(), "poweroff_command": []})


def test_config_file_then_env(tmp_path, caplog):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"host": "172.16.0.1", "timeout": 300, "interval": 10, "colour": "red"}))
    caplog.set_level(logging.WARNING, logger="pingoff.config")
    cfg = load_config(path, env={"TARGET_INTERVAL": "3"})
    assert cfg.host == "172.16.0.1"
    assert cfg.timeout == 300
    assert cfg.interval == 3
    assert cfg.log_every == DEFAULT_LOG_EVERY
    assert "colour" in caplog.text


def test_config_file_string_command(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"poweroff_command": "shutdown -P now"}))
    assert load_config(path, env={}).poweroff_command == ["shutdown", "-P", "now"]


def test_bad_env_number_keeps_file_value(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"log_every": 45}))
    cfg = load_config(path, env={"TARGET_LOG_EVERY": "x"})
    assert cfg.log_every == 45


def test_malformed_config_file(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_config_file_not_an_object(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text("[1, 2]")
    with pytest.raises(ConfigError):
        load_config(path, env={})


def test_missing_config_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.json", env={})


def test_cli_dry_run_wins():
    cfg = load_config(env={"PINGOFF_DRY_RUN": "0"}, dry_run=True)
    assert cfg.dry_run is True


@pytest.mark.parametrize("value", ["false", "true", 1, None])
def test_config_file_dry_run_must_be_bool(tmp_path, value):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"dry_run": value}))
    with pytest.raises(ConfigError, match="dry_run"):
        load_config(path, env={})


def test_config_file_dry_run_false_keeps_poweroff(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"dry_run": False}))
    assert load_config(path, env={}).dry_run is False


def test_empty_env_dry_run_keeps_file_value(tmp_path):
    path = tmp_path / "pingoff.json"
    path.write_text(json.dumps({"dry_run": True}))
    assert load_config(path, env={"PINGOFF_DRY_RUN": ""}).dry_run is True
