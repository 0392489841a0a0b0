import json
import logging

import pytest

from battery_notify.config import CheckConfig, Config, WatchConfig, load_config

log = logging.getLogger(__name__)


def test_defaults():
    cfg = Config()
    assert cfg.watch.battery_id == 0
    assert cfg.watch.low_percent == 20
    assert cfg.watch.poll_interval == 2.0
    assert cfg.watch.sounds is True
    assert cfg.watch.dismiss_low_alert_on == ["charging"]
    assert cfg.watch.unknown_signal == "charging"
    assert cfg.check.source == "sysfs"
    assert cfg.check.cache_dir is None
    assert cfg.daemon.log_level == "info"
    assert cfg.daemon.power_supply_root == "/sys/class/power_supply"


def test_load_from_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({
        "watch": {
            "battery_id": 1,
            "low_percent": 15,
            "dismiss_low_alert_on": ["charging", "not_charging"],
        },
        "daemon": {
            "log_level": "debug"
        }
    }))
    cfg = load_config(config_file)
    assert cfg.watch.battery_id == 1
    assert cfg.watch.low_percent == 15
    assert cfg.watch.dismiss_low_alert_on == ["charging", "not_charging"]
    assert cfg.daemon.log_level == "debug"
    # Unset values keep defaults
    assert cfg.watch.poll_interval == 2.0
    assert cfg.check.source == "sysfs"
    log.info("Loaded config: battery=%d, low=%d", cfg.watch.battery_id, cfg.watch.low_percent)


def test_load_missing_file_returns_defaults(tmp_path):
    cfg = load_config(tmp_path / "nonexistent.json")
    assert cfg.watch.low_percent == 20


def test_empty_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{}")
    cfg = load_config(config_file)
    assert cfg.watch.low_percent == 20


def test_unknown_key_is_value_error(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"watch": {"threshold": 10}}))
    with pytest.raises(ValueError, match="unknown config key"):
        load_config(config_file)


def test_malformed_json_is_value_error(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text("{not json")
    with pytest.raises(ValueError):
        load_config(config_file)


def test_invalid_values_in_file(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"watch": {"low_percent": 120}}))
    with pytest.raises(ValueError, match="watch.low_percent must be 0-100"):
        load_config(config_file)


def test_negative_battery_id():
    with pytest.raises(ValueError, match="watch.battery_id must be >= 0"):
        WatchConfig(battery_id=-1)


def test_low_percent_out_of_range():
    with pytest.raises(ValueError, match="watch.low_percent must be 0-100"):
        WatchConfig(low_percent=-1)


def test_poll_interval_must_be_positive():
    with pytest.raises(ValueError, match="watch.poll_interval must be positive"):
        WatchConfig(poll_interval=0)


def test_dismiss_policy_rejects_unknown_name():
    with pytest.raises(ValueError, match="watch.dismiss_low_alert_on entries"):
        WatchConfig(dismiss_low_alert_on=["discharging"])


def test_dismiss_policy_not_empty():
    with pytest.raises(ValueError, match="must not be empty"):
        WatchConfig(dismiss_low_alert_on=[])


def test_unknown_signal_values():
    assert WatchConfig(unknown_signal="none").unknown_signal == "none"
    with pytest.raises(ValueError, match="watch.unknown_signal must be one of"):
        WatchConfig(unknown_signal="full")


def test_check_source():
    assert CheckConfig(source="acpi").source == "acpi"
    with pytest.raises(ValueError, match="check.source must be one of"):
        CheckConfig(source="upower")


def test_valid_edge_cases():
    assert WatchConfig(low_percent=0).low_percent == 0
    assert WatchConfig(low_percent=100).low_percent == 100
