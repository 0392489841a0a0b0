"""Configuration loading from JSON files."""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

log = logging.getLogger(__name__)
_USER_CONFIG = Path.home() / ".config" / "battery-notify" / "config.json"
_SYSTEM_CONFIG = Path("/etc/battery-notify/config.json")

_DISMISS_NAMES = ("charging", "not_charging")
_SIGNAL_NAMES = ("charging", "not_charging", "none")
_SOURCES = ("sysfs", "acpi")


@dataclass
class WatchConfig:
    battery_id: int = 0
    low_percent: int = 20
    poll_interval: float = 2.0
    sounds: bool = True
    dismiss_low_alert_on: list[str] = field(default_factory=lambda: ["charging"])
    unknown_signal: str = "charging"

    def __post_init__(self):
        if self.battery_id < 0:
            raise ValueError(f"watch.battery_id must be >= 0, got {self.battery_id}")
        if not 0 <= self.low_percent <= 100:
            raise ValueError(f"watch.low_percent must be 0-100, got {self.low_percent}")
        if self.poll_interval <= 0:
            raise ValueError(f"watch.poll_interval must be positive, got {self.poll_interval}")
        if not self.dismiss_low_alert_on:
            raise ValueError("watch.dismiss_low_alert_on must not be empty")
        for name in self.dismiss_low_alert_on:
            if name not in _DISMISS_NAMES:
                raise ValueError(
                    f"watch.dismiss_low_alert_on entries must be one of {_DISMISS_NAMES}, got {name!r}"
                )
        if self.unknown_signal not in _SIGNAL_NAMES:
            raise ValueError(
                f"watch.unknown_signal must be one of {_SIGNAL_NAMES}, got {self.unknown_signal!r}"
            )


@dataclass
class CheckConfig:
    source: str = "sysfs"
    cache_dir: str | None = None

    def __post_init__(self):
        if self.source not in _SOURCES:
            raise ValueError(f"check.source must be one of {_SOURCES}, got {self.source!r}")


@dataclass
class DaemonConfig:
    log_level: str = "info"
    power_supply_root: str = "/sys/class/power_supply"


@dataclass
class Config:
    watch: WatchConfig = field(default_factory=WatchConfig)
    check: CheckConfig = field(default_factory=CheckConfig)
    daemon: DaemonConfig = field(default_factory=DaemonConfig)


def load_config(path: Path | None = None) -> Config:
    if path is not None:
        candidates = [path]
    else:
        candidates = [_USER_CONFIG, _SYSTEM_CONFIG]

    for candidate in candidates:
        if candidate.is_file():
            log.info("Loading config from %s", candidate)
            data = json.loads(candidate.read_text())
            return _parse(data)

    log.info("No config file found, using defaults")
    return Config()


def _parse(data: dict) -> Config:
    watch_data = data.get("watch", {})
    check_data = data.get("check", {})
    daemon_data = data.get("daemon", {})

    try:
        return Config(
            watch=WatchConfig(**watch_data),
            check=CheckConfig(**check_data),
            daemon=DaemonConfig(**daemon_data),
        )
    except TypeError as e:
        raise ValueError(f"unknown config key: {e}") from e
