"""Read battery percent and charge status from Linux sysfs."""

import logging
import re
from enum import Enum
from pathlib import Path

log = logging.getLogger(__name__)

POWER_SUPPLY_ROOT = Path("/sys/class/power_supply")

_BATTERY_MARKER = "BAT"
_ID_PATTERN = re.compile(r"\d+")


class BatteryNotFound(Exception):
    def __init__(self, battery_id: int):
        super().__init__(f"BAT{battery_id} does not exist!")
        self.battery_id = battery_id


class PowerSupplyError(Exception):
    """The power-supply tree is present but cannot be trusted."""


class ChargeStatus(Enum):
    CHARGING = "Charging"
    DISCHARGING = "Discharging"
    NOT_CHARGING = "Not charging"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, text: str) -> "ChargeStatus":
        value = text.strip()
        for status in (cls.CHARGING, cls.DISCHARGING, cls.NOT_CHARGING):
            if value == status.value:
                return status
        return cls.UNKNOWN


class BatteryReader:
    def __init__(self, root: Path = POWER_SUPPLY_ROOT):
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    def percent_path(self, battery_id: int) -> Path:
        return self._root / f"BAT{battery_id}" / "capacity"

    def status_path(self, battery_id: int) -> Path:
        return self._root / f"BAT{battery_id}" / "status"

    def enumerate(self) -> list[int]:
        try:
            names = [entry.name for entry in self._root.iterdir()]
        except OSError as e:
            raise PowerSupplyError(f"cannot list {self._root}: {e}") from e

        ids = []
        for name in names:
            if _BATTERY_MARKER not in name:
                continue
            match = _ID_PATTERN.search(name)
            if match is None:
                log.debug("Skipping %s (no battery id in name)", name)
                continue
            ids.append(int(match.group()))

        ids.sort()
        log.info("Battery ids under %s: %s", self._root, ids)
        return ids

    def read_percent(self, battery_id: int) -> int:
        text = self._read(battery_id, self.percent_path(battery_id))
        try:
            percent = int(text.strip())
        except ValueError as e:
            raise PowerSupplyError(f"BAT{battery_id} capacity is not a number: {text!r}") from e
        if not 0 <= percent <= 100:
            raise PowerSupplyError(f"BAT{battery_id} capacity out of range: {percent}")
        return percent

    def read_status(self, battery_id: int) -> ChargeStatus:
        return ChargeStatus.parse(self._read(battery_id, self.status_path(battery_id)))

    @staticmethod
    def _read(battery_id: int, path: Path) -> str:
        try:
            return path.read_text()
        except FileNotFoundError as e:
            raise BatteryNotFound(battery_id) from e
        except OSError as e:
            raise PowerSupplyError(f"cannot read {path}: {e}") from e
