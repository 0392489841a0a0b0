"""Persist the last seen battery reading between one-shot checks."""

import json
import logging
from datetime import datetime
from pathlib import Path

from battery_notify.acpi import TIME_FMT, AcpiData, AcpiStatus
from battery_notify.battery import ChargeStatus

log = logging.getLogger(__name__)

CACHE_DIR = Path.home() / ".cache" / "battery-notify"

_TAGS = {
    ChargeStatus.CHARGING: "Charging",
    ChargeStatus.DISCHARGING: "Discharging",
    ChargeStatus.NOT_CHARGING: "NotCharging",
    ChargeStatus.UNKNOWN: "Unknown",
}
_KINDS = {tag: kind for kind, tag in _TAGS.items()}
_NO_TIME = "none"


def cache_path(battery_id: int, directory: Path = CACHE_DIR) -> Path:
    return directory / f"battery_{battery_id}.json"


def status_to_json(status: AcpiStatus) -> dict:
    tag = _TAGS[status.kind]
    if status.kind in (ChargeStatus.CHARGING, ChargeStatus.DISCHARGING):
        remain = status.time_remain.strftime(TIME_FMT) if status.time_remain else _NO_TIME
        return {tag: {"time_remain": remain}}
    return {tag: {}}


def status_from_json(data) -> AcpiStatus:
    if isinstance(data, str):
        return AcpiStatus(_KINDS.get(data, ChargeStatus.UNKNOWN))
    if not isinstance(data, dict) or len(data) != 1:
        raise ValueError(f"Bad status entry: {data!r}")

    (tag, fields), = data.items()
    kind = _KINDS.get(tag, ChargeStatus.UNKNOWN)
    if fields is None:
        fields = {}
    if not isinstance(fields, dict):
        raise ValueError(f"Bad fields for status {tag!r}: {fields!r}")
    remain = fields.get("time_remain", _NO_TIME)
    time_remain = None
    if remain != _NO_TIME:
        time_remain = datetime.strptime(remain, TIME_FMT).time()
    return AcpiStatus(kind, time_remain)


def to_json(data: AcpiData) -> dict:
    return {
        "battery_id": data.battery_id,
        "percent": data.percent,
        "status": status_to_json(data.status),
    }


def from_json(data: dict) -> AcpiData:
    return AcpiData(
        battery_id=int(data["battery_id"]),
        percent=int(data["percent"]),
        status=status_from_json(data["status"]),
    )


def load_cache(path: Path) -> AcpiData | None:
    if not path.is_file():
        log.debug("No cache at %s", path)
        return None

    try:
        return from_json(json.loads(path.read_text()))
    except (OSError, ValueError, KeyError, TypeError) as e:
        log.warning("Failed to read cache file %s: %s", path, e)
        return None


def save_cache(data: AcpiData, path: Path):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(to_json(data), indent=2) + "\n")
    log.debug("Cache written to %s", path)
