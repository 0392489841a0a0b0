"""Battery state shared by the percent and status watchers."""

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime

from battery_notify.battery import BatteryNotFound, BatteryReader, ChargeStatus

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True, slots=True)
class BatteryState:
    id: int
    percent: int
    status: ChargeStatus
    min_battery_percent: int
    start_charge_percent: int
    start_charge_time: datetime

    @property
    def is_low(self) -> bool:
        return self.percent <= self.min_battery_percent

    @property
    def is_charging(self) -> bool:
        return self.status == ChargeStatus.CHARGING


class SharedBatteryState:
    """One lock over the whole record.

    Every method is synchronous, so the lock can never be held across an
    ``await``. Readers get an immutable ``BatteryState`` snapshot.
    """

    def __init__(self, state: BatteryState):
        self._lock = threading.Lock()
        self._state = state

    def snapshot(self) -> BatteryState:
        with self._lock:
            return self._state

    def set_percent(self, percent: int) -> BatteryState:
        with self._lock:
            self._state = replace(self._state, percent=percent)
            return self._state

    def set_status(self, status: ChargeStatus) -> BatteryState:
        with self._lock:
            self._state = replace(self._state, status=status)
            return self._state

    def begin_discharge(self, percent: int, when: datetime | None = None) -> BatteryState:
        with self._lock:
            self._state = replace(
                self._state,
                start_charge_percent=percent,
                start_charge_time=when if when is not None else _now(),
            )
            return self._state


def init_state(
    reader: BatteryReader,
    battery_id: int,
    min_battery_percent: int,
    now: datetime | None = None,
) -> SharedBatteryState:
    available = reader.enumerate()
    if battery_id not in available:
        raise BatteryNotFound(battery_id)

    percent = reader.read_percent(battery_id)
    status = reader.read_status(battery_id)
    log.info("Watching BAT%d (%d%%, %s, low at %d%%)",
             battery_id, percent, status.value, min_battery_percent)

    return SharedBatteryState(BatteryState(
        id=battery_id,
        percent=percent,
        status=status,
        min_battery_percent=min_battery_percent,
        start_charge_percent=percent,
        start_charge_time=now if now is not None else _now(),
    ))
