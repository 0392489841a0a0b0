"""One-shot check: compare the live battery against the cached reading."""

import logging
from dataclasses import dataclass
from pathlib import Path

from battery_notify import acpi
from battery_notify.acpi import AcpiData, AcpiStatus
from battery_notify.battery import BatteryNotFound, BatteryReader, ChargeStatus
from battery_notify.cache import load_cache, save_cache
from battery_notify.notifier import DesktopNotifier, Urgency

log = logging.getLogger(__name__)

LOW_TITLE = "Battery Low"
STATUS_TITLE = "Battery Status Update"


@dataclass(frozen=True, slots=True)
class SentNotification:
    summary: str
    body: str
    urgency: Urgency
    timeout: int


class BatteryCheck:
    def __init__(
        self,
        battery_id: int,
        low_percent: int,
        notifier: DesktopNotifier,
        cache_file: Path,
        reader: BatteryReader | None = None,
        source: str = "sysfs",
    ):
        self._battery_id = battery_id
        self._low_percent = low_percent
        self._notifier = notifier
        self._cache_file = cache_file
        self._reader = reader if reader is not None else BatteryReader()
        self._source = source

    def read_current(self) -> AcpiData:
        if self._source == "acpi":
            data = acpi.call(self._battery_id)
            if data is None:
                raise BatteryNotFound(self._battery_id)
            return data

        if self._battery_id not in self._reader.enumerate():
            raise BatteryNotFound(self._battery_id)
        return AcpiData(
            battery_id=self._battery_id,
            percent=self._reader.read_percent(self._battery_id),
            status=AcpiStatus(self._reader.read_status(self._battery_id)),
        )

    async def run(self) -> list[SentNotification]:
        current = self.read_current()
        log.debug("%s", current)

        cached = load_cache(self._cache_file)
        if cached is None:
            self._save(current)
            cached = current

        sent = []

        if (current.percent != cached.percent
                and current.percent <= self._low_percent
                and current.status == ChargeStatus.DISCHARGING):
            self._save(current)
            sent.append(await self._send(
                LOW_TITLE,
                f"Battery charge at {current.percent}%!",
                Urgency.CRITICAL,
                5000,
            ))

        if current.status != cached.status:
            self._save(current)
            if current.status == ChargeStatus.CHARGING:
                sent.append(await self._send(
                    STATUS_TITLE, "The battery has started charging!", Urgency.NORMAL, 2000,
                ))
            elif current.status in (ChargeStatus.DISCHARGING, ChargeStatus.NOT_CHARGING):
                sent.append(await self._send(
                    STATUS_TITLE, "The battery has stopped charging!", Urgency.NORMAL, 1500,
                ))

        return [n for n in sent if n is not None]

    def _save(self, data: AcpiData):
        try:
            save_cache(data, self._cache_file)
        except OSError as e:
            log.error("Failed to write cache %s: %s", self._cache_file, e)

    async def _send(self, summary: str, body: str, urgency: Urgency, timeout: int) -> SentNotification | None:
        try:
            await self._notifier.show(summary, body, urgency=urgency, transient=False, timeout=timeout)
        except Exception as e:
            log.error("Failed to send notification %r: %s", summary, e)
            return None
        log.info("%s: %s", summary, body)
        return SentNotification(summary, body, urgency, timeout)

