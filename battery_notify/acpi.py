"""Parse the output of ``acpi -b``."""

import logging
import re
import subprocess
from dataclasses import dataclass
from datetime import datetime, time

from battery_notify.battery import ChargeStatus

log = logging.getLogger(__name__)

ACPI_COMMAND = ("acpi", "-b")
TIME_FMT = "%H:%M:%S"

_HEAD_PATTERN = re.compile(r"^Battery\s+(?P<id>\S+)\s*:\s*(?P<status>.*)$")


class AcpiError(Exception):
    pass


class AcpiParseError(AcpiError, ValueError):
    pass


@dataclass(frozen=True, slots=True, eq=False)
class AcpiStatus:
    """Charge status plus the time remaining reported next to it.

    Two statuses are equal when their kinds are equal; ``time_remain`` is
    informational and changes on every read, so it takes no part in equality.
    """

    kind: ChargeStatus
    time_remain: time | None = None

    def __eq__(self, other):
        if isinstance(other, AcpiStatus):
            return self.kind == other.kind
        if isinstance(other, ChargeStatus):
            return self.kind == other
        return NotImplemented

    def __hash__(self):
        return hash(self.kind)

    def __str__(self):
        if self.kind in (ChargeStatus.CHARGING, ChargeStatus.DISCHARGING):
            remain = self.time_remain.strftime(TIME_FMT) if self.time_remain else "unknown"
            return f"{self.kind.value} ( time remaining: {remain} )"
        return self.kind.value


@dataclass(frozen=True, slots=True)
class AcpiData:
    battery_id: int
    percent: int
    status: AcpiStatus
    output: str = ""

    def __str__(self):
        return (
            f"Battery Info:\n\tid: {self.battery_id}\n\tpercent: {self.percent}"
            f"\n\tstatus: {self.status}"
        )


def parse_time_remain(raw: str) -> time | None:
    word = raw.strip().split(" ", 1)[0]
    try:
        return datetime.strptime(word, TIME_FMT).time()
    except ValueError:
        log.debug("No time remaining in %r", raw)
        return None


def parse_line(raw: str) -> AcpiData:
    line = raw.strip()
    fields = [f.strip() for f in line.split(",")]

    head = _HEAD_PATTERN.match(fields[0])
    if head is None:
        raise AcpiParseError(f"Not a battery line: {line!r}")
    try:
        battery_id = int(head.group("id"))
    except ValueError as e:
        raise AcpiParseError(f"Bad battery id: {head.group('id')!r}") from e

    kind = ChargeStatus.parse(head.group("status"))

    if len(fields) < 2:
        raise AcpiParseError(f"Missing percent: {line!r}")
    try:
        percent = int(fields[1].rstrip("%"))
    except ValueError as e:
        raise AcpiParseError(f"Bad percent: {fields[1]!r}") from e

    time_remain = None
    if kind in (ChargeStatus.CHARGING, ChargeStatus.DISCHARGING) and len(fields) > 2:
        time_remain = parse_time_remain(fields[2])

    return AcpiData(
        battery_id=battery_id,
        percent=percent,
        status=AcpiStatus(kind, time_remain),
        output=line,
    )


def parse_output(raw: str, strict: bool = True) -> list[AcpiData]:
    """Parse every battery line; with ``strict=False`` unparsable lines are skipped."""
    batteries = []
    for line in raw.splitlines():
        if not line.strip():
            continue
        try:
            batteries.append(parse_line(line))
        except AcpiParseError as e:
            if strict:
                raise
            log.debug("Skipping acpi line: %s", e)
    return batteries


def call(battery_id: int = 0) -> AcpiData | None:
    try:
        result = subprocess.run(ACPI_COMMAND, capture_output=True, text=True, check=False)
    except FileNotFoundError as e:
        raise AcpiError('"acpi" command not found! (is acpi installed?)') from e

    log.debug("acpi output: %r", result.stdout)
    if result.returncode != 0:
        log.error("acpi exited with status %d: %s", result.returncode, result.stderr.strip())
        return None

    for data in parse_output(result.stdout, strict=False):
        if data.battery_id == battery_id:
            return data
    return None
