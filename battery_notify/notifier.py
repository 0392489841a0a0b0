"""Desktop notifications over D-Bus and sound playback through PulseAudio."""

import asyncio
import logging
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from dbus_next import Message, MessageType, Variant
from dbus_next.aio import MessageBus

log = logging.getLogger(__name__)

APP_NAME = "battery-notify"

_BUS_NAME = "org.freedesktop.Notifications"
_OBJECT_PATH = "/org/freedesktop/Notifications"
_INTERFACE = "org.freedesktop.Notifications"

TIMEOUT_DEFAULT = -1
TIMEOUT_NEVER = 0

SOUND_DIR = Path(__file__).parent / "sounds"
PA_VOLUME_NORM = 65536
MAX_AMPLIFICATION = 5.0


class NotificationError(Exception):
    pass


class SoundError(Exception):
    pass


class Urgency(IntEnum):
    LOW = 0
    NORMAL = 1
    CRITICAL = 2


class NotificationHandle:
    def __init__(self, notifier: "DesktopNotifier", notification_id: int):
        self._notifier = notifier
        self.id = notification_id
        self.closed = False

    async def close(self):
        if self.closed:
            return
        await self._notifier.close(self.id)
        self.closed = True


class DesktopNotifier:
    def __init__(self, app_name: str = APP_NAME, bus: MessageBus | None = None):
        self._app_name = app_name
        self._bus = bus
        self._connect_lock = asyncio.Lock()

    @property
    def app_name(self) -> str:
        return self._app_name

    async def _get_bus(self) -> MessageBus:
        async with self._connect_lock:
            if self._bus is None or not self._bus.connected:
                try:
                    self._bus = await MessageBus().connect()
                except Exception as e:
                    raise NotificationError(f"cannot connect to session bus: {e}") from e
                log.debug("Connected to session bus")
            return self._bus

    async def _call(self, member: str, signature: str, body: list):
        bus = await self._get_bus()
        reply = await bus.call(Message(
            destination=_BUS_NAME,
            path=_OBJECT_PATH,
            interface=_INTERFACE,
            member=member,
            signature=signature,
            body=body,
        ))
        if reply.message_type == MessageType.ERROR:
            detail = reply.body[0] if reply.body else ""
            raise NotificationError(f"{member} failed: {reply.error_name} {detail}".strip())
        return reply.body

    async def show(
        self,
        summary: str,
        body: str,
        urgency: Urgency = Urgency.NORMAL,
        transient: bool = True,
        timeout: int = TIMEOUT_DEFAULT,
    ) -> NotificationHandle:
        hints = {"urgency": Variant("y", int(urgency))}
        if transient:
            hints["transient"] = Variant("b", True)

        result = await self._call(
            "Notify",
            "susssasa{sv}i",
            [self._app_name, 0, "", summary, body, [], hints, timeout],
        )
        notification_id = result[0]
        log.debug("Notification %d shown: %s", notification_id, body.replace("\n", " "))
        return NotificationHandle(self, notification_id)

    async def close(self, notification_id: int):
        await self._call("CloseNotification", "u", [notification_id])
        log.debug("Notification %d closed", notification_id)

    def disconnect(self):
        if self._bus is not None and self._bus.connected:
            self._bus.disconnect()
        self._bus = None


def load_sound(name: str, directory: Path = SOUND_DIR) -> bytes:
    return (directory / f"{name}.wav").read_bytes()


@dataclass(frozen=True, slots=True)
class Sounds:
    plug: bytes
    unplug: bytes
    low_battery: bytes

    @classmethod
    def load(cls, directory: Path = SOUND_DIR) -> "Sounds":
        return cls(
            plug=load_sound("plug", directory),
            unplug=load_sound("unplug", directory),
            low_battery=load_sound("low_battery", directory),
        )


def pa_volume(amplification: float) -> int:
    amplification = max(0.0, amplification)
    return int(PA_VOLUME_NORM * amplification / MAX_AMPLIFICATION)


class SoundPlayer:
    def __init__(self, command: str = "paplay", enabled: bool = True):
        self._command = command
        self._enabled = enabled

    @property
    def enabled(self) -> bool:
        return self._enabled

    async def play(self, data: bytes, amplification: float = 1.0):
        if not self._enabled:
            return
        try:
            proc = await asyncio.create_subprocess_exec(
                self._command,
                f"--volume={pa_volume(amplification)}",
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise SoundError(f"{self._command} not available") from e

        _, stderr = await proc.communicate(data)
        if proc.returncode != 0:
            raise SoundError(
                f"{self._command} exited with status {proc.returncode}: "
                f"{stderr.decode(errors='replace').strip()}"
            )
