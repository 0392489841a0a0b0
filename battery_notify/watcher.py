"""Percent and status watchers: transition detection and the low-battery alert."""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Callable

from battery_notify.battery import BatteryReader, ChargeStatus
from battery_notify.channel import ChannelClosed, StatusChannel
from battery_notify.config import WatchConfig
from battery_notify.notifier import (
    TIMEOUT_DEFAULT,
    TIMEOUT_NEVER,
    DesktopNotifier,
    NotificationHandle,
    SoundPlayer,
    Sounds,
    Urgency,
)
from battery_notify.poller import DEFAULT_POLL_INTERVAL, FilePoller
from battery_notify.state import SharedBatteryState

log = logging.getLogger(__name__)

PLUG_AMPLIFICATION = 3.0
UNPLUG_AMPLIFICATION = 5.0
LOW_BATTERY_AMPLIFICATION = 5.0

SIGNAL_NAMES = {
    "charging": ChargeStatus.CHARGING,
    "not_charging": ChargeStatus.NOT_CHARGING,
    "none": None,
}

DISMISS_ON_CHARGING = frozenset({ChargeStatus.CHARGING})
DISMISS_ON_CHARGING_OR_FULL = frozenset({ChargeStatus.CHARGING, ChargeStatus.NOT_CHARGING})

# Channel value published for each new status. UNKNOWN is filled in from the
# watcher's unknown_signal policy.
_CHANNEL_SIGNAL = {
    ChargeStatus.CHARGING: ChargeStatus.CHARGING,
    ChargeStatus.DISCHARGING: ChargeStatus.NOT_CHARGING,
    ChargeStatus.NOT_CHARGING: ChargeStatus.NOT_CHARGING,
}

_STATUS_MESSAGES = {
    ChargeStatus.CHARGING: "The battery has started charging!",
    ChargeStatus.DISCHARGING: "The battery has stopped charging!",
    ChargeStatus.NOT_CHARGING: "The battery is fully charged!",
    ChargeStatus.UNKNOWN: "The battery status is currently unknown!",
}


def _now() -> datetime:
    return datetime.now().astimezone()


def format_duration(elapsed: timedelta) -> str:
    total = max(0, int(elapsed.total_seconds()))
    hours = total // 3600
    minutes = (total // 60) % 60
    seconds = total % 60
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def low_battery_body(start_percent: int, elapsed: str) -> str:
    return f"battery charge is low!\nduration from {start_percent}% : T-{elapsed}"


class BatteryWatcher:
    def __init__(
        self,
        reader: BatteryReader,
        state: SharedBatteryState,
        notifier: DesktopNotifier,
        player: SoundPlayer,
        sounds: Sounds,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        dismiss_on: frozenset[ChargeStatus] = DISMISS_ON_CHARGING,
        unknown_signal: ChargeStatus | None = ChargeStatus.CHARGING,
        clock: Callable[[], datetime] = _now,
    ):
        self._reader = reader
        self._state = state
        self._notifier = notifier
        self._player = player
        self._sounds = sounds
        self._poll_interval = poll_interval
        self._dismiss_on = dismiss_on
        self._unknown_signal = unknown_signal
        self._clock = clock

        self._channel = StatusChannel()
        self._receiver = self._channel.subscribe()
        self._stop = asyncio.Event()
        self._tasks: set[asyncio.Task] = set()
        self._low_alert_shown = False
        self._alert_task: asyncio.Task | None = None

    @classmethod
    def from_config(
        cls,
        config: WatchConfig,
        reader: BatteryReader,
        state: SharedBatteryState,
        notifier: DesktopNotifier,
        player: SoundPlayer,
        sounds: Sounds,
    ) -> "BatteryWatcher":
        return cls(
            reader,
            state,
            notifier,
            player,
            sounds,
            poll_interval=config.poll_interval,
            dismiss_on=frozenset(SIGNAL_NAMES[name] for name in config.dismiss_low_alert_on),
            unknown_signal=SIGNAL_NAMES[config.unknown_signal],
        )

    @property
    def state(self) -> SharedBatteryState:
        return self._state

    @property
    def channel(self) -> StatusChannel:
        return self._channel

    @property
    def low_alert_shown(self) -> bool:
        return self._low_alert_shown

    @property
    def alert_task(self) -> asyncio.Task | None:
        return self._alert_task

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self):
        log.info("Stopping battery watchers")
        self._stop.set()

    def _background(self, coro):
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        try:
            task.result()
        except asyncio.CancelledError:
            pass
        except Exception:
            log.exception("Background task failed")

    # --- Lifecycle ---

    async def run(self):
        battery_id = self._state.snapshot().id
        log.info("Watching %s and %s every %.1fs",
                 self._reader.percent_path(battery_id),
                 self._reader.status_path(battery_id),
                 self._poll_interval)

        watchers = {
            asyncio.create_task(self.status_watcher(), name="status-watcher"),
            asyncio.create_task(self.percent_watcher(), name="percent-watcher"),
        }
        try:
            done, _ = await asyncio.wait(watchers, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in watchers:
                task.cancel()
            await asyncio.gather(*watchers, return_exceptions=True)
            await self._cancel_background()

        for task in done:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _cancel_background(self):
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    # --- Status watcher ---

    async def status_watcher(self):
        battery_id = self._state.snapshot().id
        poller = FilePoller(self._reader.status_path(battery_id), self._poll_interval, self._stop)
        log.debug("status watcher started")
        try:
            async for event in poller:
                if not event.ok:
                    log.error("status watch error: %s", event.error)
                    continue
                await self.handle_status_change()
        finally:
            await self._channel.close()
            log.debug("status watcher stopped")

    async def handle_status_change(self) -> bool:
        """Re-read the status and run the transition side effects if it changed."""
        battery_id = self._state.snapshot().id
        new_status = self._reader.read_status(battery_id)
        old_status = self._state.snapshot().status

        if new_status == old_status:
            log.debug("battery status unchanged: %s", new_status.value)
            return False

        await self._on_transition(battery_id, new_status)
        self._state.set_status(new_status)
        log.info("battery status update: %s -> %s", old_status.value, new_status.value)
        return True

    async def _on_transition(self, battery_id: int, new_status: ChargeStatus):
        if new_status == ChargeStatus.UNKNOWN:
            signal = self._unknown_signal
        else:
            signal = _CHANNEL_SIGNAL[new_status]
        if signal is not None:
            await self._publish(signal)

        if new_status == ChargeStatus.DISCHARGING:
            percent = self._reader.read_percent(battery_id)
            self._state.begin_discharge(percent, self._clock())
            log.debug("discharge cycle started at %d%%", percent)

        # Nothing awaits between the publish above and the caller's set_status.
        self._background(self._notify_status(_STATUS_MESSAGES[new_status]))

        if new_status == ChargeStatus.CHARGING:
            self._background(self._play(self._sounds.plug, PLUG_AMPLIFICATION))
        elif new_status == ChargeStatus.DISCHARGING:
            self._background(self._play(self._sounds.unplug, UNPLUG_AMPLIFICATION))

    async def _publish(self, signal: ChargeStatus):
        try:
            reached = await self._channel.send(signal)
        except ChannelClosed as e:
            log.error("status sender error: %s", e)
            return
        if reached == 0:
            log.warning("status %s published with no receivers", signal.value)

    # --- Percent watcher ---

    async def percent_watcher(self):
        battery_id = self._state.snapshot().id
        poller = FilePoller(self._reader.percent_path(battery_id), self._poll_interval, self._stop)
        log.debug("percent watcher started")
        try:
            async for event in poller:
                if not event.ok:
                    log.error("percent watch error: %s", event.error)
                    continue
                await self.handle_percent_change()
        finally:
            self._receiver.close()
            log.debug("percent watcher stopped")

    async def handle_percent_change(self) -> bool:
        """Record the live percent; raise the low-battery alert on the first low reading."""
        battery_id = self._state.snapshot().id
        percent = self._reader.read_percent(battery_id)
        snapshot = self._state.set_percent(percent)
        log.debug("battery percent update: %d%%", percent)

        if not snapshot.is_low or snapshot.is_charging or self._low_alert_shown:
            return False

        self._low_alert_shown = True
        elapsed = format_duration(self._clock() - snapshot.start_charge_time)
        log.info("low battery notification @ %d%% (T-%s since %d%%)",
                 percent, elapsed, snapshot.start_charge_percent)
        self._alert_task = self._background(
            self._low_battery_alert(snapshot.start_charge_percent, elapsed)
        )
        return True

    async def _low_battery_alert(self, start_percent: int, elapsed: str):
        handle: NotificationHandle | None = None
        try:
            try:
                handle = await self._notifier.show(
                    self._notifier.app_name,
                    low_battery_body(start_percent, elapsed),
                    urgency=Urgency.CRITICAL,
                    transient=True,
                    timeout=TIMEOUT_NEVER,
                )
            except Exception as e:
                log.error("percent notification error: %s", e)

            await self._play(self._sounds.low_battery, LOW_BATTERY_AMPLIFICATION)

            signal = await self._wait_for_dismiss()
            if signal is not None:
                log.debug("low battery alert dismissed by %s", signal.value)
        finally:
            if handle is not None:
                try:
                    await handle.close()
                except Exception as e:
                    log.error("failed to close low battery notification: %s", e)
            self._low_alert_shown = False
            log.debug("cleared low battery notification")

    async def _wait_for_dismiss(self) -> ChargeStatus | None:
        waiter = asyncio.ensure_future(self._receiver.wait_for(lambda s: s in self._dismiss_on))
        stopper = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait({waiter, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
            stopper.cancel()

        if waiter not in done or waiter.cancelled():
            return None
        try:
            return waiter.result()
        except ChannelClosed as e:
            log.error("status receiver error: %s", e)
            return None

    # --- Sinks ---

    async def _notify_status(self, body: str):
        try:
            await self._notifier.show(
                self._notifier.app_name,
                body,
                urgency=Urgency.NORMAL,
                transient=True,
                timeout=TIMEOUT_DEFAULT,
            )
        except Exception as e:
            log.error("status notification error: %s", e)

    async def _play(self, data: bytes, amplification: float):
        try:
            await self._player.play(data, amplification)
        except Exception as e:
            log.error("sound playback error: %s", e)
