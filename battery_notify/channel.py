"""Latest-value broadcast of the coarse charge status.

One producer (the status watcher) publishes; any number of receivers wait for
a value matching a condition. Only the most recent value is kept, so a slow
receiver sees the newest status rather than a backlog.
"""

import asyncio
import logging
from typing import Callable

from battery_notify.battery import ChargeStatus

log = logging.getLogger(__name__)


class ChannelClosed(Exception):
    pass


class StatusChannel:
    def __init__(self, initial: ChargeStatus = ChargeStatus.UNKNOWN):
        self._value = initial
        self._version = 0
        self._closed = False
        self._changed = asyncio.Condition()
        self._receivers: set["StatusReceiver"] = set()

    @property
    def value(self) -> ChargeStatus:
        return self._value

    @property
    def receiver_count(self) -> int:
        return len(self._receivers)

    def subscribe(self) -> "StatusReceiver":
        receiver = StatusReceiver(self)
        self._receivers.add(receiver)
        return receiver

    def _drop(self, receiver: "StatusReceiver"):
        self._receivers.discard(receiver)

    async def send(self, value: ChargeStatus) -> int:
        """Publish ``value`` and wake every waiting receiver.

        Returns the number of receivers the value reached. The value is kept
        even when nobody is subscribed, so a later subscriber still sees it.
        """
        if self._closed:
            raise ChannelClosed("status channel is closed")
        async with self._changed:
            self._value = value
            self._version += 1
            self._changed.notify_all()
        return len(self._receivers)

    async def close(self):
        async with self._changed:
            self._closed = True
            self._changed.notify_all()


class StatusReceiver:
    def __init__(self, channel: StatusChannel):
        self._channel = channel
        self._seen = channel._version

    @property
    def has_changed(self) -> bool:
        return self._seen != self._channel._version

    def borrow(self) -> ChargeStatus:
        return self._channel.value

    async def wait_for(self, predicate: Callable[[ChargeStatus], bool]) -> ChargeStatus:
        """Return the first value, starting with the current one, accepted by ``predicate``."""
        channel = self._channel
        async with channel._changed:
            while True:
                self._seen = channel._version
                if predicate(channel._value):
                    return channel._value
                if channel._closed:
                    raise ChannelClosed("status channel closed while waiting")
                await channel._changed.wait()

    def close(self):
        self._channel._drop(self)
