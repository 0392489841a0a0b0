"""Interval polling of a single file, yielding an event when its content changes.

sysfs attributes are generated on read and do not raise inotify events, so the
file is re-read on a fixed interval and compared by content hash.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


@dataclass(frozen=True, slots=True)
class PollEvent:
    path: Path
    error: OSError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _digest(data: bytes) -> bytes:
    return hashlib.blake2b(data, digest_size=16).digest()


class FilePoller:
    def __init__(
        self,
        path: Path,
        interval: float = DEFAULT_POLL_INTERVAL,
        stop: asyncio.Event | None = None,
    ):
        if interval <= 0:
            raise ValueError(f"poll interval must be positive, got {interval}")
        self._path = path
        self._interval = interval
        self._stop = stop if stop is not None else asyncio.Event()
        self._last_digest: bytes | None = None
        self._last_error: str | None = None
        self._started = False

    @property
    def path(self) -> Path:
        return self._path

    def __aiter__(self):
        return self

    async def __anext__(self) -> PollEvent:
        if not self._started:
            self._started = True
            event = self._poll()
            if event is not None:
                return event
        while True:
            if await self._sleep():
                raise StopAsyncIteration
            event = self._poll()
            if event is not None:
                return event

    async def _sleep(self) -> bool:
        """Wait one interval; True when the stop token fired."""
        if self._stop.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return False
        return True

    def _poll(self) -> PollEvent | None:
        try:
            data = self._path.read_bytes()
        except OSError as e:
            key = f"{type(e).__name__}:{e.errno}"
            if key == self._last_error:
                return None
            self._last_error = key
            log.debug("Poll of %s failed: %s", self._path, e)
            return PollEvent(self._path, error=e)

        recovered = self._last_error is not None
        self._last_error = None
        digest = _digest(data)
        if self._last_digest is None and not recovered:
            self._last_digest = digest
            return None
        if digest == self._last_digest:
            return None
        self._last_digest = digest
        return PollEvent(self._path)
