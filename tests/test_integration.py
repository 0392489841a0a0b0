import asyncio
import logging

import pytest

from battery_notify.battery import BatteryReader
from battery_notify.notifier import TIMEOUT_NEVER, DesktopNotifier, SoundPlayer, Sounds, Urgency

log = logging.getLogger(__name__)

pytestmark = pytest.mark.desktop


@pytest.fixture
def notifier():
    n = DesktopNotifier("battery-notify-test")
    yield n
    n.disconnect()


@pytest.mark.asyncio
async def test_show_and_close(notifier):
    handle = await asyncio.wait_for(
        notifier.show("battery-notify", "integration test\nplease ignore",
                      urgency=Urgency.CRITICAL, timeout=TIMEOUT_NEVER),
        timeout=5,
    )
    assert handle.id > 0
    log.info("Notification id %d", handle.id)

    await asyncio.sleep(1.0)
    await asyncio.wait_for(handle.close(), timeout=5)
    assert handle.closed


@pytest.mark.asyncio
async def test_play_bundled_sound():
    await asyncio.wait_for(SoundPlayer().play(Sounds.load().plug, 3.0), timeout=10)


def test_real_power_supply():
    reader = BatteryReader()
    ids = reader.enumerate()
    if not ids:
        pytest.skip("no battery on this machine")
    percent = reader.read_percent(ids[0])
    status = reader.read_status(ids[0])
    assert 0 <= percent <= 100
    log.info("BAT%d: %d%% %s", ids[0], percent, status.value)
