from unittest.mock import AsyncMock, MagicMock

import pytest

from battery_notify.notifier import Sounds


def pytest_addoption(parser):
    parser.addoption(
        "--desktop",
        action="store_true",
        default=False,
        help="Run integration tests that need a D-Bus session with a notification daemon",
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--desktop"):
        return
    skip = pytest.mark.skip(reason="needs --desktop flag and a notification daemon")
    for item in items:
        if "desktop" in item.keywords:
            item.add_marker(skip)


def write_battery(root, battery_id, percent=None, status=None):
    bat = root / f"BAT{battery_id}"
    bat.mkdir(exist_ok=True)
    (bat / "type").write_text("Battery\n")
    if percent is not None:
        (bat / "capacity").write_text(f"{percent}\n")
    if status is not None:
        (bat / "status").write_text(f"{status}\n")
    return bat


@pytest.fixture
def sysfs(tmp_path):
    """Create a fake /sys/class/power_supply tree with two batteries."""
    write_battery(tmp_path, 0, 50, "Discharging")
    write_battery(tmp_path, 1, 90, "Charging")

    ac = tmp_path / "AC"
    ac.mkdir()
    (ac / "type").write_text("Mains\n")
    (ac / "online").write_text("0\n")

    return tmp_path


@pytest.fixture
def notifier():
    handle = MagicMock()
    handle.close = AsyncMock()
    m = MagicMock()
    m.app_name = "battery-notify"
    m.show = AsyncMock(return_value=handle)
    m.handle = handle
    return m


@pytest.fixture
def player():
    m = MagicMock()
    m.play = AsyncMock()
    return m


@pytest.fixture
def sounds():
    return Sounds(plug=b"plug", unplug=b"unplug", low_battery=b"low")


def replace_text(path, text):
    """Swap file content in one step so a concurrent poll never reads a half-written file."""
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text)
    tmp.replace(path)
