"""battery-notify entry point: python -m battery_notify"""

import argparse
import asyncio
import logging
import os
import signal
import sys
from dataclasses import replace
from pathlib import Path

from battery_notify import acpi
from battery_notify.acpi import AcpiError
from battery_notify.battery import BatteryNotFound, BatteryReader, PowerSupplyError
from battery_notify.cache import CACHE_DIR, cache_path
from battery_notify.check import BatteryCheck
from battery_notify.config import Config, load_config
from battery_notify.notifier import DesktopNotifier, SoundPlayer, Sounds
from battery_notify.state import init_state
from battery_notify.watcher import BatteryWatcher

log = logging.getLogger("battery_notify")

EXIT_CONFIG = 1
EXIT_FATAL = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="battery-notify", description="Battery status notifications")
    parser.set_defaults(config=None, log_level=None, battery_id=None, low_percent=None,
                        interval=None, no_sound=False, source=None)
    sub = parser.add_subparsers(dest="command")

    # watch subcommand (also the default when no subcommand given)
    watch_parser = sub.add_parser("watch", help="Watch the battery and notify on changes (default)")
    watch_parser.add_argument("-b", "--battery-id", type=int, help="Battery id (BAT<id>)")
    watch_parser.add_argument("-l", "--low-percent", type=int, help="Low battery threshold")
    watch_parser.add_argument("-i", "--interval", type=float, help="Poll interval in seconds")
    watch_parser.add_argument("--no-sound", action="store_true", help="Do not play sounds")
    watch_parser.add_argument("-c", "--config", type=Path, help="Path to config.json")
    watch_parser.add_argument("--log-level", default=None, help="Log level")

    check_parser = sub.add_parser("check", help="Compare against the cached state once and exit")
    check_parser.add_argument("-b", "--battery-id", type=int, help="Battery id (BAT<id>)")
    check_parser.add_argument("-l", "--low-percent", type=int, help="Low battery threshold")
    check_parser.add_argument("--source", choices=("sysfs", "acpi"), help="Where to read the battery")
    check_parser.add_argument("-c", "--config", type=Path, help="Path to config.json")
    check_parser.add_argument("--log-level", default=None, help="Log level")

    info_parser = sub.add_parser("info", help="Print battery information")
    info_parser.add_argument("--source", choices=("sysfs", "acpi"), help="Where to read the battery")
    info_parser.add_argument("-c", "--config", type=Path, help="Path to config.json")
    info_parser.add_argument("--log-level", default=None, help="Log level")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = _apply_args(load_config(args.config), args)
    except ValueError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return EXIT_CONFIG

    _setup_logging(args.log_level or os.environ.get("LOG_LEVEL") or config.daemon.log_level)

    if args.command == "check":
        return _run_check(config)
    if args.command == "info":
        return _run_info(config)
    return _run_watch(config)


def _apply_args(config: Config, args) -> Config:
    watch = {}
    if args.battery_id is not None:
        watch["battery_id"] = args.battery_id
    if args.low_percent is not None:
        watch["low_percent"] = args.low_percent
    if args.interval is not None:
        watch["poll_interval"] = args.interval
    if args.no_sound:
        watch["sounds"] = False
    config.watch = replace(config.watch, **watch)
    if args.source is not None:
        config.check = replace(config.check, source=args.source)
    return config


def _setup_logging(level_name: str):
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)-25s %(levelname)-7s %(message)s",
        datefmt="%H:%M:%S",
    )


def _run_watch(config: Config) -> int:
    reader = BatteryReader(Path(config.daemon.power_supply_root))
    try:
        state = init_state(reader, config.watch.battery_id, config.watch.low_percent)
    except BatteryNotFound as e:
        log.error("%s", e)
        return EXIT_CONFIG
    except PowerSupplyError as e:
        log.error("Cannot read power supply: %s", e)
        return EXIT_FATAL

    watcher = BatteryWatcher.from_config(
        config.watch,
        reader,
        state,
        DesktopNotifier(),
        SoundPlayer(enabled=config.watch.sounds),
        Sounds.load(),
    )

    try:
        asyncio.run(_run(watcher))
    except (BatteryNotFound, PowerSupplyError) as e:
        log.error("Battery became unreadable, exiting: %s", e)
        return EXIT_FATAL
    return 0


async def _run(watcher: BatteryWatcher):
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, lambda s=sig: _shutdown(watcher, s))
    await watcher.run()


def _shutdown(watcher: BatteryWatcher, sig=None):
    if watcher.stopped:
        return
    if sig:
        log.info("Received %s, shutting down...", sig.name)
    watcher.stop()


def _run_check(config: Config) -> int:
    cache_dir = Path(config.check.cache_dir) if config.check.cache_dir else CACHE_DIR
    check = BatteryCheck(
        config.watch.battery_id,
        config.watch.low_percent,
        DesktopNotifier(),
        cache_path(config.watch.battery_id, cache_dir),
        reader=BatteryReader(Path(config.daemon.power_supply_root)),
        source=config.check.source,
    )
    try:
        asyncio.run(check.run())
    except BatteryNotFound as e:
        log.error("%s", e)
        return EXIT_CONFIG
    except (PowerSupplyError, AcpiError) as e:
        log.error("Cannot read battery: %s", e)
        return EXIT_FATAL
    return 0


def _run_info(config: Config) -> int:
    if config.check.source == "acpi":
        try:
            data = acpi.call(config.watch.battery_id)
        except AcpiError as e:
            log.error("%s", e)
            return EXIT_FATAL
        if data is None:
            log.error("BAT%d does not exist!", config.watch.battery_id)
            return EXIT_CONFIG
        print(data)
        return 0

    reader = BatteryReader(Path(config.daemon.power_supply_root))
    try:
        for battery_id in reader.enumerate():
            percent = reader.read_percent(battery_id)
            status = reader.read_status(battery_id)
            print(f"BAT{battery_id}: {percent}% {status.value}")
    except (BatteryNotFound, PowerSupplyError) as e:
        log.error("%s", e)
        return EXIT_FATAL
    return 0


if __name__ == "__main__":
    sys.exit(main())
