"""Точка входа консоли dockhand."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from src import __version__
from src.app import COLLECTIONS, ConsoleApp, fetch_snapshot, render_snapshot
from src.docker_api.exceptions import DockerConsoleError
from src.settings.observers import LoggingSettingsObserver, LogLevelObserver
from src.settings.registry import SettingsRegistry
from src.sync.actions import CONTAINER_ACTIONS
from src.sync.progress import ProgressState
from src.utils.logger import configure_from_settings, configure_logging
from src.utils.paths import config_dir, logs_dir

LOGGER = logging.getLogger(__name__)

Printer = Callable[[str], None]


def initialize_settings(config_path: Path) -> SettingsRegistry:
    """Получает singleton реестр настроек и загружает config.json."""

    registry = SettingsRegistry(config_path=config_path)
    registry.load_from_disk()
    return registry


def initialize_workdir(base_dir: Path) -> bool:
    """Создаёт рабочий каталог (~/.dockhand и ~/.dockhand/logs)."""

    try:
        (base_dir / "logs").mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.error("Cannot initialize working directory %s: %s", base_dir, exc)
        return False
    return True


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dockhand", description="Docker resource console")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("watch", help="poll all collections until interrupted")

    ls = commands.add_parser("ls", help="list one collection")
    ls.add_argument("collection", choices=sorted(COLLECTIONS))

    container = commands.add_parser("container", help="run an action on a container")
    container.add_argument("action", choices=sorted(CONTAINER_ACTIONS))
    container.add_argument("name")

    run = commands.add_parser("run", help="create and start a container")
    run.add_argument("image")
    run.add_argument("-p", "--publish", default="", metavar="HOST:CONTAINER")

    logs = commands.add_parser("logs", help="print container logs")
    logs.add_argument("name")

    pull = commands.add_parser("pull", help="pull an image")
    pull.add_argument("image")

    image_rm = commands.add_parser("image-rm", help="remove an image")
    image_rm.add_argument("image")

    volume_create = commands.add_parser("volume-create", help="create a volume")
    volume_create.add_argument("name")
    volume_rm = commands.add_parser("volume-rm", help="remove a volume")
    volume_rm.add_argument("name")

    network_create = commands.add_parser("network-create", help="create a network")
    network_create.add_argument("name")
    network_create.add_argument("--driver", default=None)
    network_rm = commands.add_parser("network-rm", help="remove a network")
    network_rm.add_argument("network_id")
    for name in ("network-connect", "network-disconnect"):
        membership = commands.add_parser(name, help=f"{name.split('-')[1]} a container")
        membership.add_argument("container_id")
        membership.add_argument("network_id")
    members = commands.add_parser("network-members", help="list containers of a network")
    members.add_argument("network_id")

    config = commands.add_parser("config", help="show or change settings")
    config_commands = config.add_subparsers(dest="config_command", required=True)
    config_commands.add_parser("show")
    config_set = config_commands.add_parser("set")
    config_set.add_argument("group")
    config_set.add_argument("key")
    config_set.add_argument("value", help="JSON value; plain text is taken as a string")
    config_export = config_commands.add_parser("export", help="write settings to a JSON file")
    config_export.add_argument("path", type=Path)
    config_import = config_commands.add_parser("import", help="load settings from a JSON file")
    config_import.add_argument("path", type=Path)
    return parser


def parse_setting_value(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


async def run_command(app: ConsoleApp, args: argparse.Namespace, out: Printer = print) -> int:
    """Выполняет одну подкоманду; ошибки консоли пробрасываются вызывающему."""

    command = args.command or "watch"
    operations = app.operations
    try:
        if command == "watch":
            await app.watch(_stop_event_on_signals())
            return 0
        if command == "ls":
            snapshot = await fetch_snapshot(app, args.collection)
            for line in render_snapshot(snapshot):
                out(line)
        elif command == "container":
            await fetch_snapshot(app, "containers")
            await operations.container_action(args.name, args.action)
            out(f"{args.action}: {args.name}")
        elif command == "run":
            await operations.create_container(args.image, args.publish)
            out(f"started container from {args.image}")
        elif command == "logs":
            await operations.stream_logs(args.name, out)
        elif command == "pull":
            state = await operations.pull_image(args.image, _progress_printer(out))
            out(f"pulled {args.image}: {state.last_status}")
        elif command == "image-rm":
            await fetch_snapshot(app, "images")
            await operations.remove_image(args.image)
            out(f"removed image {args.image}")
        elif command == "volume-create":
            await operations.create_volume(args.name)
            out(f"created volume {args.name}")
        elif command == "volume-rm":
            await fetch_snapshot(app, "volumes")
            await operations.remove_volume(args.name)
            out(f"removed volume {args.name}")
        elif command == "network-create":
            await operations.create_network(args.name, args.driver)
            out(f"created network {args.name}")
        elif command == "network-rm":
            await fetch_snapshot(app, "networks")
            await operations.remove_network(args.network_id)
            out(f"removed network {args.network_id}")
        elif command == "network-connect":
            await operations.connect_container(args.container_id, args.network_id)
            out(f"connected {args.container_id} to {args.network_id}")
        elif command == "network-disconnect":
            await operations.disconnect_container(args.container_id, args.network_id)
            out(f"disconnected {args.container_id} from {args.network_id}")
        elif command == "network-members":
            for member in await operations.network_containers(args.network_id, refresh=True):
                out(f"{member.id[:12]:<14} {member.name}")
        elif command == "config":
            _run_config_command(app.settings, args, out)
        else:
            raise ValueError(f"Unknown command: {command}")
    finally:
        if command != "watch":
            await app.shutdown()
    return 0


def _run_config_command(settings: SettingsRegistry, args: argparse.Namespace, out: Printer) -> None:
    if args.config_command == "set":
        settings.set_value(args.group, args.key, parse_setting_value(args.value))
        settings.save_to_disk()
        return
    if args.config_command == "export":
        settings.export_to_json(args.path)
        out(f"exported settings to {args.path}")
        return
    if args.config_command == "import":
        settings.import_from_json(args.path)
        out(f"imported settings from {args.path}")
        return
    for group in settings.groups:
        for key, value in settings.get_group(group).to_dict().items():
            out(f"{group}.{key} = {json.dumps(value)}")


def _progress_printer(out: Printer) -> Callable[[ProgressState], None]:
    last_reported = [-1]

    def report(state: ProgressState) -> None:
        percent = int(state.overall)
        if percent != last_reported[0]:
            last_reported[0] = percent
            out(f"{percent:3d}% {state.last_status}")

    return report


def _stop_event_on_signals() -> asyncio.Event:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except (NotImplementedError, RuntimeError):
            # Windows: остаётся KeyboardInterrupt
            LOGGER.debug("Signal handler for %s is not supported", signum)
    return stop_event


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Основная точка входа: готовит окружение и выполняет подкоманду."""

    args = build_parser().parse_args(argv)
    base_dir = config_dir()
    configure_logging(logs_dir())
    if not initialize_workdir(base_dir):
        return 1

    try:
        settings = initialize_settings(base_dir / "config.json")
    except DockerConsoleError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    configure_from_settings(logs_dir(), settings)
    settings.register_observer(LoggingSettingsObserver())
    settings.register_observer(LogLevelObserver())

    LOGGER.info("Starting dockhand %s", __version__)
    app = ConsoleApp(settings)
    try:
        return asyncio.run(run_command(app, args))
    except DockerConsoleError as exc:
        print(f"error: {exc.message}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
