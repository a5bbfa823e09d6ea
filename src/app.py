"""Сборка консоли: шлюз, шина событий, опросчики и операции над ресурсами."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Dict, List, Optional

from src.connections.models import Connection
from src.docker_api.backend import DockerBackend
from src.docker_api.client import DockerClientWrapper
from src.docker_api.events import EventBus
from src.docker_api.gateway import CommandBackend, CommandGateway
from src.docker_api.models import ContainerSummary, ImageSummary, NetworkSummary, VolumeSummary
from src.settings.registry import SettingsRegistry
from src.sync.operations import ResourceOperations
from src.sync.poller import ResourcePoller, ResourceSnapshot
from src.sync.subscriptions import EventSubscriber
from src.utils.helpers import format_bytes

LOGGER = logging.getLogger(__name__)

# коллекция -> (команда списка, ключ интервала в группе polling)
COLLECTIONS: Dict[str, tuple[str, str]] = {
    "containers": ("list_containers", "containers_interval_ms"),
    "images": ("list_images", "images_interval_ms"),
    "networks": ("list_networks", "networks_interval_ms"),
    "volumes": ("list_volumes", "volumes_interval_ms"),
}


def parse_log_tail(value: str) -> str | int:
    """'all' остаётся строкой, число строк превращается в int."""

    return int(value) if value.isdigit() else value


class ConsoleApp:
    """Связывает все компоненты консоли, построенные из настроек.

    Бэкенд и транспорт событий можно передать явно; по умолчанию создаётся
    ``DockerBackend`` поверх docker-py и внутрипроцессная ``EventBus``.
    """

    def __init__(
        self,
        settings: SettingsRegistry,
        *,
        backend: Optional[CommandBackend] = None,
        bus: Optional[EventBus] = None,
    ) -> None:
        self.settings = settings
        self.bus = bus or EventBus()
        self.client: Optional[DockerClientWrapper] = None
        if backend is None:
            self.client = DockerClientWrapper(Connection.from_settings(settings))
            backend = DockerBackend(
                self.client,
                self.bus,
                log_tail=parse_log_tail(settings.get_value("operations", "log_tail")),
                follow_logs=settings.get_value("operations", "follow_logs"),
            )
        self.gateway = CommandGateway(backend)
        self.subscriber = EventSubscriber(self.bus)
        self.pollers: Dict[str, ResourcePoller] = {
            name: ResourcePoller(
                name,
                self.gateway,
                command,
                interval_setting=("polling", interval_key),
            )
            for name, (command, interval_key) in COLLECTIONS.items()
        }
        self.operations = ResourceOperations(
            self.gateway,
            self.subscriber,
            containers=self.pollers["containers"],
            images=self.pollers["images"],
            networks=self.pollers["networks"],
            volumes=self.pollers["volumes"],
            stream_grace_sec=settings.get_value("operations", "pull_stream_grace_sec"),
            default_network_driver=settings.get_value("operations", "default_network_driver"),
        )
        for poller in self.pollers.values():
            settings.register_observer(poller)
        settings.register_observer(self)
        self._watching = False

    # --------------------------------------------------------------- polling
    def start_polling(self) -> bool:
        """Запускает все опросчики, если опрос включён в настройках."""

        if not self.settings.get_value("polling", "enabled"):
            LOGGER.info("Polling is disabled in settings")
            return False
        for name, poller in self.pollers.items():
            _, interval_key = COLLECTIONS[name]
            poller.start(self.settings.get_value("polling", interval_key))
        return True

    def stop_polling(self) -> None:
        for poller in self.pollers.values():
            poller.stop()

    async def refresh_all(self) -> Dict[str, Optional[ResourceSnapshot]]:
        """Внеочередное обновление всех коллекций."""

        names = list(self.pollers)
        results = await asyncio.gather(*(self.pollers[name].refresh_now() for name in names))
        return dict(zip(names, results))

    def on_setting_changed(self, group: str, key: str, old_value: object, new_value: object) -> None:
        if (group, key) != ("polling", "enabled") or not self._watching:
            return
        if new_value:
            self.start_polling()
        else:
            self.stop_polling()

    # ------------------------------------------------------------- lifecycle
    async def check_connection(self) -> bool:
        """Проверяет доступность демона; без docker-клиента считается доступным."""

        if self.client is None:
            return True
        online = await asyncio.to_thread(self.client.ping)
        if not online:
            LOGGER.warning(
                "Docker daemon at %s is not reachable, polling will keep retrying",
                self.client.connection.socket,
            )
        return online

    async def watch(self, stop_event: asyncio.Event) -> None:
        """Опрашивает все коллекции и пишет сводки в лог до установки stop_event."""

        for poller in self.pollers.values():
            poller.add_listener(log_snapshot)
        self._watching = True
        try:
            await self.check_connection()
            if not self.start_polling():
                await self.refresh_all()
            await stop_event.wait()
        finally:
            self._watching = False
            for poller in self.pollers.values():
                poller.remove_listener(log_snapshot)
            await self.shutdown()

    async def shutdown(self) -> None:
        """Останавливает опрос, освобождает подписки и закрывает клиент."""

        self.stop_polling()
        for poller in self.pollers.values():
            await poller.wait_idle()
            self.settings.unregister_observer(poller)
        self.settings.unregister_observer(self)
        self.subscriber.close_all()
        if self.client is not None:
            await asyncio.to_thread(self.client.close)
        LOGGER.info("Console stopped")


def log_snapshot(snapshot: ResourceSnapshot) -> None:
    if snapshot.collection == "containers":
        states = Counter(item.state.value for item in snapshot.items)
        LOGGER.info(
            "containers: %s total (%s)",
            len(snapshot),
            ", ".join(f"{state}={count}" for state, count in sorted(states.items())) or "none",
        )
    else:
        LOGGER.info("%s: %s total", snapshot.collection, len(snapshot))


def render_snapshot(snapshot: ResourceSnapshot) -> List[str]:
    """Табличное представление снимка для вывода в терминал."""

    lines: List[str] = []
    for item in snapshot.items:
        if isinstance(item, ContainerSummary):
            ports = ", ".join(item.ports) or "-"
            lines.append(f"{item.name or '<unnamed>':<30} {item.state.value:<8} {item.status:<25} {ports}")
        elif isinstance(item, ImageSummary):
            lines.append(f"{item.repo_tag:<50} {format_bytes(item.size)}")
        elif isinstance(item, NetworkSummary):
            lines.append(f"{item.id[:12]:<14} {item.name:<30} {item.driver:<10} {item.scope}")
        elif isinstance(item, VolumeSummary):
            lines.append(f"{item.name:<50} {item.driver or '-':<10} {item.mountpoint or '-'}")
    return lines


async def fetch_snapshot(app: ConsoleApp, collection: str) -> ResourceSnapshot:
    """Однократно загружает коллекцию; при отказе поднимает CommandFailure."""

    poller = app.pollers[collection]
    snapshot = await poller.refresh_now()
    if snapshot is None and poller.last_error is not None:
        raise poller.last_error
    if snapshot is None:
        raise RuntimeError(f"No snapshot delivered for {collection}")
    return snapshot
