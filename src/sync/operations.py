"""Составные операции над ресурсами: создание, загрузка, логи, сети."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Optional, Tuple

from src.docker_api.events import PULL_PROGRESS_CHANNEL, ChannelEvent, EventKind, logs_channel
from src.docker_api.exceptions import ActionInProgress
from src.docker_api.gateway import CommandGateway
from src.docker_api.models import NetworkMembership
from src.sync.actions import (
    CONTAINER_ACTIONS,
    IMAGE_ACTIONS,
    NETWORK_ACTIONS,
    VOLUME_ACTIONS,
    ActionCoordinator,
)
from src.sync.poller import ResourcePoller
from src.sync.progress import ProgressAggregator, ProgressState
from src.sync.subscriptions import EventSubscriber
from src.sync.validation import parse_port_mapping, require_value

LOGGER = logging.getLogger(__name__)


class ResourceOperations:
    """Фасад над шлюзом, подписчиком и опросчиками всех коллекций.

    Держит по одному координатору действий на коллекцию и кэш участников
    сетей. Загрузка образа выполняется не более одной одновременно: канал
    ``pull-progress`` общий, и события двух загрузок нельзя было бы различить.
    """

    def __init__(
        self,
        gateway: CommandGateway,
        subscriber: EventSubscriber,
        *,
        containers: ResourcePoller,
        images: ResourcePoller,
        networks: ResourcePoller,
        volumes: ResourcePoller,
        stream_grace_sec: float = 5.0,
        default_network_driver: str = "bridge",
    ) -> None:
        self._gateway = gateway
        self._subscriber = subscriber
        self._containers = containers
        self._images = images
        self._networks = networks
        self._volumes = volumes
        self.stream_grace_sec = stream_grace_sec
        self.default_network_driver = default_network_driver
        self.container_actions = ActionCoordinator(gateway, containers, CONTAINER_ACTIONS)
        self.image_actions = ActionCoordinator(gateway, images, IMAGE_ACTIONS)
        self.network_actions = ActionCoordinator(gateway, networks, NETWORK_ACTIONS)
        self.volume_actions = ActionCoordinator(gateway, volumes, VOLUME_ACTIONS)
        self._active_pull: Optional[str] = None
        self._memberships: Dict[str, Tuple[NetworkMembership, ...]] = {}

    @property
    def active_pull(self) -> Optional[str]:
        return self._active_pull

    # ------------------------------------------------------------ containers
    async def create_container(self, image: str, port_mapping: str = "") -> None:
        """Создаёт и запускает контейнер; порт публикуется только при непустом port_mapping."""

        image = require_value("image", image)
        parse_port_mapping(port_mapping)
        await self._gateway.create_container(image, port_mapping or None)
        LOGGER.info("Container created from %s", image)
        await self._containers.refresh_now()

    async def container_action(self, container_name: str, action: str) -> None:
        await self.container_actions.request(container_name, action)

    async def stream_logs(self, container_name: str, on_line: Callable[[str], None]) -> int:
        """Передаёт строки логов контейнера в on_line, возвращает их число."""

        container_name = require_value("container_name", container_name)
        lines = 0

        def forward(event: ChannelEvent) -> None:
            nonlocal lines
            if event.kind is EventKind.DATA:
                lines += 1
                on_line(str(event.payload))

        handle = await self._subscriber.subscribe(logs_channel(container_name), forward)
        try:
            await self._gateway.emit_logs(container_name)
            await self._await_stream_end(handle)
        finally:
            handle.close()
        return lines

    # ---------------------------------------------------------------- images
    async def pull_image(
        self,
        image_name: str,
        on_progress: Optional[Callable[[ProgressState], None]] = None,
    ) -> ProgressState:
        """Загружает образ и возвращает итоговое состояние прогресса."""

        image_name = require_value("image_name", image_name)
        if self._active_pull is not None:
            raise ActionInProgress(image_name, f"pull {self._active_pull}")
        self._active_pull = image_name
        aggregator = ProgressAggregator(image_name, on_progress)
        try:
            handle = await self._subscriber.subscribe(PULL_PROGRESS_CHANNEL, aggregator.handle)
            try:
                await self._gateway.pull_image(image_name)
                await self._await_stream_end(handle)
            finally:
                handle.close()
        finally:
            self._active_pull = None
        LOGGER.info(
            "Image %s pulled (%s progress events)", image_name, aggregator.events_applied
        )
        await self._images.refresh_now()
        return aggregator.state

    async def remove_image(self, image: str) -> None:
        await self.image_actions.request(image, "remove")

    # -------------------------------------------------------------- networks
    async def create_network(self, name: str, driver: Optional[str] = None) -> None:
        name = require_value("name", name)
        driver = require_value("driver", driver or self.default_network_driver)
        await self._gateway.create_network(name, driver)
        LOGGER.info("Network %s created with driver %s", name, driver)
        await self._networks.refresh_now()

    async def remove_network(self, network_id: str) -> None:
        await self.network_actions.request(network_id, "remove")
        self._memberships.pop(network_id, None)

    async def connect_container(self, container_id: str, network_id: str) -> None:
        container_id = require_value("container_id", container_id)
        network_id = require_value("network_id", network_id)
        try:
            await self._gateway.connect_container_to_network(container_id, network_id)
        finally:
            self._memberships.pop(network_id, None)
        LOGGER.info("Container %s connected to network %s", container_id, network_id)

    async def disconnect_container(self, container_id: str, network_id: str) -> None:
        container_id = require_value("container_id", container_id)
        network_id = require_value("network_id", network_id)
        try:
            await self._gateway.disconnect_container_to_network(container_id, network_id)
        finally:
            self._memberships.pop(network_id, None)
        LOGGER.info("Container %s disconnected from network %s", container_id, network_id)

    async def network_containers(
        self, network_id: str, refresh: bool = False
    ) -> Tuple[NetworkMembership, ...]:
        """Участники сети; без refresh используется кэш."""

        network_id = require_value("network_id", network_id)
        if not refresh and network_id in self._memberships:
            return self._memberships[network_id]
        members = tuple(await self._gateway.list_network_containers(network_id))
        self._memberships[network_id] = members
        return members

    def cached_network_containers(self, network_id: str) -> Optional[Tuple[NetworkMembership, ...]]:
        return self._memberships.get(network_id)

    # --------------------------------------------------------------- volumes
    async def create_volume(self, volume_name: str) -> None:
        volume_name = require_value("volume_name", volume_name)
        await self._gateway.create_volume(volume_name)
        LOGGER.info("Volume %s created", volume_name)
        await self._volumes.refresh_now()

    async def remove_volume(self, volume_name: str) -> None:
        await self.volume_actions.request(volume_name, "remove")

    # ---------------------------------------------------------------- helpers
    async def _await_stream_end(self, handle: Any) -> None:
        if not await handle.wait_closed(self.stream_grace_sec):
            LOGGER.warning(
                "Channel %s did not complete within %s s, closing subscription",
                handle.channel,
                self.stream_grace_sec,
            )
