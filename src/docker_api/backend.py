"""Бэкенд команд поверх Docker Engine.

Каждая команда из закрытого набора отображается на синхронную функцию модулей
``containers``/``images``/``networks``/``volumes``, которая выполняется в
рабочем потоке. Потоковые команды (``pull_image``, ``emit_logs``) публикуют
вывод в шину событий и завершают канал событием ``complete`` или ``error``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Mapping, Optional

from src.docker_api import containers, images, networks, volumes
from src.docker_api.client import DockerClientWrapper
from src.docker_api.events import PULL_PROGRESS_CHANNEL, ChannelEvent, EventBus, logs_channel

LOGGER = logging.getLogger(__name__)


class DockerBackend:
    """Выполняет команды консоли через docker-py, не блокируя цикл событий."""

    def __init__(
        self,
        client: DockerClientWrapper,
        bus: EventBus,
        *,
        log_tail: str | int = "all",
        follow_logs: bool = False,
    ) -> None:
        self._client = client
        self._bus = bus
        self._log_tail = log_tail
        self._follow_logs = follow_logs
        self._handlers: Dict[str, Callable[..., Any]] = {
            "list_containers": self._list_containers,
            "create_container": self._create_container,
            "start_container": self._container_call(containers.start_container),
            "stop_container": self._container_call(containers.stop_container),
            "pause_container": self._container_call(containers.pause_container),
            "unpause_container": self._container_call(containers.unpause_container),
            "kill_container": self._container_call(containers.kill_container),
            "delete_container": self._container_call(containers.delete_container),
            "emit_logs": self._emit_logs,
            "list_images": self._list_images,
            "pull_image": self._pull_image,
            "remove_image": self._remove_image,
            "list_networks": self._list_networks,
            "create_network": self._create_network,
            "remove_network": self._remove_network,
            "connect_container_to_network": self._connect,
            "disconnect_container_to_network": self._disconnect,
            "list_network_containers": self._list_network_containers,
            "list_volumes": self._list_volumes,
            "create_volume": self._create_volume,
            "remove_volume": self._remove_volume,
        }

    @property
    def commands(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def invoke(self, command: str, parameters: Mapping[str, Any]) -> Any:
        """Выполняет команду и возвращает «сырой» результат бэкенда."""

        try:
            handler = self._handlers[command]
        except KeyError:
            raise ValueError(f"Unsupported command: {command}") from None
        LOGGER.debug("Invoking %s with %s", command, dict(parameters))
        return await handler(**parameters)

    # ------------------------------------------------------------ containers
    async def _list_containers(self) -> Any:
        return await asyncio.to_thread(containers.list_containers, self._client)

    async def _create_container(self, image: str, port_mapping: Optional[str] = None) -> None:
        await asyncio.to_thread(containers.create_container, self._client, image, port_mapping)

    def _container_call(self, func: Callable[[DockerClientWrapper, str], None]) -> Callable[..., Any]:
        async def call(container_name: str) -> None:
            await asyncio.to_thread(func, self._client, container_name)

        return call

    async def _emit_logs(self, container_name: str) -> None:
        channel = logs_channel(container_name)
        await self._run_stream(
            channel,
            lambda publish: containers.stream_logs(
                self._client,
                container_name,
                publish,
                tail=self._log_tail,
                follow=self._follow_logs,
            ),
        )

    # ---------------------------------------------------------------- images
    async def _list_images(self) -> Any:
        return await asyncio.to_thread(images.list_images, self._client)

    async def _pull_image(self, image_name: str) -> None:
        await self._run_stream(
            PULL_PROGRESS_CHANNEL,
            lambda publish: images.pull_image(self._client, image_name, publish),
        )

    async def _remove_image(self, image: str) -> None:
        await asyncio.to_thread(images.remove_image, self._client, image)

    # -------------------------------------------------------------- networks
    async def _list_networks(self) -> Any:
        return await asyncio.to_thread(networks.list_networks, self._client)

    async def _create_network(self, name: str, driver: str = "bridge") -> None:
        await asyncio.to_thread(networks.create_network, self._client, name, driver)

    async def _remove_network(self, network_id: str) -> None:
        await asyncio.to_thread(networks.remove_network, self._client, network_id)

    async def _connect(self, container_id: str, network_id: str) -> None:
        await asyncio.to_thread(networks.connect_container, self._client, container_id, network_id)

    async def _disconnect(self, container_id: str, network_id: str) -> None:
        await asyncio.to_thread(
            networks.disconnect_container, self._client, container_id, network_id
        )

    async def _list_network_containers(self, network_id: str) -> Any:
        return await asyncio.to_thread(networks.list_network_containers, self._client, network_id)

    # --------------------------------------------------------------- volumes
    async def _list_volumes(self) -> Any:
        return await asyncio.to_thread(volumes.list_volumes, self._client)

    async def _create_volume(self, volume_name: str) -> None:
        await asyncio.to_thread(volumes.create_volume, self._client, volume_name)

    async def _remove_volume(self, volume_name: str) -> None:
        await asyncio.to_thread(volumes.remove_volume, self._client, volume_name)

    # ---------------------------------------------------------------- streams
    async def _run_stream(
        self,
        channel: str,
        worker: Callable[[Callable[[Any], None]], Any],
    ) -> None:
        """Запускает потоковую функцию в рабочем потоке и завершает канал."""

        loop = asyncio.get_running_loop()

        def publish(payload: Any) -> None:
            self._bus.publish_threadsafe(loop, channel, ChannelEvent.data(payload))

        try:
            await asyncio.to_thread(worker, publish)
        except Exception as exc:
            self._bus.publish(channel, ChannelEvent.error(str(exc)))
            raise
        self._bus.publish(channel, ChannelEvent.complete())
