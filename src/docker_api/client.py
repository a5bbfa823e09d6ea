"""Обёртка над docker-py с ленивой инициализацией клиента."""

from __future__ import annotations

import logging
import threading
from typing import Any

import docker
from docker.errors import DockerException
from requests.exceptions import RequestException

from src.connections.models import Connection, ConnectionStatus
from src.docker_api.exceptions import TransportFailure

LOGGER = logging.getLogger(__name__)


class DockerClientWrapper:
    """Управляет созданием и использованием docker API client.

    Клиент создаётся при первом обращении, а не в конструкторе: недоступный
    демон при запуске не должен мешать опросу, который восстановится позже.
    """

    def __init__(self, connection: Connection, raw_client: Any | None = None) -> None:
        self.connection = connection
        self._client = raw_client
        self._lock = threading.Lock()  # вызовы идут из рабочих потоков

    def _create_client(self) -> Any:
        try:
            return docker.DockerClient(
                base_url=self.connection.socket,
                timeout=self.connection.timeout_sec,
            )
        except DockerException as exc:
            LOGGER.error(
                "Docker client init error for connection %s (%s) via %s: %s",
                self.connection.identifier,
                self.connection.name,
                self.connection.socket,
                exc,
            )
            self.connection.status = ConnectionStatus.OFFLINE
            raise TransportFailure(str(exc)) from exc

    def get_raw_client(self) -> Any:
        """Возвращает внутренний docker client, создавая его при необходимости."""

        with self._lock:
            if self._client is None:
                self._client = self._create_client()
            return self._client

    def ping(self) -> bool:
        """Проверяет доступность Docker и обновляет статус соединения."""

        try:
            self.get_raw_client().ping()
        except (DockerException, RequestException, TransportFailure) as exc:
            LOGGER.error("Docker ping failed: %s", exc)
            self.connection.status = ConnectionStatus.OFFLINE
            return False
        self.connection.status = ConnectionStatus.ONLINE
        return True

    def close(self) -> None:
        """Закрывает HTTP-сессию docker client, если он был создан."""

        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
