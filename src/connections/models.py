"""Модель подключения к Docker Engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from src.utils.helpers import normalize_socket_path


class ConnectionStatus(str, Enum):
    """Статусы доступности соединения."""

    ONLINE = "online"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


@dataclass(slots=True)
class Connection:
    """Описание подключения, через которое работает бэкенд команд."""

    identifier: str
    name: str
    socket: str
    timeout_sec: int = 5
    status: ConnectionStatus = ConnectionStatus.UNKNOWN

    @classmethod
    def from_settings(cls, settings: Any, identifier: str = "default") -> "Connection":
        """Собирает соединение из группы настроек connection."""

        group = settings.get_group("connection")
        return cls(
            identifier=identifier,
            name=group.get("name"),
            socket=normalize_socket_path(group.get("docker_host")),
            timeout_sec=group.get("timeout_sec"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Сериализует модель в dict."""

        return {
            "id": self.identifier,
            "name": self.name,
            "socket": self.socket,
            "timeout_sec": self.timeout_sec,
            "status": self.status.value,
        }
