"""Структуры данных для описания объектов Docker, которые приходят из бэкенда.

Все модели неизменяемы: очередной опрос целиком заменяет предыдущий снимок,
поэтому частичное изменение полей не требуется. Методы ``from_dict``
проверяют слабо типизированные данные бэкенда и бросают ``ValueError`` или
``TypeError`` при несоответствии формату.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class ContainerState(str, Enum):
    """Жизненный цикл контейнера в терминах консоли."""

    RUNNING = "running"
    EXITED = "exited"
    PAUSED = "paused"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "ContainerState":
        """Приводит состояние Docker к одному из четырёх значений."""

        if not isinstance(value, str):
            return cls.UNKNOWN
        normalized = value.strip().lower()
        if normalized in cls._value2member_map_:
            return cls(normalized)
        if normalized in _EXITED_ALIASES:
            return cls.EXITED
        return cls.UNKNOWN


# created и dead ведут себя как остановленный контейнер
_EXITED_ALIASES = frozenset({"created", "dead"})


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise TypeError(f"Field '{key}' must be a string, got {type(value).__name__}")
    return value


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = _optional_str(data, key)
    if value is None:
        raise ValueError(f"Field '{key}' is required")
    return value


def _optional_bool(data: Mapping[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is None or isinstance(value, bool):
        return value
    raise TypeError(f"Field '{key}' must be a boolean, got {type(value).__name__}")


def _optional_str_map(data: Mapping[str, Any], key: str) -> Optional[Dict[str, str]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise TypeError(f"Field '{key}' must be a mapping, got {type(value).__name__}")
    return {str(k): str(v) for k, v in value.items()}


@dataclass(frozen=True, slots=True)
class ContainerSummary:
    """Строка таблицы контейнеров."""

    name: Optional[str]
    status: str = ""
    state: ContainerState = ContainerState.UNKNOWN
    ports: Tuple[str, ...] = ()

    @property
    def key(self) -> Optional[str]:
        return self.name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContainerSummary":
        ports = data.get("ports") or []
        if not isinstance(ports, (list, tuple)):
            raise TypeError("Field 'ports' must be a sequence")
        return cls(
            name=_optional_str(data, "name"),
            status=_optional_str(data, "status") or "",
            state=ContainerState.parse(data.get("state")),
            ports=tuple(str(port) for port in ports),
        )


@dataclass(frozen=True, slots=True)
class ImageSummary:
    """Образ Docker (тег и размер в байтах)."""

    repo_tag: str
    size: int = 0

    @property
    def key(self) -> str:
        return self.repo_tag

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ImageSummary":
        size = data.get("size", 0) or 0
        if isinstance(size, bool) or not isinstance(size, int):
            raise TypeError("Field 'size' must be an integer")
        if size < 0:
            raise ValueError(f"Image size must be non-negative, got {size}")
        return cls(repo_tag=_required_str(data, "repo_tag"), size=size)


@dataclass(frozen=True, slots=True)
class NetworkSummary:
    """Сеть Docker."""

    id: str
    name: str
    driver: str
    scope: str
    internal: Optional[bool] = None
    enable_ipv6: Optional[bool] = None
    labels: Optional[Dict[str, str]] = field(default=None, compare=False)

    @property
    def key(self) -> str:
        return self.id

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetworkSummary":
        return cls(
            id=_required_str(data, "id"),
            name=_required_str(data, "name"),
            driver=_required_str(data, "driver"),
            scope=_required_str(data, "scope"),
            internal=_optional_bool(data, "internal"),
            enable_ipv6=_optional_bool(data, "enable_ipv6"),
            labels=_optional_str_map(data, "labels"),
        )


@dataclass(frozen=True, slots=True)
class VolumeSummary:
    """Том Docker."""

    name: str
    driver: str
    mountpoint: Optional[str] = None
    scope: Optional[str] = None
    labels: Optional[Dict[str, str]] = field(default=None, compare=False)
    status: Optional[Dict[str, str]] = field(default=None, compare=False)

    @property
    def key(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "VolumeSummary":
        return cls(
            name=_required_str(data, "name"),
            driver=_required_str(data, "driver"),
            mountpoint=_optional_str(data, "mountpoint"),
            scope=_optional_str(data, "scope"),
            labels=_optional_str_map(data, "labels"),
            status=_optional_str_map(data, "status"),
        )


@dataclass(frozen=True, slots=True)
class NetworkMembership:
    """Связь контейнера с сетью, для которой она была запрошена."""

    id: str
    name: str
    network_id: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NetworkMembership":
        return cls(
            id=_required_str(data, "id"),
            name=_optional_str(data, "name") or "Unnamed",
            network_id=_required_str(data, "network_id"),
        )


@dataclass(frozen=True, slots=True)
class ProgressEvent:
    """Частичный отчёт о ходе загрузки образа (по слоям)."""

    id: Optional[str]
    status: str = ""
    current: Optional[int] = None
    total: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProgressEvent":
        # Docker Engine отдаёт progressDetail, канал pull-progress использует progress_detail
        detail = data.get("progress_detail")
        if detail is None:
            detail = data.get("progressDetail")
        detail = detail or {}
        if not isinstance(detail, Mapping):
            raise TypeError("Field 'progress_detail' must be a mapping")
        return cls(
            id=_optional_str(data, "id"),
            status=_optional_str(data, "status") or "",
            current=_optional_int(detail, "current"),
            total=_optional_int(detail, "total"),
        )


def _optional_int(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Field '{key}' must be a number")
    return int(value)
