"""Группы настроек консоли с валидацией значений."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Tuple

from src.settings.exceptions import SettingsNotFoundError, SettingsValidationError
from src.settings.validators import (
    CompositeValidator,
    EnumValidator,
    RangeValidator,
    RegexValidator,
    TypeValidator,
    Validator,
)

DEFAULT_DOCKER_HOST = "unix:///var/run/docker.sock"
DOCKER_HOST_PATTERN = r"^((unix|tcp|npipe|ssh|https?)://\S+|/\S+)$"
LOG_TAIL_PATTERN = r"^(all|\d+)$"
NETWORK_DRIVERS = ("bridge", "host", "overlay", "macvlan", "ipvlan", "none")

Change = Tuple[str, Any, Any]


class SettingsGroup(ABC):
    """Абстрактная база для групп настроек.

    Каждая группа знает свои ключи, значения по умолчанию и валидаторы.
    Неизвестный ключ всегда даёт ``SettingsNotFoundError``, невалидное
    значение даёт ``SettingsValidationError``; значение при этом не меняется.
    """

    group_name: str = ""

    def __init__(self) -> None:
        self._defaults: Dict[str, Any] = {}
        self._validators: Dict[str, Validator] = {}
        self._values: Dict[str, Any] = {}
        self._initialize_defaults()
        self._setup_validators()
        self.reset_to_defaults()

    @abstractmethod
    def _initialize_defaults(self) -> None:
        """Задаёт значения по умолчанию для группы."""

    @abstractmethod
    def _setup_validators(self) -> None:
        """Привязывает валидаторы к ключам группы."""

    def keys(self) -> Tuple[str, ...]:
        return tuple(self._defaults.keys())

    def get(self, key: str) -> Any:
        self._require_key(key)
        return self._values[key]

    def validate(self, key: str, value: Any) -> Tuple[bool, str]:
        validator = self._validators.get(key)
        if validator is None:
            return True, ""
        return validator.validate(value)

    def set(self, key: str, value: Any) -> Any:
        """Сохраняет значение и возвращает предыдущее."""

        self._require_key(key)
        is_valid, error = self.validate(key, value)
        if not is_valid:
            raise SettingsValidationError(
                key=f"{self.group_name}.{key}",
                value=value,
                reason=error,
            )
        old_value = self._values.get(key)
        self._values[key] = value
        return old_value

    def update(self, data: Dict[str, Any]) -> List[Change]:
        """Применяет известные ключи из data и возвращает реально изменённые.

        Неизвестные ключи пропускаются: в файле могут остаться поля прежних версий.
        """

        changes: List[Change] = []
        for key, value in data.items():
            if key not in self._defaults:
                continue
            old_value = self.set(key, value)
            if old_value != value:
                changes.append((key, old_value, value))
        return changes

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._values)

    def get_default(self, key: str) -> Any:
        self._require_key(key)
        return self._defaults[key]

    def get_schema(self) -> Dict[str, Dict[str, Any]]:
        """Схема группы: тип и значение по умолчанию для каждого ключа."""

        return {
            key: {"type": type(default).__name__, "default": default}
            for key, default in self._defaults.items()
        }

    def reset_to_defaults(self) -> None:
        self._values = dict(self._defaults)

    def _require_key(self, key: str) -> None:
        if key not in self._defaults:
            raise SettingsNotFoundError(self.group_name, key)


class LoggingSettings(SettingsGroup):
    """Настройки логирования консоли."""

    group_name = "logging"

    def _initialize_defaults(self) -> None:
        self._defaults = {
            "enabled": True,
            "level": "INFO",
            "max_file_size_mb": 10,
            "max_archived_files": 5,
        }

    def _setup_validators(self) -> None:
        self._validators = {
            "enabled": TypeValidator(bool),
            "level": EnumValidator(["DEBUG", "INFO", "WARNING", "ERROR"]),
            "max_file_size_mb": RangeValidator(1, 1000),
            "max_archived_files": RangeValidator(1, 50),
        }


class ConnectionSettings(SettingsGroup):
    """Адрес демона Docker и таймаут транспорта."""

    group_name = "connection"

    def _initialize_defaults(self) -> None:
        self._defaults = {
            "name": "local",
            "docker_host": DEFAULT_DOCKER_HOST,
            "timeout_sec": 5,
        }

    def _setup_validators(self) -> None:
        self._validators = {
            "name": CompositeValidator([TypeValidator(str), RegexValidator(r"\S.*")]),
            "docker_host": RegexValidator(DOCKER_HOST_PATTERN),
            "timeout_sec": RangeValidator(1, 120),
        }


class PollingSettings(SettingsGroup):
    """Интервалы периодического опроса коллекций."""

    group_name = "polling"

    def _initialize_defaults(self) -> None:
        self._defaults = {
            "enabled": True,
            "containers_interval_ms": 5000,
            "images_interval_ms": 10000,
            "networks_interval_ms": 10000,
            "volumes_interval_ms": 10000,
        }

    def _setup_validators(self) -> None:
        interval = RangeValidator(500, 600000)
        self._validators = {
            "enabled": TypeValidator(bool),
            "containers_interval_ms": interval,
            "images_interval_ms": interval,
            "networks_interval_ms": interval,
            "volumes_interval_ms": interval,
        }


class OperationsSettings(SettingsGroup):
    """Параметры потоковых операций и создания ресурсов."""

    group_name = "operations"

    def _initialize_defaults(self) -> None:
        self._defaults = {
            "log_tail": "all",
            "follow_logs": False,
            "pull_stream_grace_sec": 5,
            "default_network_driver": "bridge",
        }

    def _setup_validators(self) -> None:
        self._validators = {
            "log_tail": RegexValidator(LOG_TAIL_PATTERN),
            "follow_logs": TypeValidator(bool),
            "pull_stream_grace_sec": RangeValidator(0, 600),
            "default_network_driver": EnumValidator(NETWORK_DRIVERS),
        }
