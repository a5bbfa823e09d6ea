"""Исключения подсистемы настроек."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Optional

from src.docker_api.exceptions import DockerConsoleError


class SettingsError(DockerConsoleError):
    """Базовое исключение ошибок конфигурации."""


class SettingsNotFoundError(SettingsError):
    """Запрошена несуществующая группа или ключ."""

    def __init__(self, group: str, key: Optional[str] = None) -> None:
        suffix = f".{key}" if key else ""
        super().__init__(
            f"Setting '{group}{suffix}' not found",
            context={"group": group, "key": key},
        )


class SettingsValidationError(SettingsError):
    """Значение настройки не прошло валидацию."""

    def __init__(self, key: str, value: Any, reason: str) -> None:
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(
            f"Validation error for '{key}': {reason} (value={value!r})",
            context={"key": key, "value": value, "reason": reason},
        )


class SettingsMigrationError(SettingsError):
    """Сбой миграции config.json; файл восстановлен из резервной копии."""

    def __init__(self, from_version: str, to_version: str, reason: str) -> None:
        super().__init__(
            f"Failed to migrate config {from_version} -> {to_version}: {reason}",
            context={"from_version": from_version, "to_version": to_version, "reason": reason},
        )


class SettingsIOError(SettingsError):
    """Ошибка чтения или записи config.json."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(
            f"I/O error with settings file '{path}': {reason}",
            context={"path": str(path), "reason": reason},
        )
