"""Наблюдатели за изменениями настроек."""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from src.utils.logger import resolve_log_level

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class SettingsObserver(Protocol):
    """Контракт наблюдателя."""

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        """Обрабатывает изменение одного ключа."""


class LoggingSettingsObserver:
    """Пишет каждое изменение настроек в журнал."""

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        LOGGER.info("Setting changed: %s.%s (%r -> %r)", group, key, old_value, new_value)


class LogLevelObserver:
    """Применяет logging.level и logging.enabled без перезапуска."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger()

    def on_setting_changed(
        self,
        group: str,
        key: str,
        old_value: object,
        new_value: object,
    ) -> None:
        if group != "logging":
            return
        if key == "level" and isinstance(new_value, str):
            self._logger.setLevel(resolve_log_level(new_value))
        elif key == "enabled":
            logging.disable(logging.NOTSET if new_value else logging.CRITICAL)
