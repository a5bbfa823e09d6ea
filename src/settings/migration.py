"""Миграции config.json между версиями."""

from __future__ import annotations

import logging
import shutil
from collections import OrderedDict
from pathlib import Path
from typing import Any, Callable, Dict, Tuple

from src.settings.exceptions import SettingsMigrationError

LOGGER = logging.getLogger(__name__)

MigrationFunc = Callable[[Dict[str, Any]], Dict[str, Any]]
VersionTuple = Tuple[int, int, int]


class SettingsMigration:
    """Реестр миграций; перед применением делает резервную копию файла."""

    _migrations: "OrderedDict[VersionTuple, MigrationFunc]" = OrderedDict()

    @classmethod
    def register_migration(cls, to_version: VersionTuple, func: MigrationFunc) -> None:
        cls._migrations[to_version] = func

    @classmethod
    def apply_migrations(
        cls,
        config: Dict[str, Any],
        current_version: VersionTuple,
        *,
        config_path: Path,
    ) -> Dict[str, Any]:
        """Применяет по порядку все миграции новее current_version.

        При ошибке файл восстанавливается из ``.bak`` и поднимается
        ``SettingsMigrationError``.
        """

        backup_path = cls._create_backup(config_path)
        for target_version in sorted(cls._migrations):
            if target_version <= current_version:
                continue
            try:
                config = cls._migrations[target_version](config)
            except Exception as exc:
                LOGGER.error("Migration to %s failed: %s", target_version, exc)
                cls._restore_backup(config_path, backup_path)
                raise SettingsMigrationError(
                    from_version=".".join(map(str, current_version)),
                    to_version=".".join(map(str, target_version)),
                    reason=str(exc),
                ) from exc
            LOGGER.info("Migration to %s applied", ".".join(map(str, target_version)))
        return config

    @staticmethod
    def _create_backup(config_path: Path) -> Path:
        backup_path = config_path.with_suffix(".bak")
        if config_path.exists():
            shutil.copy2(config_path, backup_path)
        return backup_path

    @staticmethod
    def _restore_backup(config_path: Path, backup_path: Path) -> None:
        if backup_path.exists():
            shutil.copy2(backup_path, config_path)


def migrate_to_1_1_0(config: Dict[str, Any]) -> Dict[str, Any]:
    """Переносит интервал опроса из устаревшей группы connections в polling."""

    legacy = config.pop("connections", None)
    if isinstance(legacy, dict):
        polling = config.setdefault("polling", {})
        if "refresh_rate_ms" in legacy:
            polling["containers_interval_ms"] = legacy["refresh_rate_ms"]
        if "auto_refresh_enabled" in legacy:
            polling["enabled"] = legacy["auto_refresh_enabled"]
        if "connection_timeout_sec" in legacy:
            config.setdefault("connection", {})["timeout_sec"] = legacy["connection_timeout_sec"]
    config["version"] = "1.1.0"
    config["schema_version"] = 2
    return config


SettingsMigration.register_migration((1, 1, 0), migrate_to_1_1_0)
