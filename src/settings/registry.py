"""Реестр настроек консоли (Singleton), хранимый в config.json."""

from __future__ import annotations

import copy
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from src.settings.exceptions import SettingsIOError, SettingsNotFoundError, SettingsValidationError
from src.settings.groups import (
    ConnectionSettings,
    LoggingSettings,
    OperationsSettings,
    PollingSettings,
    SettingsGroup,
)
from src.settings.migration import SettingsMigration
from src.settings.observers import SettingsObserver
from src.settings.schemas import CONFIG_VERSION, DEFAULT_CONFIG
from src.utils.paths import config_dir

LOGGER = logging.getLogger(__name__)

# файлы без поля version записаны до появления групп polling/operations
LEGACY_VERSION = "1.0.0"

_MISSING = object()


class SettingsRegistry:
    """Singleton-реестр всех групп настроек.

    Изменения через ``set_value`` и ``load_from_disk`` рассылаются
    наблюдателям (опросчики перезапускаются с новым интервалом, уровень
    логирования применяется сразу).
    """

    _instance: Optional["SettingsRegistry"] = None

    def __new__(cls, config_path: Optional[Path] = None) -> "SettingsRegistry":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[Path] = None) -> None:
        if getattr(self, "_initialized", False):
            if config_path is not None:
                self._file_path = config_path
            return

        self._file_path = config_path or config_dir() / "config.json"
        self._settings: Dict[str, SettingsGroup] = {
            group.group_name: group
            for group in (
                LoggingSettings(),
                ConnectionSettings(),
                PollingSettings(),
                OperationsSettings(),
            )
        }
        self._observers: List[SettingsObserver] = []
        self._metadata: Dict[str, Any] = {}
        self._dirty = False
        self._extract_metadata(DEFAULT_CONFIG)
        self._initialized = True

    @classmethod
    def reset_instance(cls) -> None:
        """Сбрасывает singleton (используется тестами и при смене каталога)."""

        cls._instance = None

    @property
    def config_path(self) -> Path:
        return self._file_path

    @property
    def dirty(self) -> bool:
        return self._dirty

    @property
    def groups(self) -> Tuple[str, ...]:
        return tuple(self._settings)

    # --------------------------------------------------------------------- API
    def get_value(self, group: str, key: str, default: Any = _MISSING) -> Any:
        """Значение настройки; default возвращается вместо SettingsNotFoundError."""

        try:
            return self._require_group(group).get(key)
        except SettingsNotFoundError:
            if default is _MISSING:
                raise
            return default

    def set_value(self, group: str, key: str, value: Any) -> None:
        old_value = self._require_group(group).set(key, value)
        self._dirty = True
        if old_value != value:
            self.notify_observers(group, key, old_value, value)

    def get_group(self, group: str) -> SettingsGroup:
        return self._require_group(group)

    def register_observer(self, observer: SettingsObserver) -> None:
        if observer not in self._observers:
            self._observers.append(observer)

    def unregister_observer(self, observer: SettingsObserver) -> None:
        if observer in self._observers:
            self._observers.remove(observer)

    def notify_observers(self, group: str, key: str, old_value: Any, new_value: Any) -> None:
        for observer in list(self._observers):
            try:
                observer.on_setting_changed(group, key, old_value, new_value)
            except Exception as exc:
                LOGGER.error("Observer %s failed: %s", observer, exc, exc_info=True)

    def save_to_disk(self, path: Optional[Path] = None) -> None:
        target = path or self._file_path
        payload = dict(self._metadata)
        for name, group in self._settings.items():
            payload[name] = group.to_dict()
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise SettingsIOError(target, str(exc)) from exc
        self._dirty = False

    def load_from_disk(self, path: Optional[Path] = None) -> None:
        """Читает файл, применяет миграции и валидирует значения.

        Отсутствующий файл создаётся со значениями по умолчанию. После миграции
        файл перезаписывается в актуальной версии.
        """

        target = path or self._file_path
        if not target.exists():
            LOGGER.info("Config file %s not found, writing defaults", target)
            self.save_to_disk(target)
            return
        try:
            content = json.loads(target.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise SettingsIOError(target, str(exc)) from exc
        if not isinstance(content, dict):
            raise SettingsIOError(target, "top-level JSON value must be an object")

        version = self._parse_version(str(content.get("version", LEGACY_VERSION)))
        migrated = version < self._parse_version(CONFIG_VERSION)
        if migrated:
            content = SettingsMigration.apply_migrations(content, version, config_path=target)
        merged = self._merge_with_defaults(content)
        merged["version"] = CONFIG_VERSION
        self._extract_metadata(merged)

        changes: List[Tuple[str, str, Any, Any]] = []
        for name, group in self._settings.items():
            group_data = merged.get(name, {})
            if isinstance(group_data, dict):
                changes.extend((name, *change) for change in group.update(group_data))
        self.validate()
        self._dirty = False
        if migrated:
            self.save_to_disk(target)
        for change in changes:
            self.notify_observers(*change)

    def validate(self) -> bool:
        for name, group in self._settings.items():
            for key in group.keys():
                value = group.get(key)
                is_valid, error = group.validate(key, value)
                if not is_valid:
                    raise SettingsValidationError(key=f"{name}.{key}", value=value, reason=error)
        return True

    def reset_to_defaults(self) -> None:
        for group in self._settings.values():
            group.reset_to_defaults()
        self._dirty = True

    def export_to_json(self, path: Path) -> None:
        self.save_to_disk(path)

    def import_from_json(self, path: Path) -> None:
        self.load_from_disk(path)
        self.save_to_disk(self._file_path)

    # ----------------------------------------------------------------- helpers
    def _require_group(self, group: str) -> SettingsGroup:
        try:
            return self._settings[group]
        except KeyError:
            raise SettingsNotFoundError(group, None) from None

    @staticmethod
    def _merge_with_defaults(incoming: Dict[str, Any]) -> Dict[str, Any]:
        base = copy.deepcopy(DEFAULT_CONFIG)
        for key, value in incoming.items():
            if isinstance(value, dict) and isinstance(base.get(key), dict):
                base[key].update(value)
            else:
                base[key] = value
        return base

    def _extract_metadata(self, data: Dict[str, Any]) -> None:
        self._metadata = {key: value for key, value in data.items() if key not in self._settings}

    @staticmethod
    def _parse_version(version: str) -> Tuple[int, int, int]:
        parts = (version.split(".") + ["0", "0", "0"])[:3]
        try:
            major, minor, patch = (int(part) for part in parts)
        except ValueError:
            LOGGER.warning("Unparseable config version %r, treating as %s", version, LEGACY_VERSION)
            return SettingsRegistry._parse_version(LEGACY_VERSION)
        return major, minor, patch
