"""Тесты групп настроек и базового класса."""

from __future__ import annotations

import pytest

from src.settings.exceptions import SettingsNotFoundError, SettingsValidationError
from src.settings.groups import (
    ConnectionSettings,
    LoggingSettings,
    OperationsSettings,
    PollingSettings,
)


def test_logging_settings_ranges() -> None:
    settings = LoggingSettings()
    settings.set("max_file_size_mb", 100)
    with pytest.raises(SettingsValidationError):
        settings.set("max_archived_files", 0)


def test_connection_settings_docker_host() -> None:
    """Адрес демона должен содержать схему или быть абсолютным путём сокета."""

    settings = ConnectionSettings()
    settings.set("docker_host", "tcp://10.0.0.5:2375")
    settings.set("docker_host", "/var/run/docker.sock")
    with pytest.raises(SettingsValidationError):
        settings.set("docker_host", "localhost:2375")
    assert settings.get("docker_host") == "/var/run/docker.sock"


def test_polling_interval_defaults_and_bounds() -> None:
    settings = PollingSettings()
    assert settings.get("containers_interval_ms") == 5000
    settings.set("images_interval_ms", 2000)
    with pytest.raises(SettingsValidationError):
        settings.set("images_interval_ms", 100)
    with pytest.raises(SettingsValidationError):
        settings.set("networks_interval_ms", True)


@pytest.mark.parametrize("value", ["all", "0", "250"])
def test_operations_log_tail_accepts(value: str) -> None:
    settings = OperationsSettings()
    settings.set("log_tail", value)
    assert settings.get("log_tail") == value


@pytest.mark.parametrize("value", ["last", "-5", 100])
def test_operations_log_tail_rejects(value: object) -> None:
    with pytest.raises(SettingsValidationError):
        OperationsSettings().set("log_tail", value)


def test_operations_network_driver_enum() -> None:
    settings = OperationsSettings()
    settings.set("default_network_driver", "overlay")
    with pytest.raises(SettingsValidationError):
        settings.set("default_network_driver", "weave")


def test_update_returns_only_real_changes_and_skips_unknown_keys() -> None:
    """update применяет известные ключи и сообщает только о реальных изменениях."""

    settings = PollingSettings()
    changes = settings.update(
        {"enabled": True, "containers_interval_ms": 1000, "refresh_rate_ms": 3000}
    )
    assert changes == [("containers_interval_ms", 5000, 1000)]
    settings.reset_to_defaults()
    assert settings.get("containers_interval_ms") == 5000


def test_schema_lists_defaults() -> None:
    schema = ConnectionSettings().get_schema()
    assert schema["timeout_sec"] == {"type": "int", "default": 5}


def test_unknown_key_raises_not_found() -> None:
    settings = LoggingSettings()
    with pytest.raises(SettingsNotFoundError):
        settings.get("unknown")
    with pytest.raises(SettingsNotFoundError):
        settings.set("unknown", 1)
