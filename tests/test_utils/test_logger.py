"""Проверки подсистемы логирования."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from src.settings.registry import SettingsRegistry
from src.utils.logger import (
    LOG_FILE_NAME,
    configure_from_settings,
    configure_logging,
    resolve_log_level,
)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    logging.disable(logging.NOTSET)


def test_configure_logging_creates_file(tmp_path: Path) -> None:
    """После конфигурации должны появиться файлы логов и запись в них."""

    log_dir = tmp_path / "logs"
    configure_logging(log_dir, level_name="INFO", max_bytes=1024, backup_count=1)

    logging.getLogger("dockhand.test").info("log entry")
    for handler in logging.getLogger().handlers:
        handler.flush()

    log_file = log_dir / LOG_FILE_NAME
    assert log_file.exists()
    assert "log entry" in log_file.read_text(encoding="utf-8")


def test_noisy_loggers_are_capped(tmp_path: Path) -> None:
    configure_logging(tmp_path, level_name="DEBUG")
    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("urllib3").level == logging.INFO


def test_resolve_log_level_invalid() -> None:
    """Неизвестный уровень логирования приводит к ValueError."""

    with pytest.raises(ValueError):
        resolve_log_level("INVALID")
    assert resolve_log_level("warning") == logging.WARNING


def test_configure_from_settings(tmp_path: Path) -> None:
    SettingsRegistry.reset_instance()
    settings = SettingsRegistry(tmp_path / "config.json")
    settings.reset_to_defaults()
    settings.set_value("logging", "level", "WARNING")

    assert configure_from_settings(tmp_path / "logs", settings)
    assert logging.getLogger().level == logging.WARNING

    settings.set_value("logging", "enabled", False)
    assert not configure_from_settings(tmp_path / "logs", settings)
    assert logging.root.manager.disable == logging.CRITICAL
    SettingsRegistry.reset_instance()
