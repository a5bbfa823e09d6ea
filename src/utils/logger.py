"""Настройка логирования: файл с ротацией и вывод в stdout."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Final, cast

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_FILE_NAME: Final[str] = "dockhand.log"

# docker-py и urllib3 на DEBUG пишут каждый HTTP-запрос
NOISY_LOGGERS: Final[tuple[str, ...]] = ("docker", "urllib3")


def resolve_log_level(level_name: str) -> int:
    """Преобразует строковый уровень логирования в числовой."""

    level = getattr(logging, level_name.upper(), None)
    if not isinstance(level, int):
        raise ValueError(f"Unknown log level: {level_name}")
    return cast(int, level)


def configure_logging(
    log_dir: Path,
    *,
    log_file_name: str = LOG_FILE_NAME,
    level_name: str = "INFO",
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """Создаёт конфигурацию логирования с ротацией файлов и выводом в консоль."""

    log_dir.mkdir(parents=True, exist_ok=True)
    log_level = resolve_log_level(level_name)

    file_handler = RotatingFileHandler(
        log_dir / log_file_name,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    logging.basicConfig(
        level=log_level,
        handlers=[file_handler, stream_handler],
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.INFO))


def configure_from_settings(log_dir: Path, settings: Any) -> bool:
    """Применяет группу настроек logging; возвращает False, если логирование выключено."""

    group = settings.get_group("logging")
    if not group.get("enabled"):
        logging.disable(logging.CRITICAL)
        return False

    logging.disable(logging.NOTSET)
    configure_logging(
        log_dir,
        level_name=group.get("level"),
        max_bytes=group.get("max_file_size_mb") * 1024 * 1024,
        backup_count=group.get("max_archived_files"),
    )
    return True
