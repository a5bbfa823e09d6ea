"""Шаблон config.json, с которым сливается файл пользователя."""

from __future__ import annotations

from typing import Any, Dict

from src.settings.groups import DEFAULT_DOCKER_HOST

CONFIG_VERSION = "1.1.0"

DEFAULT_CONFIG: Dict[str, Any] = {
    "version": CONFIG_VERSION,
    "schema_version": 2,
    "logging": {
        "enabled": True,
        "level": "INFO",
        "max_file_size_mb": 10,
        "max_archived_files": 5,
    },
    "connection": {
        "name": "local",
        "docker_host": DEFAULT_DOCKER_HOST,
        "timeout_sec": 5,
    },
    "polling": {
        "enabled": True,
        "containers_interval_ms": 5000,
        "images_interval_ms": 10000,
        "networks_interval_ms": 10000,
        "volumes_interval_ms": 10000,
    },
    "operations": {
        "log_tail": "all",
        "follow_logs": False,
        "pull_stream_grace_sec": 5,
        "default_network_driver": "bridge",
    },
}
