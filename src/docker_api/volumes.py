"""Функции для работы с томами Docker."""

from __future__ import annotations

from typing import Any, Dict, List

from src.docker_api.client import DockerClientWrapper


def list_volumes(client: DockerClientWrapper) -> List[Dict[str, Any]]:
    """Возвращает список томов со всеми метаданными."""

    raw = client.get_raw_client()
    volumes = []
    for volume in raw.volumes.list():
        attrs = getattr(volume, "attrs", {}) or {}
        volumes.append(
            {
                "name": volume.name,
                "driver": attrs.get("Driver") or "local",
                "mountpoint": attrs.get("Mountpoint"),
                "scope": attrs.get("Scope"),
                "labels": attrs.get("Labels"),
                "status": attrs.get("Status"),
            }
        )
    return volumes


def create_volume(client: DockerClientWrapper, volume_name: str) -> None:
    """Создаёт именованный том."""

    client.get_raw_client().volumes.create(name=volume_name)


def remove_volume(client: DockerClientWrapper, volume_name: str, force: bool = False) -> None:
    """Удаляет том."""

    client.get_raw_client().volumes.get(volume_name).remove(force=force)
