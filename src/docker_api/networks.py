"""Функции для работы с сетями Docker."""

from __future__ import annotations

from typing import Any, Dict, List

from src.docker_api.client import DockerClientWrapper


def list_networks(client: DockerClientWrapper) -> List[Dict[str, Any]]:
    """Возвращает список сетей; записи без обязательных полей пропускаются."""

    raw = client.get_raw_client()
    networks = []
    for network in raw.networks.list():
        attrs = getattr(network, "attrs", {}) or {}
        required = (attrs.get("Id"), attrs.get("Name"), attrs.get("Driver"), attrs.get("Scope"))
        if not all(required):
            continue
        networks.append(
            {
                "id": attrs["Id"],
                "name": attrs["Name"],
                "driver": attrs["Driver"],
                "scope": attrs["Scope"],
                "internal": attrs.get("Internal"),
                "enable_ipv6": attrs.get("EnableIPv6"),
                "labels": attrs.get("Labels"),
            }
        )
    return networks


def create_network(client: DockerClientWrapper, name: str, driver: str = "bridge") -> None:
    """Создаёт сеть с указанным драйвером."""

    client.get_raw_client().networks.create(name, driver=driver or "bridge")


def remove_network(client: DockerClientWrapper, network_id: str) -> None:
    """Удаляет сеть."""

    client.get_raw_client().networks.get(network_id).remove()


def connect_container(client: DockerClientWrapper, container_id: str, network_id: str) -> None:
    """Подключает контейнер к сети."""

    client.get_raw_client().networks.get(network_id).connect(container_id)


def disconnect_container(client: DockerClientWrapper, container_id: str, network_id: str) -> None:
    """Отключает контейнер от сети без принудительного разрыва."""

    client.get_raw_client().networks.get(network_id).disconnect(container_id, force=False)


def list_network_containers(client: DockerClientWrapper, network_id: str) -> List[Dict[str, Any]]:
    """Возвращает контейнеры, подключённые к сети."""

    raw = client.get_raw_client()
    attrs = raw.api.inspect_network(network_id)
    members = attrs.get("Containers") or {}
    return [
        {
            "id": container_id,
            "name": (details or {}).get("Name") or "Unnamed",
            "network_id": attrs.get("Id", network_id),
        }
        for container_id, details in members.items()
    ]
