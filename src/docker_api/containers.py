"""Функции для работы с контейнерами через Docker client.

Функции синхронные и вызываются бэкендом в рабочих потоках. Они возвращают
словари в формате канала команд; приведение к моделям выполняет шлюз.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from src.docker_api.client import DockerClientWrapper


def list_containers(client: DockerClientWrapper) -> List[Dict[str, Any]]:
    """Возвращает список всех контейнеров (name, status, state, ports)."""

    raw = client.get_raw_client()
    containers = []
    # sparse=True не делает отдельный inspect для каждого контейнера
    for container in raw.containers.list(all=True, sparse=True):
        attrs = getattr(container, "attrs", {}) or {}
        containers.append(
            {
                "name": _primary_name(attrs.get("Names")),
                "status": attrs.get("Status") or "",
                "state": attrs.get("State"),
                "ports": _format_ports(attrs.get("Ports")),
            }
        )
    return containers


def create_container(
    client: DockerClientWrapper,
    image: str,
    port_mapping: Optional[str] = None,
) -> None:
    """Создаёт контейнер из образа и сразу запускает его.

    port_mapping задаётся в виде ``host:container`` (уже проверенном вызывающим).
    """

    raw = client.get_raw_client()
    ports = None
    if port_mapping:
        host_port, container_port = port_mapping.split(":", 1)
        ports = {f"{container_port}/tcp": ("0.0.0.0", int(host_port))}
    container = raw.containers.create(image, ports=ports)
    container.start()


def start_container(client: DockerClientWrapper, container_name: str) -> None:
    """Запускает контейнер."""

    client.get_raw_client().containers.get(container_name).start()


def stop_container(client: DockerClientWrapper, container_name: str, timeout: int = 10) -> None:
    """Останавливает контейнер."""

    client.get_raw_client().containers.get(container_name).stop(timeout=timeout)


def pause_container(client: DockerClientWrapper, container_name: str) -> None:
    """Ставит контейнер на паузу."""

    client.get_raw_client().containers.get(container_name).pause()


def unpause_container(client: DockerClientWrapper, container_name: str) -> None:
    """Снимает контейнер с паузы."""

    client.get_raw_client().containers.get(container_name).unpause()


def kill_container(client: DockerClientWrapper, container_name: str) -> None:
    """Принудительно завершает контейнер сигналом SIGKILL."""

    client.get_raw_client().containers.get(container_name).kill(signal="SIGKILL")


def delete_container(client: DockerClientWrapper, container_name: str) -> None:
    """Удаляет контейнер вместе с анонимными томами."""

    client.get_raw_client().containers.get(container_name).remove(force=True, v=True)


def stream_logs(
    client: DockerClientWrapper,
    container_name: str,
    on_line: Callable[[str], None],
    *,
    tail: str | int = "all",
    follow: bool = False,
) -> int:
    """Передаёт строки логов контейнера в on_line и возвращает их количество."""

    raw = client.get_raw_client()
    container = raw.containers.get(container_name)
    count = 0
    pending = ""
    for chunk in container.logs(stream=True, follow=follow, tail=tail, stdout=True, stderr=True):
        text = chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else str(chunk)
        pending += text
        *lines, pending = pending.split("\n")
        for line in lines:
            on_line(line.rstrip("\r"))
            count += 1
    if pending:
        on_line(pending.rstrip("\r"))
        count += 1
    return count


def _primary_name(names: Any) -> Optional[str]:
    if not names:
        return None
    return str(names[0]).lstrip("/")


def _format_ports(ports: Any) -> List[str]:
    result = []
    for port in ports or []:
        private = port.get("PrivatePort")
        proto = port.get("Type", "tcp")
        public = port.get("PublicPort")
        if public is None:
            result.append(f"{private}/{proto}")
            continue
        result.append(f"{port.get('IP', '0.0.0.0')}:{public}->{private}/{proto}")
    return result
