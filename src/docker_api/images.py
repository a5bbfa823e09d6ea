"""Функции для работы с образами Docker."""

from __future__ import annotations

from typing import Any, Callable, Dict, List

from src.docker_api.client import DockerClientWrapper
from src.docker_api.exceptions import BackendRejected


def list_images(client: DockerClientWrapper) -> List[Dict[str, Any]]:
    """Возвращает список образов (repo_tag, size)."""

    raw = client.get_raw_client()
    images = []
    for image in raw.images.list():
        attrs = getattr(image, "attrs", {}) or {}
        tags = getattr(image, "tags", None) or []
        # у образа без тега ключом служит короткий идентификатор
        repo_tag = tags[0] if tags else getattr(image, "short_id", image.id)
        images.append({"repo_tag": repo_tag, "size": attrs.get("Size", 0) or 0})
    return images


def pull_image(
    client: DockerClientWrapper,
    image_name: str,
    on_progress: Callable[[Dict[str, Any]], None],
) -> None:
    """Загружает образ, передавая каждый отчёт о прогрессе в on_progress."""

    raw = client.get_raw_client()
    for chunk in raw.api.pull(image_name, stream=True, decode=True):
        # ошибки реестра приходят внутри потока, а не кодом HTTP
        if "error" in chunk:
            raise BackendRejected(f"Failed to pull image '{image_name}': {chunk['error']}")
        on_progress(
            {
                "id": chunk.get("id"),
                "status": chunk.get("status", ""),
                "progress_detail": chunk.get("progressDetail") or None,
            }
        )


def remove_image(client: DockerClientWrapper, image: str, force: bool = True) -> None:
    """Удаляет образ."""

    client.get_raw_client().images.remove(image, force=force)
