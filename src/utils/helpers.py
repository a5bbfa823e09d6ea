"""Различные вспомогательные функции."""

from __future__ import annotations

_SOCKET_SCHEMES = ("unix://", "tcp://", "npipe://", "http://", "https://", "ssh://")
_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def normalize_socket_path(raw_value: str) -> str:
    """Добавляет префикс unix:// к абсолютному пути сокета."""

    value = raw_value.strip()
    if not value or value.lower().startswith(_SOCKET_SCHEMES):
        return value
    if value.startswith("/"):
        return f"unix://{value}"
    return value


def format_bytes(value: float) -> str:
    """Размер в байтах в удобочитаемом виде: 1536 -> '1.5 KB'."""

    size = float(value)
    index = 0
    while size >= 1024 and index < len(_SIZE_UNITS) - 1:
        size /= 1024.0
        index += 1
    return f"{size:.1f} {_SIZE_UNITS[index]}"
