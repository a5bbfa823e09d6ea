"""Общие фикстуры: реестр настроек во временном каталоге и бэкенд в памяти."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Tuple

import pytest

from src.settings.registry import SettingsRegistry


class MemoryBackend:
    """Бэкенд команд, отвечающий заранее заданными списками."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.lists: Dict[str, List[Dict[str, Any]]] = {
            "list_containers": [],
            "list_images": [],
            "list_networks": [],
            "list_volumes": [],
        }
        self.failures: Dict[str, Exception] = {}

    def command_calls(self, command: str) -> List[Dict[str, Any]]:
        return [params for name, params in self.calls if name == command]

    async def invoke(self, command: str, parameters: Mapping[str, Any]) -> Any:
        self.calls.append((command, dict(parameters)))
        if command in self.failures:
            raise self.failures[command]
        if command in self.lists:
            return list(self.lists[command])
        if command == "list_network_containers":
            return []
        return None


@pytest.fixture
def settings(tmp_path: Path) -> Iterator[SettingsRegistry]:
    SettingsRegistry.reset_instance()
    registry = SettingsRegistry(tmp_path / "config.json")
    registry.reset_to_defaults()
    yield registry
    SettingsRegistry.reset_instance()


@pytest.fixture
def memory_backend() -> MemoryBackend:
    return MemoryBackend()
