"""Шлюз команд: типизированная отправка запросов бэкенду.

Шлюз является единственным местом, где слабо типизированные ответы и ошибки бэкенда
превращаются в модели и в закрытую таксономию ``BackendRejected`` /
``TransportFailure``. Внутрь приложения не попадает ни один «сырой» ответ.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Tuple

from docker.errors import APIError
from requests.exceptions import RequestException

from src.docker_api.exceptions import BackendRejected, CommandFailure, TransportFailure
from src.docker_api.models import (
    ContainerSummary,
    ImageSummary,
    NetworkMembership,
    NetworkSummary,
    VolumeSummary,
)

LOGGER = logging.getLogger(__name__)


class CommandBackend(Protocol):
    """RPC-поверхность исполнителя команд."""

    async def invoke(self, command: str, parameters: Mapping[str, Any]) -> Any:
        """Выполняет команду и возвращает нетипизированный результат."""


def _parse_list(model: Any) -> Callable[[Any], List[Any]]:
    def parse(payload: Any) -> List[Any]:
        if not isinstance(payload, (list, tuple)):
            raise TypeError(f"Expected a sequence, got {type(payload).__name__}")
        return [model.from_dict(item) for item in payload]

    return parse


def _parse_none(payload: Any) -> None:
    return None


@dataclass(frozen=True, slots=True)
class CommandSpec:
    """Схема команды: обязательные и необязательные параметры и разбор ответа."""

    name: str
    required: Tuple[str, ...] = ()
    optional: Tuple[str, ...] = ()
    parse: Callable[[Any], Any] = _parse_none


_CONTAINER_ACTIONS = (
    "start_container",
    "stop_container",
    "pause_container",
    "unpause_container",
    "kill_container",
    "delete_container",
)

COMMANDS: Dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec("list_containers", parse=_parse_list(ContainerSummary)),
        CommandSpec("create_container", ("image",), ("port_mapping",)),
        *(CommandSpec(name, ("container_name",)) for name in _CONTAINER_ACTIONS),
        CommandSpec("emit_logs", ("container_name",)),
        CommandSpec("list_images", parse=_parse_list(ImageSummary)),
        CommandSpec("pull_image", ("image_name",)),
        CommandSpec("remove_image", ("image",)),
        CommandSpec("list_networks", parse=_parse_list(NetworkSummary)),
        CommandSpec("create_network", ("name", "driver")),
        CommandSpec("remove_network", ("network_id",)),
        CommandSpec("connect_container_to_network", ("container_id", "network_id")),
        CommandSpec("disconnect_container_to_network", ("container_id", "network_id")),
        CommandSpec(
            "list_network_containers", ("network_id",), parse=_parse_list(NetworkMembership)
        ),
        CommandSpec("list_volumes", parse=_parse_list(VolumeSummary)),
        CommandSpec("create_volume", ("volume_name",)),
        CommandSpec("remove_volume", ("volume_name",)),
    )
}

# формат ошибок исходного RPC-канала: {"DockerError": "..."} / {"UnexpectedError": "..."}
_ENVELOPE_KINDS: Dict[str, type[CommandFailure]] = {
    "DockerError": BackendRejected,
    "UnexpectedError": TransportFailure,
}


def classify_failure(exc: BaseException, command: Optional[str] = None) -> CommandFailure:
    """Относит исключение бэкенда к одному из двух видов отказа."""

    if isinstance(exc, CommandFailure):
        return exc
    if isinstance(exc, APIError):
        message = exc.explanation or str(exc)
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        return BackendRejected(str(message), command=command)
    if isinstance(exc, (RequestException, OSError, TimeoutError)):
        return TransportFailure(str(exc) or type(exc).__name__, command=command)
    return TransportFailure(f"{type(exc).__name__}: {exc}", command=command)


def parse_failure_envelope(payload: Any, command: Optional[str] = None) -> Optional[CommandFailure]:
    """Распознаёт ответ-ошибку в формате исходного канала, иначе None."""

    if not isinstance(payload, Mapping) or len(payload) != 1:
        return None
    ((kind, message),) = payload.items()
    failure_cls = _ENVELOPE_KINDS.get(kind)
    if failure_cls is None:
        return None
    return failure_cls(str(message), command=command)


class CommandGateway:
    """Отправляет команды бэкенду и возвращает типизированные результаты."""

    def __init__(self, backend: CommandBackend) -> None:
        self._backend = backend

    async def execute(self, command: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        """Выполняет команду; при отказе бросает BackendRejected или TransportFailure.

        Неизвестная команда или параметры, не подходящие под схему, считаются ошибкой
        вызывающего кода (ValueError), а не восстанавливаемым отказом.
        """

        spec = self._require_spec(command)
        params = self._check_parameters(spec, parameters or {})
        try:
            payload = await self._backend.invoke(command, params)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise classify_failure(exc, command) from exc

        envelope_failure = parse_failure_envelope(payload, command)
        if envelope_failure is not None:
            raise envelope_failure
        try:
            result = spec.parse(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise TransportFailure(f"Malformed response: {exc}", command=command) from exc
        LOGGER.debug("Command %s completed", command)
        return result

    # ------------------------------------------------------------ typed calls
    async def list_containers(self) -> List[ContainerSummary]:
        return await self.execute("list_containers")

    async def create_container(self, image: str, port_mapping: Optional[str] = None) -> None:
        params: Dict[str, Any] = {"image": image}
        if port_mapping:
            params["port_mapping"] = port_mapping
        await self.execute("create_container", params)

    async def start_container(self, container_name: str) -> None:
        await self.execute("start_container", {"container_name": container_name})

    async def stop_container(self, container_name: str) -> None:
        await self.execute("stop_container", {"container_name": container_name})

    async def pause_container(self, container_name: str) -> None:
        await self.execute("pause_container", {"container_name": container_name})

    async def unpause_container(self, container_name: str) -> None:
        await self.execute("unpause_container", {"container_name": container_name})

    async def kill_container(self, container_name: str) -> None:
        await self.execute("kill_container", {"container_name": container_name})

    async def delete_container(self, container_name: str) -> None:
        await self.execute("delete_container", {"container_name": container_name})

    async def emit_logs(self, container_name: str) -> None:
        await self.execute("emit_logs", {"container_name": container_name})

    async def list_images(self) -> List[ImageSummary]:
        return await self.execute("list_images")

    async def pull_image(self, image_name: str) -> None:
        await self.execute("pull_image", {"image_name": image_name})

    async def remove_image(self, image: str) -> None:
        await self.execute("remove_image", {"image": image})

    async def list_networks(self) -> List[NetworkSummary]:
        return await self.execute("list_networks")

    async def create_network(self, name: str, driver: str = "bridge") -> None:
        await self.execute("create_network", {"name": name, "driver": driver})

    async def remove_network(self, network_id: str) -> None:
        await self.execute("remove_network", {"network_id": network_id})

    async def connect_container_to_network(self, container_id: str, network_id: str) -> None:
        await self.execute(
            "connect_container_to_network",
            {"container_id": container_id, "network_id": network_id},
        )

    async def disconnect_container_to_network(self, container_id: str, network_id: str) -> None:
        await self.execute(
            "disconnect_container_to_network",
            {"container_id": container_id, "network_id": network_id},
        )

    async def list_network_containers(self, network_id: str) -> List[NetworkMembership]:
        return await self.execute("list_network_containers", {"network_id": network_id})

    async def list_volumes(self) -> List[VolumeSummary]:
        return await self.execute("list_volumes")

    async def create_volume(self, volume_name: str) -> None:
        await self.execute("create_volume", {"volume_name": volume_name})

    async def remove_volume(self, volume_name: str) -> None:
        await self.execute("remove_volume", {"volume_name": volume_name})

    # ---------------------------------------------------------------- helpers
    @staticmethod
    def _require_spec(command: str) -> CommandSpec:
        try:
            return COMMANDS[command]
        except KeyError:
            raise ValueError(f"Unknown command: {command}") from None

    @staticmethod
    def _check_parameters(spec: CommandSpec, parameters: Mapping[str, Any]) -> Dict[str, Any]:
        missing = [name for name in spec.required if name not in parameters]
        if missing:
            raise ValueError(f"Command {spec.name} is missing parameters: {missing}")
        allowed = set(spec.required) | set(spec.optional)
        extra = sorted(set(parameters) - allowed)
        if extra:
            raise ValueError(f"Command {spec.name} got unexpected parameters: {extra}")
        return dict(parameters)
