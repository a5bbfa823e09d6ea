"""Тесты DockerBackend и шины событий."""

from __future__ import annotations

from typing import Any, Dict, Iterator, List

import pytest

from src.connections.models import Connection
from src.docker_api.backend import DockerBackend
from src.docker_api.client import DockerClientWrapper
from src.docker_api.events import PULL_PROGRESS_CHANNEL, ChannelEvent, EventBus, EventKind, logs_channel
from src.docker_api.exceptions import BackendRejected
from src.docker_api.gateway import COMMANDS, CommandGateway


class FakeContainer:
    def __init__(self, chunks: List[bytes]) -> None:
        self.chunks = chunks
        self.logs_kwargs: Dict[str, Any] = {}
        self.paused = False

    def logs(self, **kwargs: Any) -> Iterator[bytes]:
        self.logs_kwargs = kwargs
        return iter(self.chunks)

    def pause(self) -> None:
        self.paused = True


class FakeRawClient:
    def __init__(self) -> None:
        self.container = FakeContainer([b"hello\nworld\n"])
        self.pull_chunks: List[Dict[str, Any]] = []
        outer = self

        class Containers:
            def get(self, name: str) -> FakeContainer:
                return outer.container

        class API:
            def pull(self, name: str, stream: bool, decode: bool) -> Iterator[Dict[str, Any]]:
                return iter(outer.pull_chunks)

        self.containers = Containers()
        self.api = API()


@pytest.fixture
def raw() -> FakeRawClient:
    return FakeRawClient()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def backend(raw: FakeRawClient, bus: EventBus) -> DockerBackend:
    connection = Connection(identifier="local", name="Local", socket="unix:///var/run/docker.sock")
    return DockerBackend(DockerClientWrapper(connection, raw_client=raw), bus, log_tail=50)


def test_backend_covers_every_gateway_command(backend: DockerBackend) -> None:
    assert backend.commands == frozenset(COMMANDS)


@pytest.mark.asyncio
async def test_unknown_command(backend: DockerBackend) -> None:
    with pytest.raises(ValueError):
        await backend.invoke("restart_container", {})


@pytest.mark.asyncio
async def test_container_action_runs_in_worker(backend: DockerBackend, raw: FakeRawClient) -> None:
    await backend.invoke("pause_container", {"container_name": "web"})
    assert raw.container.paused


@pytest.mark.asyncio
async def test_pull_publishes_progress_then_complete(
    backend: DockerBackend, bus: EventBus, raw: FakeRawClient
) -> None:
    """События данных приходят до завершающего complete."""

    raw.pull_chunks = [
        {"id": "L1", "status": "Downloading", "progressDetail": {"current": 1, "total": 2}},
        {"id": "L1", "status": "Download complete"},
    ]
    received: List[ChannelEvent] = []
    await bus.listen(PULL_PROGRESS_CHANNEL, received.append)

    await backend.invoke("pull_image", {"image_name": "demo"})

    assert [event.kind for event in received] == [EventKind.DATA, EventKind.DATA, EventKind.COMPLETE]
    assert received[0].payload["progress_detail"] == {"current": 1, "total": 2}


@pytest.mark.asyncio
async def test_pull_error_publishes_error_event(
    backend: DockerBackend, bus: EventBus, raw: FakeRawClient
) -> None:
    """Ошибка загрузки завершает канал событием error и отказом команды."""

    raw.pull_chunks = [{"error": "pull access denied"}]
    received: List[ChannelEvent] = []
    await bus.listen(PULL_PROGRESS_CHANNEL, received.append)

    with pytest.raises(BackendRejected):
        await CommandGateway(backend).pull_image("private/demo")
    assert received[-1].kind is EventKind.ERROR
    assert "pull access denied" in received[-1].payload


@pytest.mark.asyncio
async def test_emit_logs_uses_container_channel(
    backend: DockerBackend, bus: EventBus, raw: FakeRawClient
) -> None:
    lines: List[Any] = []
    await bus.listen(logs_channel("web"), lambda event: lines.append(event.payload))

    await backend.invoke("emit_logs", {"container_name": "web"})

    assert lines == ["hello", "world", None]
    assert raw.container.logs_kwargs["tail"] == 50
    assert raw.container.logs_kwargs["follow"] is False


@pytest.mark.asyncio
async def test_event_bus_unlisten_and_close(bus: EventBus) -> None:
    """После отписки обработчик не вызывается; закрытая шина не принимает подписки."""

    received: List[ChannelEvent] = []
    unlisten = await bus.listen("demo", received.append)
    bus.publish("demo", ChannelEvent.data(1))
    unlisten()
    unlisten()
    bus.publish("demo", ChannelEvent.data(2))
    assert [event.payload for event in received] == [1]
    assert bus.listener_count("demo") == 0

    bus.close()
    with pytest.raises(ConnectionError):
        await bus.listen("demo", received.append)
