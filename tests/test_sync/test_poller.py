"""Тесты ResourcePoller: упорядочивание ответов, остановка, пропуск тиков."""

from __future__ import annotations

import asyncio
from typing import Any, List, Mapping, Optional

import pytest

from src.docker_api.exceptions import CommandFailure, TransportFailure
from src.docker_api.models import ContainerState, ContainerSummary
from src.sync.poller import PollerState, ResourcePoller, ResourceSnapshot


class ControlledGateway:
    """Шлюз, ответы которого тест выдаёт вручную в нужном порядке."""

    def __init__(self) -> None:
        self.pending: List["asyncio.Future[Any]"] = []
        self.calls = 0

    async def execute(self, command: str, parameters: Optional[Mapping[str, Any]] = None) -> Any:
        self.calls += 1
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    def resolve(self, index: int, items: List[Any]) -> None:
        self.pending[index].set_result(items)

    def fail(self, index: int, failure: CommandFailure) -> None:
        self.pending[index].set_exception(failure)

    def resolve_all(self, items: List[Any]) -> None:
        for future in self.pending:
            if not future.done():
                future.set_result(items)


async def settle() -> None:
    """Даёт циклу событий запустить все запланированные задачи."""

    for _ in range(5):
        await asyncio.sleep(0)


def container(name: str, state: str = "running") -> ContainerSummary:
    return ContainerSummary(name=name, status=state, state=ContainerState.parse(state))


@pytest.fixture
def gateway() -> ControlledGateway:
    return ControlledGateway()


@pytest.fixture
def poller(gateway: ControlledGateway) -> ResourcePoller:
    return ResourcePoller("containers", gateway, "list_containers")  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_older_fetch_delivered_late_is_discarded(
    poller: ResourcePoller, gateway: ControlledGateway
) -> None:
    """Ответ на более ранний запрос, пришедший после более позднего, отбрасывается."""

    first = asyncio.ensure_future(poller.refresh_now())
    second = asyncio.ensure_future(poller.refresh_now())
    await settle()
    assert gateway.calls == 2

    gateway.resolve(1, [container("new")])
    newer = await second
    gateway.resolve(0, [container("old")])
    older = await first

    assert newer is not None and newer.sequence == 2
    assert older is None
    assert poller.snapshot is newer
    assert "new" in poller.snapshot and "old" not in poller.snapshot


@pytest.mark.asyncio
async def test_failure_of_older_fetch_after_newer_applied_is_ignored(gateway: ControlledGateway) -> None:
    """Ошибка устаревшего запроса не сообщается, если уже применён более новый снимок."""

    reported: List[CommandFailure] = []
    poller = ResourcePoller("containers", gateway, "list_containers", error_sink=reported.append)  # type: ignore[arg-type]
    first = asyncio.ensure_future(poller.refresh_now())
    second = asyncio.ensure_future(poller.refresh_now())
    await settle()

    gateway.resolve(1, [container("new")])
    newer = await second
    gateway.fail(0, TransportFailure("old", command="list_containers"))
    assert await first is None

    assert reported == []
    assert poller.last_error is None
    assert poller.snapshot is newer


@pytest.mark.asyncio
async def test_stop_right_after_start_issues_at_most_one_fetch(
    poller: ResourcePoller, gateway: ControlledGateway
) -> None:
    """Остановленный сразу после старта опросчик выдаёт не больше одного запроса."""

    poller.start(10)
    poller.stop()
    await asyncio.sleep(0.1)

    assert poller.fetches_issued == 1
    assert gateway.calls <= 1
    assert poller.state is PollerState.STOPPED

    gateway.resolve_all([container("web")])
    await poller.wait_idle()
    assert poller.snapshot is None


@pytest.mark.asyncio
async def test_tick_is_skipped_while_fetch_in_flight(
    poller: ResourcePoller, gateway: ControlledGateway
) -> None:
    poller.start(10)
    await asyncio.sleep(0.1)

    assert poller.fetches_issued == 1
    assert poller.ticks_skipped >= 1

    poller.stop()
    gateway.resolve_all([])
    await poller.wait_idle()


@pytest.mark.asyncio
async def test_timer_issues_new_fetch_after_previous_completes(
    poller: ResourcePoller, gateway: ControlledGateway
) -> None:
    snapshots: List[ResourceSnapshot] = []
    poller.add_listener(snapshots.append)
    poller.start(20)
    await settle()
    gateway.resolve(0, [container("web")])
    await asyncio.sleep(0.1)

    assert poller.fetches_issued >= 2
    assert snapshots[0].get("web") == container("web")

    poller.stop()
    gateway.resolve_all([])
    await poller.wait_idle()


@pytest.mark.asyncio
async def test_failure_is_reported_and_polling_continues(gateway: ControlledGateway) -> None:
    """Сбой тика уходит в error sink, но опрос не прекращается."""

    failures: List[CommandFailure] = []
    poller = ResourcePoller(
        "containers", gateway, "list_containers", error_sink=failures.append  # type: ignore[arg-type]
    )
    poller.start(20)
    await settle()
    gateway.fail(0, TransportFailure("daemon unreachable"))
    await asyncio.sleep(0.1)

    assert len(failures) == 1
    assert poller.last_error is failures[0]
    assert poller.fetches_issued >= 2
    assert poller.state is PollerState.RUNNING

    poller.stop()
    gateway.resolve_all([])
    await poller.wait_idle()


@pytest.mark.asyncio
async def test_failure_of_stopped_run_is_not_reported(gateway: ControlledGateway) -> None:
    failures: List[CommandFailure] = []
    poller = ResourcePoller(
        "containers", gateway, "list_containers", error_sink=failures.append  # type: ignore[arg-type]
    )
    poller.start(1000)
    await settle()
    poller.stop()
    gateway.fail(0, TransportFailure("late"))
    await poller.wait_idle()
    assert failures == []


@pytest.mark.asyncio
async def test_refresh_now_works_when_stopped(
    poller: ResourcePoller, gateway: ControlledGateway
) -> None:
    task = asyncio.ensure_future(poller.refresh_now())
    await settle()
    gateway.resolve(0, [container("a"), container("b", "paused")])
    snapshot = await task
    assert snapshot is not None
    assert len(snapshot) == 2
    assert snapshot.get("b").state is ContainerState.PAUSED


def test_start_rejects_non_positive_interval(poller: ResourcePoller) -> None:
    with pytest.raises(ValueError):
        poller.start(0)


@pytest.mark.asyncio
async def test_interval_setting_restarts_running_poller(gateway: ControlledGateway) -> None:
    poller = ResourcePoller(
        "containers",
        gateway,  # type: ignore[arg-type]
        "list_containers",
        interval_setting=("polling", "containers_interval_ms"),
    )
    poller.on_setting_changed("polling", "containers_interval_ms", 5000, 1000)
    assert poller.interval_ms is None

    poller.start(5000)
    poller.on_setting_changed("polling", "images_interval_ms", 5000, 1000)
    assert poller.interval_ms == 5000
    poller.on_setting_changed("polling", "containers_interval_ms", 5000, 1000)
    assert poller.interval_ms == 1000
    assert poller.state is PollerState.RUNNING

    poller.stop()
    await settle()
    gateway.resolve_all([])
    await poller.wait_idle()


def test_snapshot_keeps_first_of_duplicate_keys() -> None:
    """Ключи None не индексируются, из дубликатов остаётся первый."""

    first = container("web")
    duplicate = container("web", "exited")
    unnamed = ContainerSummary(name=None)
    snapshot = ResourceSnapshot.build("containers", [first, duplicate, unnamed], 1)
    assert len(snapshot) == 3
    assert snapshot.get("web") is first
    assert list(snapshot.index) == ["web"]
