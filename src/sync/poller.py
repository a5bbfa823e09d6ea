"""Периодический опрос коллекции ресурсов Docker.

Опросчик работает по схеме ``Stopped → Running → Stopped``. Каждый запрос
получает порядковый номер (sequence) и номер поколения (generation):

* ``stop()``/``start()`` увеличивают поколение, и результаты запросов прошлого
  поколения отбрасываются при доставке;
* результат, чей номер меньше уже применённого, считается устаревшим и тоже
  отбрасывается: выигрывает самый поздно *выданный* запрос, будь то тик
  таймера или ручное обновление.

Тик таймера пропускается, если какой-либо запрос ещё выполняется.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Set, Tuple

from src.docker_api.exceptions import CommandFailure
from src.docker_api.gateway import CommandGateway

LOGGER = logging.getLogger(__name__)

SnapshotListener = Callable[["ResourceSnapshot"], None]
ErrorSink = Callable[[CommandFailure], None]


class PollerState(str, Enum):
    """Состояние опросчика."""

    STOPPED = "stopped"
    RUNNING = "running"


@dataclass(frozen=True)
class ResourceSnapshot:
    """Полный снимок коллекции, полученный одним запросом."""

    collection: str
    items: Tuple[Any, ...]
    sequence: int
    fetched_at: datetime
    index: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def build(cls, collection: str, items: List[Any], sequence: int) -> "ResourceSnapshot":
        index: Dict[str, Any] = {}
        for item in items:
            key = getattr(item, "key", None)
            if key is None:
                continue
            if key in index:
                LOGGER.warning("Duplicate %s key %r in snapshot #%s", collection, key, sequence)
                continue
            index[key] = item
        return cls(
            collection=collection,
            items=tuple(items),
            sequence=sequence,
            fetched_at=datetime.now(timezone.utc),
            index=MappingProxyType(index),
        )

    def get(self, key: str) -> Optional[Any]:
        return self.index.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.index

    def __iter__(self) -> Iterator[Any]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


class ResourcePoller:
    """Опрашивает одну коллекцию через CommandGateway."""

    def __init__(
        self,
        collection: str,
        gateway: CommandGateway,
        command: str,
        *,
        error_sink: Optional[ErrorSink] = None,
        interval_setting: Optional[Tuple[str, str]] = None,
    ) -> None:
        self.collection = collection
        self._gateway = gateway
        self._command = command
        self._error_sink = error_sink or self._log_failure
        self._interval_setting = interval_setting
        self._state = PollerState.STOPPED
        self._interval_ms: Optional[int] = None
        self._generation = 0
        self._sequence = 0
        self._applied_sequence = 0
        self._in_flight = 0
        self._timer: Optional[asyncio.Task[None]] = None
        self._tasks: Set[asyncio.Task[Optional[ResourceSnapshot]]] = set()
        self._snapshot: Optional[ResourceSnapshot] = None
        self._listeners: List[SnapshotListener] = []
        self.fetches_issued = 0
        self.ticks_skipped = 0
        self.last_error: Optional[CommandFailure] = None

    # -------------------------------------------------------------- properties
    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def snapshot(self) -> Optional[ResourceSnapshot]:
        return self._snapshot

    @property
    def interval_ms(self) -> Optional[int]:
        return self._interval_ms

    @property
    def in_flight(self) -> int:
        return self._in_flight

    # ------------------------------------------------------------------- API
    def start(self, interval_ms: int) -> None:
        """Сразу выдаёт запрос и далее повторяет его каждые interval_ms."""

        if interval_ms <= 0:
            raise ValueError(f"Polling interval must be positive, got {interval_ms}")
        if self._state is PollerState.RUNNING:
            self.stop()
        loop = asyncio.get_running_loop()
        self._generation += 1
        self._interval_ms = interval_ms
        self._state = PollerState.RUNNING
        LOGGER.info("Polling %s every %s ms", self.collection, interval_ms)
        self._issue_fetch()
        self._timer = loop.create_task(self._timer_loop(self._generation, interval_ms))

    def stop(self) -> None:
        """Останавливает таймер; результаты выполняющихся запросов будут отброшены."""

        if self._state is PollerState.STOPPED:
            return
        self._state = PollerState.STOPPED
        self._generation += 1
        timer, self._timer = self._timer, None
        if timer is not None:
            timer.cancel()
        LOGGER.info("Polling %s stopped", self.collection)

    async def refresh_now(self) -> Optional[ResourceSnapshot]:
        """Внеочередной запрос; возвращает применённый снимок или None."""

        task = self._issue_fetch()
        return await asyncio.shield(task)

    async def wait_idle(self) -> None:
        """Ждёт завершения всех выполняющихся запросов."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def add_listener(self, listener: SnapshotListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: SnapshotListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def on_setting_changed(self, group: str, key: str, old_value: object, new_value: object) -> None:
        """Перезапускает опрос с новым интервалом при изменении настройки."""

        if self._interval_setting != (group, key) or self._state is not PollerState.RUNNING:
            return
        if isinstance(new_value, int) and new_value != self._interval_ms:
            self.start(new_value)

    # --------------------------------------------------------------- helpers
    def _tick(self) -> None:
        if self._in_flight:
            self.ticks_skipped += 1
            LOGGER.debug("Skipping %s tick: %s fetch(es) in flight", self.collection, self._in_flight)
            return
        self._issue_fetch()

    async def _timer_loop(self, generation: int, interval_ms: int) -> None:
        while True:
            await asyncio.sleep(interval_ms / 1000)
            if generation != self._generation:
                return
            self._tick()

    def _issue_fetch(self) -> "asyncio.Task[Optional[ResourceSnapshot]]":
        self._sequence += 1
        self._in_flight += 1
        self.fetches_issued += 1
        task = asyncio.get_running_loop().create_task(
            self._fetch(self._sequence, self._generation)
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_fetch_done)
        return task

    def _on_fetch_done(self, task: "asyncio.Task[Optional[ResourceSnapshot]]") -> None:
        self._in_flight -= 1
        self._tasks.discard(task)

    async def _fetch(self, sequence: int, generation: int) -> Optional[ResourceSnapshot]:
        try:
            items = await self._gateway.execute(self._command)
        except CommandFailure as exc:
            if generation != self._generation or sequence < self._applied_sequence:
                LOGGER.debug("Ignoring failure of stale %s fetch #%s", self.collection, sequence)
                return None
            self.last_error = exc
            self._report(exc)
            return None
        return self._deliver(sequence, generation, items)

    def _deliver(self, sequence: int, generation: int, items: List[Any]) -> Optional[ResourceSnapshot]:
        if generation != self._generation:
            LOGGER.debug("Discarding %s fetch #%s from a stopped run", self.collection, sequence)
            return None
        if sequence < self._applied_sequence:
            LOGGER.debug(
                "Discarding out-of-order %s fetch #%s (applied #%s)",
                self.collection,
                sequence,
                self._applied_sequence,
            )
            return None
        snapshot = ResourceSnapshot.build(self.collection, items, sequence)
        self._snapshot = snapshot
        self._applied_sequence = sequence
        self.last_error = None
        self._notify(snapshot)
        return snapshot

    def _notify(self, snapshot: ResourceSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as exc:
                LOGGER.error("Snapshot listener %s failed: %s", listener, exc, exc_info=True)

    def _report(self, failure: CommandFailure) -> None:
        try:
            self._error_sink(failure)
        except Exception as exc:
            LOGGER.error("Error sink for %s failed: %s", self.collection, exc, exc_info=True)

    def _log_failure(self, failure: CommandFailure) -> None:
        LOGGER.warning("Polling %s failed, will retry on next tick: %s", self.collection, failure)
