"""Свёртка отчётов о ходе загрузки образа в проценты по слоям."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from src.docker_api.events import ChannelEvent, EventKind
from src.docker_api.models import ProgressEvent

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProgressState:
    """Неизменяемое состояние загрузки: проценты и последние статусы по слоям."""

    percentages: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    statuses: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    last_status: str = ""

    def percentage(self, layer_id: str) -> Optional[float]:
        return self.percentages.get(layer_id)

    @property
    def overall(self) -> float:
        """Среднее по всем слоям с известным прогрессом."""

        if not self.percentages:
            return 0.0
        return sum(self.percentages.values()) / len(self.percentages)


def apply(state: ProgressState, event: ProgressEvent) -> ProgressState:
    """Чистая функция: возвращает новое состояние после события."""

    statuses = state.statuses
    if event.id is not None and event.status:
        statuses = MappingProxyType({**state.statuses, event.id: event.status})
    updated = replace(state, statuses=statuses, last_status=event.status or state.last_status)

    if event.id is None or event.current is None or event.total is None or event.total <= 0:
        return updated
    percent = min(100.0, max(0.0, 100.0 * event.current / event.total))
    return replace(
        updated,
        percentages=MappingProxyType({**state.percentages, event.id: percent}),
    )


class ProgressAggregator:
    """Держит состояние одной операции загрузки; на каждую операцию свой агрегатор."""

    def __init__(
        self,
        operation: str,
        on_change: Optional[Callable[[ProgressState], None]] = None,
    ) -> None:
        self.operation = operation
        self._state = ProgressState()
        self._on_change = on_change
        self.events_applied = 0

    @property
    def state(self) -> ProgressState:
        return self._state

    def feed(self, event: ProgressEvent) -> ProgressState:
        self._state = apply(self._state, event)
        self.events_applied += 1
        if self._on_change is not None:
            self._on_change(self._state)
        return self._state

    def feed_payload(self, payload: Any) -> Optional[ProgressState]:
        """Разбирает «сырой» отчёт канала; некорректные отчёты пропускаются."""

        if not isinstance(payload, Mapping):
            LOGGER.warning("Skipping progress payload of type %s", type(payload).__name__)
            return None
        try:
            event = ProgressEvent.from_dict(payload)
        except (TypeError, ValueError) as exc:
            LOGGER.warning("Skipping malformed progress payload for %s: %s", self.operation, exc)
            return None
        return self.feed(event)

    def handle(self, event: ChannelEvent) -> None:
        """Обработчик для EventSubscriber."""

        if event.kind is EventKind.DATA:
            self.feed_payload(event.payload)
