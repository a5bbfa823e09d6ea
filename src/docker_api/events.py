"""Внутрипроцессный транспорт событий (publish/subscribe по именованным каналам)."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Protocol

LOGGER = logging.getLogger(__name__)

PULL_PROGRESS_CHANNEL = "pull-progress"


def logs_channel(container_name: str) -> str:
    """Имя канала, в который публикуются строки логов контейнера."""

    return f"container-logs/{container_name}"


class EventKind(str, Enum):
    """Вид события в канале."""

    DATA = "data"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class ChannelEvent:
    """Конверт события: вид и полезная нагрузка."""

    kind: EventKind
    payload: Any = None

    @property
    def is_terminal(self) -> bool:
        return self.kind is not EventKind.DATA

    @classmethod
    def data(cls, payload: Any) -> "ChannelEvent":
        return cls(EventKind.DATA, payload)

    @classmethod
    def complete(cls) -> "ChannelEvent":
        return cls(EventKind.COMPLETE)

    @classmethod
    def error(cls, message: str) -> "ChannelEvent":
        return cls(EventKind.ERROR, message)


EventHandler = Callable[[ChannelEvent], None]
Unlisten = Callable[[], None]


class EventTransport(Protocol):
    """Контракт транспорта событий, от которого зависит подписчик."""

    async def listen(self, channel: str, handler: EventHandler) -> Unlisten:
        """Открывает прослушивание канала и возвращает функцию отписки."""


class EventBus:
    """Простая реализация EventTransport поверх цикла asyncio.

    Обработчики вызываются только в потоке цикла событий; из рабочих потоков
    следует публиковать через ``publish_threadsafe``.
    """

    def __init__(self) -> None:
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def listen(self, channel: str, handler: EventHandler) -> Unlisten:
        if self._closed:
            raise ConnectionError("Event bus is closed")
        self._handlers.setdefault(channel, []).append(handler)
        LOGGER.debug("Listener attached to channel %s", channel)

        def unlisten() -> None:
            handlers = self._handlers.get(channel, [])
            if handler in handlers:
                handlers.remove(handler)
                LOGGER.debug("Listener detached from channel %s", channel)
            if not handlers:
                self._handlers.pop(channel, None)

        return unlisten

    def publish(self, channel: str, event: ChannelEvent) -> None:
        """Передаёт событие всем текущим слушателям канала по порядку."""

        for handler in list(self._handlers.get(channel, [])):
            try:
                handler(event)
            except Exception as exc:  # pragma: no cover - обработчики логируют сами
                LOGGER.error("Handler %s failed on %s: %s", handler, channel, exc, exc_info=True)

    def publish_threadsafe(
        self, loop: asyncio.AbstractEventLoop, channel: str, event: ChannelEvent
    ) -> None:
        """Планирует публикацию в цикле loop (для вызова из рабочих потоков)."""

        loop.call_soon_threadsafe(self.publish, channel, event)

    def listener_count(self, channel: str) -> int:
        return len(self._handlers.get(channel, []))

    def close(self) -> None:
        """Запрещает новые подписки и отбрасывает существующие."""

        self._closed = True
        self._handlers.clear()
