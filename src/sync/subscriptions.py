"""Подписки на каналы событий с гарантированным однократным освобождением.

Каждая успешная подписка возвращает ``SubscriptionHandle``. Отписка от
транспорта происходит ровно один раз: по явному вызову ``close()``, по
терминальному событию канала (``complete``/``error``) или при выходе из
охватывающего контекста, в зависимости от того, что случится раньше.
Повторные вызовы ``close()`` ничего не делают.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from src.docker_api.events import ChannelEvent, EventKind, EventTransport, Unlisten
from src.docker_api.exceptions import TransportFailure

LOGGER = logging.getLogger(__name__)

EventCallback = Callable[[ChannelEvent], None]


class SubscriptionHandle:
    """Живая подписка на канал."""

    def __init__(self, channel: str, on_event: EventCallback) -> None:
        self.channel = channel
        self._on_event = on_event
        self._unlisten: Optional[Unlisten] = None
        self._closed = False
        self._closed_event = asyncio.Event()
        self._close_callbacks: List[Callable[["SubscriptionHandle"], None]] = []
        self.terminal_error: Optional[str] = None
        self.events_received = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Освобождает подписку; повторный вызов ничего не делает."""

        if self._closed:
            return
        self._closed = True
        unlisten, self._unlisten = self._unlisten, None
        try:
            if unlisten is not None:
                unlisten()
        finally:
            self._closed_event.set()
            for callback in self._close_callbacks:
                callback(self)
            LOGGER.debug(
                "Subscription to %s closed after %s events", self.channel, self.events_received
            )

    async def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Ждёт закрытия подписки; возвращает False, если истёк таймаут."""

        try:
            await asyncio.wait_for(self._closed_event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    def add_close_callback(self, callback: Callable[["SubscriptionHandle"], None]) -> None:
        self._close_callbacks.append(callback)

    def _attach(self, unlisten: Unlisten) -> None:
        # терминальное событие могло прийти ещё внутри listen()
        if self._closed:
            unlisten()
            return
        self._unlisten = unlisten

    def _dispatch(self, event: ChannelEvent) -> None:
        # события после закрытия (например, уже стоявшие в очереди) отбрасываются
        if self._closed:
            return
        self.events_received += 1
        try:
            self._on_event(event)
        except Exception as exc:
            LOGGER.error(
                "Event handler for %s failed: %s", self.channel, exc, exc_info=True
            )
        if event.is_terminal:
            if event.kind is EventKind.ERROR:
                self.terminal_error = str(event.payload)
            self.close()

    def __enter__(self) -> "SubscriptionHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    async def __aenter__(self) -> "SubscriptionHandle":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()


class EventSubscriber:
    """Открывает подписки через транспорт и закрывает их все при завершении области."""

    def __init__(self, transport: EventTransport) -> None:
        self._transport = transport
        self._open: List[SubscriptionHandle] = []

    @property
    def open_subscriptions(self) -> List[SubscriptionHandle]:
        return list(self._open)

    async def subscribe(self, channel: str, on_event: EventCallback) -> SubscriptionHandle:
        """Подписывается на канал; если транспорт недоступен, поднимает TransportFailure."""

        handle = SubscriptionHandle(channel, on_event)
        try:
            unlisten = await self._transport.listen(channel, handle._dispatch)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise TransportFailure(f"Cannot subscribe to '{channel}': {exc}") from exc
        handle._attach(unlisten)
        if handle.closed:
            LOGGER.debug("Channel %s terminated while subscribing", channel)
            return handle
        self._open.append(handle)
        handle.add_close_callback(self._forget)
        LOGGER.debug("Subscribed to %s", channel)
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> None:
        handle.close()

    def close_all(self) -> None:
        """Закрывает все ещё открытые подписки."""

        for handle in list(self._open):
            handle.close()

    def _forget(self, handle: SubscriptionHandle) -> None:
        if handle in self._open:
            self._open.remove(handle)

    async def __aenter__(self) -> "EventSubscriber":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close_all()
