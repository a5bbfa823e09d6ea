"""Тесты свёртки прогресса загрузки образа."""

from __future__ import annotations

from typing import List

import pytest

from src.docker_api.events import ChannelEvent
from src.docker_api.models import ProgressEvent
from src.sync.progress import ProgressAggregator, ProgressState, apply


def test_layer_percentage_follows_events() -> None:
    """{L1, 50/100}, затем {L1, 100/100} дают 50 и 100."""

    seen: List[float] = []
    aggregator = ProgressAggregator("demo", lambda state: seen.append(state.percentage("L1")))
    aggregator.feed(ProgressEvent("L1", "Downloading", 50, 100))
    aggregator.feed(ProgressEvent("L1", "Downloading", 100, 100))
    assert seen == [50.0, 100.0]


def test_apply_is_pure() -> None:
    initial = ProgressState()
    updated = apply(initial, ProgressEvent("L1", "Downloading", 1, 4))
    assert initial.percentage("L1") is None
    assert updated.percentage("L1") == 25.0
    assert updated.statuses["L1"] == "Downloading"


@pytest.mark.parametrize(
    "event",
    [
        ProgressEvent("L1", "Waiting"),
        ProgressEvent("L1", "Downloading", 10, 0),
        ProgressEvent(None, "Downloading", 10, 100),
    ],
)
def test_events_without_usable_detail_keep_percentages(event: ProgressEvent) -> None:
    state = apply(ProgressState(), event)
    assert dict(state.percentages) == {}
    assert state.last_status == event.status


def test_percentage_is_clamped() -> None:
    state = apply(ProgressState(), ProgressEvent("L1", "Extracting", 150, 100))
    assert state.percentage("L1") == 100.0


def test_overall_is_mean_of_layers() -> None:
    state = ProgressState()
    state = apply(state, ProgressEvent("L1", "Downloading", 50, 100))
    state = apply(state, ProgressEvent("L2", "Downloading", 100, 100))
    assert state.overall == 75.0


def test_handle_ignores_terminal_and_malformed_events() -> None:
    """Завершающие события и некорректные отчёты не меняют состояние."""

    aggregator = ProgressAggregator("demo")
    aggregator.handle(ChannelEvent.data({"id": "L1", "status": "Downloading", "progress_detail": {"current": 2, "total": 4}}))
    aggregator.handle(ChannelEvent.data({"id": 5, "status": "bad"}))
    aggregator.handle(ChannelEvent.data("not a mapping"))
    aggregator.handle(ChannelEvent.complete())
    assert aggregator.events_applied == 1
    assert aggregator.state.percentage("L1") == 50.0
