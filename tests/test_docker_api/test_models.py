"""Тесты моделей ресурсов Docker."""

from __future__ import annotations

import pytest

from src.docker_api.models import (
    ContainerState,
    ContainerSummary,
    ImageSummary,
    NetworkMembership,
    NetworkSummary,
    ProgressEvent,
    VolumeSummary,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("running", ContainerState.RUNNING),
        ("Paused", ContainerState.PAUSED),
        ("exited", ContainerState.EXITED),
        ("created", ContainerState.EXITED),
        ("dead", ContainerState.EXITED),
        ("restarting", ContainerState.UNKNOWN),
        (None, ContainerState.UNKNOWN),
    ],
)
def test_container_state_parse(raw: object, expected: ContainerState) -> None:
    assert ContainerState.parse(raw) is expected


def test_container_summary_from_dict() -> None:
    """Контейнер без имени допустим, но не имеет ключа."""

    summary = ContainerSummary.from_dict(
        {"name": None, "status": "Exited (0)", "state": "exited", "ports": ["80/tcp"]}
    )
    assert summary.key is None
    assert summary.state is ContainerState.EXITED
    assert summary.ports == ("80/tcp",)


def test_image_summary_rejects_negative_size() -> None:
    with pytest.raises(ValueError):
        ImageSummary.from_dict({"repo_tag": "demo:latest", "size": -1})


def test_image_summary_rejects_non_integer_size() -> None:
    with pytest.raises(TypeError):
        ImageSummary.from_dict({"repo_tag": "demo:latest", "size": "big"})


def test_network_summary_requires_fields() -> None:
    """Отсутствие обязательного поля сети считается ошибкой формата."""

    with pytest.raises(ValueError):
        NetworkSummary.from_dict({"id": "n1", "name": "bridge", "driver": "bridge"})


def test_network_summary_optional_fields() -> None:
    network = NetworkSummary.from_dict(
        {
            "id": "n1",
            "name": "bridge",
            "driver": "bridge",
            "scope": "local",
            "internal": False,
            "labels": {"team": "core"},
        }
    )
    assert network.key == "n1"
    assert network.enable_ipv6 is None
    assert network.labels == {"team": "core"}


def test_volume_summary_from_dict() -> None:
    volume = VolumeSummary.from_dict({"name": "data", "driver": "local", "mountpoint": "/m"})
    assert volume.key == "data"
    assert volume.scope is None


def test_network_membership_default_name() -> None:
    member = NetworkMembership.from_dict({"id": "c1", "network_id": "n1"})
    assert member.name == "Unnamed"


def test_progress_event_accepts_both_detail_spellings() -> None:
    """progress_detail канала и progressDetail Docker Engine равнозначны."""

    first = ProgressEvent.from_dict(
        {"id": "L1", "status": "Downloading", "progress_detail": {"current": 5, "total": 10}}
    )
    second = ProgressEvent.from_dict(
        {"id": "L1", "status": "Downloading", "progressDetail": {"current": 5, "total": 10}}
    )
    assert first == second == ProgressEvent("L1", "Downloading", 5, 10)


def test_progress_event_without_detail() -> None:
    event = ProgressEvent.from_dict({"status": "Digest: sha256:abc"})
    assert event.id is None
    assert event.current is None and event.total is None
