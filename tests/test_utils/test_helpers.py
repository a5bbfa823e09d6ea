"""Тесты вспомогательных утилит."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.utils.helpers import format_bytes, normalize_socket_path
from src.utils.paths import APP_DIR_NAME, HOME_ENV, config_dir, logs_dir


def test_normalize_socket_path_adds_unix_prefix() -> None:
    assert normalize_socket_path(" /var/run/docker.sock ") == "unix:///var/run/docker.sock"


def test_normalize_socket_path_keeps_existing_scheme() -> None:
    assert normalize_socket_path("unix:///var/run/docker.sock") == "unix:///var/run/docker.sock"
    assert normalize_socket_path("ssh://deploy@host") == "ssh://deploy@host"


def test_normalize_socket_path_keeps_relative_values() -> None:
    assert normalize_socket_path("custom-socket") == "custom-socket"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(0, "0.0 B"), (1536, "1.5 KB"), (5 * 1024**3, "5.0 GB"), (2 * 1024**5, "2048.0 TB")],
)
def test_format_bytes(value: int, expected: str) -> None:
    assert format_bytes(value) == expected


def test_config_dir_respects_home_override(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(HOME_ENV, str(tmp_path))
    assert config_dir() == tmp_path / APP_DIR_NAME
    assert logs_dir() == tmp_path / APP_DIR_NAME / "logs"


def test_config_dir_defaults_to_user_home(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv(HOME_ENV, raising=False)
    assert config_dir() == Path.home() / APP_DIR_NAME
