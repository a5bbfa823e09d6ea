"""Расположение рабочих каталогов консоли."""

from __future__ import annotations

import os
from pathlib import Path

HOME_ENV = "DOCKHAND_HOME"
APP_DIR_NAME = ".dockhand"


def config_dir() -> Path:
    """Каталог с config.json и логами; корень переопределяется через DOCKHAND_HOME."""

    home = os.environ.get(HOME_ENV)
    return Path(home) / APP_DIR_NAME if home else Path.home() / APP_DIR_NAME


def logs_dir() -> Path:
    return config_dir() / "logs"
