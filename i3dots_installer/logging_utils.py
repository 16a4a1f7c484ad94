from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Tuple

from .env import PATHS

DEFAULT_LOG_PATH = PATHS.log_default
FALLBACK_LOG_NAME = "i3dots-installer.log"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _open_log_file(log_path: str) -> Tuple[logging.FileHandler, str]:
    try:
        Path(os.path.dirname(log_path) or ".").mkdir(parents=True, exist_ok=True)
        return logging.FileHandler(log_path), log_path
    except OSError:
        fallback = str(Path.cwd() / FALLBACK_LOG_NAME)
        return logging.FileHandler(fallback), fallback


def configure_logging(
    log_path: str = DEFAULT_LOG_PATH,
    console_level: int = logging.INFO,
    also_console: bool = True,
) -> str:
    """Set up logging for one installer run and return the log file in use.

    The log file always records DEBUG, so command output (captured stderr of
    failed package installs, the greeter build, systemctl) is on disk after
    every run. ``console_level`` only decides how chatty the terminal is.

    When ``log_path`` cannot be opened (/var/log read-only, not root) the log
    goes to ``./i3dots-installer.log``.
    """

    root = logging.getLogger()
    if getattr(root, "_i3dots_configured", False):
        for h in root.handlers:
            if getattr(h, "_i3dots_console", False):
                h.setLevel(console_level)
        return getattr(root, "_i3dots_log_path", log_path)

    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    file_handler, chosen_path = _open_log_file(log_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    if also_console:
        console = logging.StreamHandler()
        console.setLevel(console_level)
        console.setFormatter(fmt)
        setattr(console, "_i3dots_console", True)
        root.addHandler(console)

    setattr(root, "_i3dots_configured", True)
    setattr(root, "_i3dots_log_path", chosen_path)

    logging.getLogger(__name__).info("Logging initialized (requested=%s, actual=%s)", log_path, chosen_path)
    return chosen_path
