"""Centralized logging configuration for the proxy, the UI and the scripts.

Provides logging with separate files for:
- info.log: General application logs (INFO level and above)
- error.log: Error logs only (ERROR level and above)

Streamlit re-executes the UI script on every interaction, so setup is
idempotent: handlers are only attached once per log directory.
"""

import logging
import sys
from pathlib import Path

from app.core.config import Settings, get_settings

# Third-party loggers that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "watchdog")

_configured_dir: Path | None = None


def setup_logging(settings: Settings | None = None, force: bool = False) -> logging.Logger:
    """Attach file and console handlers to the root logger.

    Args:
        settings: Application settings. If None, uses global settings.
        force: Re-create the handlers even if already configured.

    Returns:
        The configured root logger.
    """
    global _configured_dir

    settings = settings or get_settings()
    root_logger = logging.getLogger()
    level = logging.DEBUG if settings.log_level == "DEBUG" else logging.INFO

    log_dir = settings.log_dir.resolve()
    if _configured_dir == log_dir and not force:
        root_logger.setLevel(level)
        return root_logger

    log_dir.mkdir(parents=True, exist_ok=True)

    detailed_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    simple_formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger.setLevel(level)
    root_logger.handlers.clear()

    info_handler = logging.FileHandler(log_dir / "info.log", encoding="utf-8")
    info_handler.setLevel(logging.INFO)
    info_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(info_handler)

    error_handler = logging.FileHandler(log_dir / "error.log", encoding="utf-8")
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)
    root_logger.addHandler(error_handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(simple_formatter)
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _configured_dir = log_dir
    root_logger.info(f"Logging to {log_dir} at level {logging.getLevelName(level)}")
    return root_logger
