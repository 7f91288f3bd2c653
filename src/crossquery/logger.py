"""Logging helpers.

Every logger lives under the ``crossquery`` namespace so applications can
tune the library with a single ``logging.getLogger("crossquery")`` call.
"""

import logging
from typing import Optional

from crossquery.settings import settings as api_settings

ROOT_LOGGER_NAME = "crossquery"

_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

_configured = False


def setup_global_logging(level: str = "INFO") -> None:
    """Configure the root logger once in a standardized format.

    Args:
        level: Log level name (e.g., "DEBUG", "INFO")
    """
    global _configured
    if _configured:
        return
    lvl = _LEVELS.get(level.upper(), logging.INFO)
    logging.basicConfig(
        level=lvl,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    _configured = True


def qualified_name(name: Optional[str] = None) -> str:
    """Return ``name`` placed under the ``crossquery`` logger namespace."""
    if not name or name == ROOT_LOGGER_NAME:
        return ROOT_LOGGER_NAME
    if name.startswith(ROOT_LOGGER_NAME + "."):
        return name
    return f"{ROOT_LOGGER_NAME}.{name}"


def get_logger(name: Optional[str] = None) -> "Logger":
    """Return a module/class logger. Ensures global logging is configured.

    Args:
        name: Logger name, usually __name__ or the class name
    """
    return Logger(name)


class Logger:
    """Thin wrapper over standard logging with a convenience message method.

    - Honors global configuration via `setup_global_logging`.
    - Provides `.message(text)` for lifecycle events (builds, executions),
      logged at `DEBUG` when LOG_LEVEL is DEBUG and at `INFO` otherwise, so
      raising LOG_LEVEL above INFO silences them.
    """

    def __init__(self, name: Optional[str] = None) -> None:
        if not _configured:
            setup_global_logging(api_settings.LOG_LEVEL)
        self.name = qualified_name(name)
        self._logger = logging.getLogger(self.name)

    def is_enabled_for(self, level: int) -> bool:
        return self._logger.isEnabledFor(level)

    def debug(self, msg: str, *args, **kwargs) -> None:
        self._logger.debug(msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs) -> None:
        self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs) -> None:
        self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs) -> None:
        self._logger.error(msg, *args, **kwargs)

    def message(self, msg: str, *args, **kwargs) -> None:
        level = (api_settings.LOG_LEVEL or "").upper()
        if level == "DEBUG":
            self.debug(msg, *args, **kwargs)
        else:
            self.info(msg, *args, **kwargs)
