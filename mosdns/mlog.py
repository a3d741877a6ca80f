"""Logging setup: a global logger and loggers built from a configuration."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from typing import Union

_LEVELS = {
    "": logging.INFO,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "dpanic": logging.CRITICAL,
    "panic": logging.CRITICAL,
    "fatal": logging.CRITICAL,
}

_CONSOLE_FORMAT = "%(asctime)s\t%(levelname)s\t%(name)s\t%(message)s"


@dataclass
class LogConfig:
    """Logger settings.

    ``level`` is one of debug, info, warn, error, dpanic, panic, fatal (empty
    means info). ``file`` is where logs go; empty means stderr.
    ``production`` switches to JSON output.
    """

    level: str = ""
    file: str = ""
    production: bool = False


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname.lower(),
            "ts": record.created,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def _parse_level(level: Union[str, int]) -> int:
    if isinstance(level, int) and not isinstance(level, bool):
        return level
    if isinstance(level, str) and level in (level.lower(), level.upper()):
        value = _LEVELS.get(level.lower())
        if value is not None:
            return value
    raise ValueError(f"invalid log level: unrecognized level: {level!r}")


def _build(name: str, level: int, handler: logging.Handler, production: bool) -> logging.Logger:
    handler.setFormatter(_JsonFormatter() if production else logging.Formatter(_CONSOLE_FORMAT))
    built = logging.Logger(name, level)
    built.addHandler(handler)
    built.propagate = False
    return built


def new_logger(config: LogConfig) -> logging.Logger:
    """Build a logger from ``config``. Raises ValueError or OSError."""
    level = _parse_level(config.level)
    handler: logging.Handler
    if config.file in ("", "stderr"):
        handler = logging.StreamHandler(sys.stderr)
    elif config.file == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        try:
            handler = logging.FileHandler(config.file, encoding="utf-8")
        except OSError as exc:
            raise OSError(f"open log file: {exc}") from exc
    return _build("mosdns", level, handler, config.production)


_global = _build("mosdns", logging.INFO, logging.StreamHandler(sys.stderr), False)

_nop = logging.Logger("nop", logging.CRITICAL + 1)
_nop.addHandler(logging.NullHandler())
_nop.propagate = False
_nop.disabled = True


def logger() -> logging.Logger:
    """The global logger."""
    return _global


def set_level(level: Union[str, int]) -> None:
    """Set the level of the global logger."""
    _global.setLevel(_parse_level(level))


def nop() -> logging.Logger:
    """A logger that never writes anything."""
    return _nop