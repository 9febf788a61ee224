"""Logging configuration for the CLI and embedding applications.

Provides helpers:
* ``setup_logging`` - idempotent configuration with rotating info/debug files
    and a stderr console handler.
* ``log_call`` - lightweight decorator for entry/exit tracing.

Library modules only call ``logging.getLogger(__name__)``; handlers are
installed by whoever owns the process (the CLI does it on startup).
"""

from __future__ import annotations

import inspect
import logging
import os
from collections.abc import Callable
from functools import wraps
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

# ----- Custom TRACE level -------------------------------------------------
TRACE_LEVEL = 5
if logging.getLevelName(TRACE_LEVEL) != "TRACE":
    logging.addLevelName(TRACE_LEVEL, "TRACE")


def _trace(
    self: logging.Logger,
    msg: str,
    *args: object,
    **kwargs: object,
) -> None:  # pragma: no cover - simple passthrough
    if self.isEnabledFor(TRACE_LEVEL):  # pragma: no branch
        self._log(TRACE_LEVEL, msg, args, **kwargs)  # type: ignore[arg-type]


logging.Logger.trace = _trace  # type: ignore[attr-defined]


DEFAULT_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(funcName)s | %(message)s"
LOG_DIR_ENV = "NOVELCAST_LOG_DIR"


def _resolve_level(name: str) -> int:
    name = name.upper()
    if name == "TRACE":
        return TRACE_LEVEL
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def _file_handler(path: Path, level: int, fmt: logging.Formatter) -> logging.Handler:
    handler = TimedRotatingFileHandler(path, when="midnight", backupCount=7, encoding="utf-8")
    handler.setFormatter(fmt)
    handler.setLevel(level)
    return handler


def setup_logging(force: bool = False, log_dir: str | Path | None = None) -> None:
    """Configure root logging for novelcast processes.

    Writes ``app.log`` (INFO+) and ``app-debug.log`` (TRACE+) under
    ``log_dir`` (default ``$NOVELCAST_LOG_DIR`` or ``logs``), rotating daily
    with 7 backups, plus a console handler at ``$LOG_LEVEL``.
    """
    if getattr(setup_logging, "_configured", False) and not force:
        return

    target = Path(log_dir or os.getenv(LOG_DIR_ENV, "logs"))
    target.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    if force:  # pragma: no cover
        for h in list(root.handlers):
            root.removeHandler(h)

    level = _resolve_level(os.getenv("LOG_LEVEL", "INFO"))
    root.setLevel(min(level, logging.INFO))

    fmt = logging.Formatter(DEFAULT_FORMAT)
    root.addHandler(_file_handler(target / "app.log", logging.INFO, fmt))
    root.addHandler(_file_handler(target / "app-debug.log", TRACE_LEVEL, fmt))

    console = logging.StreamHandler()
    console.setFormatter(fmt)
    console.setLevel(level)
    root.addHandler(console)

    setup_logging._configured = True  # type: ignore[attr-defined]


P = ParamSpec("P")
R = TypeVar("R")


def log_call(
    level: int = logging.DEBUG,
) -> Callable[[Callable[P, Any]], Callable[P, Any]]:
    """Return decorator logging entry/exit of the wrapped callable.

    Uses the plain module logger so decorating library code never installs
    handlers. Exceptions are logged and re-raised.
    """

    def _decorator(fn: Callable[P, Any]) -> Callable[P, Any]:
        logger = logging.getLogger(fn.__module__)

        def _enter(args: tuple[Any, ...], kwargs: dict[str, Any]) -> None:
            if logger.isEnabledFor(level):
                logger.log(level, "ENTER %s args=%s kwargs=%s", fn.__qualname__, _shorten(args), _shorten(kwargs))

        def _exit(result: Any) -> None:
            if logger.isEnabledFor(level):
                logger.log(level, "EXIT %s -> %s", fn.__qualname__, _shorten(result))

        if inspect.iscoroutinefunction(fn):

            @wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                _enter(args, kwargs)
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:  # noqa: BLE001
                    logger.exception("ERROR in %s: %s", fn.__qualname__, e)
                    raise
                _exit(result)
                return result

            return async_wrapper

        @wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
            _enter(args, kwargs)
            try:
                result = fn(*args, **kwargs)
            except Exception as e:  # noqa: BLE001
                logger.exception("ERROR in %s: %s", fn.__qualname__, e)
                raise
            _exit(result)
            return result

        return sync_wrapper

    return _decorator


def _shorten(obj: object, limit: int = 120) -> str:
    """Return a truncated repr for logging (never raises)."""
    try:
        s = repr(obj)
    except Exception:  # noqa: BLE001
        return type(obj).__name__
    if len(s) > limit:
        return s[: limit - 3] + "..."
    return s


__all__ = ["TRACE_LEVEL", "log_call", "setup_logging"]
