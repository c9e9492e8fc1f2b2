"""Logging setup for processes embedding confpoll."""

from __future__ import annotations

import sys
from collections.abc import Callable, Iterable, Mapping

from loguru import logger

DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
    "{name}:{function}:{line} - {message}"
)

PACKAGE_PREFIX = "confpoll."


def scope_filter(scopes: Iterable[str]) -> Callable[[object], bool]:
    """Build a loguru filter passing DEBUG records from the given modules.

    Scopes may be full module names or be relative to the package, so
    ``"long_poll"`` and ``"confpoll.long_poll"`` select the same records.
    """
    prefixes: set[str] = set()
    for scope in scopes:
        scope = scope.strip()
        if not scope:
            continue
        prefixes.add(scope)
        if not scope.startswith(PACKAGE_PREFIX):
            prefixes.add(f"{PACKAGE_PREFIX}{scope}")
    ordered = tuple(sorted(prefixes))

    def _filter(record: object) -> bool:
        if not isinstance(record, Mapping):
            return False
        if getattr(record.get("level"), "name", None) != "DEBUG":
            return False
        return str(record.get("name", "")).startswith(ordered)

    return _filter


def configure_logging(
    level: str,
    *,
    debug_scopes: Iterable[str] = (),
    colorize: bool = False,
) -> tuple[int, ...]:
    """Replace loguru handlers with one stderr sink at ``level``.

    When ``debug_scopes`` is given and ``level`` is above DEBUG, a second
    sink emits DEBUG records for those modules only, which is how the poll
    loop's per-request tracing is turned on in production.
    """
    logger.remove()
    handler_ids = [
        logger.add(sys.stderr, level=level, format=DEFAULT_LOG_FORMAT, colorize=colorize)
    ]

    scopes = [scope for scope in debug_scopes if scope.strip()]
    if scopes and level.upper() != "DEBUG":
        handler_ids.append(
            logger.add(
                sys.stderr,
                level="DEBUG",
                format=DEFAULT_LOG_FORMAT,
                colorize=colorize,
                filter=scope_filter(scopes),
            )
        )
    return tuple(handler_ids)
