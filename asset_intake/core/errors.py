"""
Exception taxonomy and shared error-handling helpers for asset intake.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

T = TypeVar("T")


class IntakeError(Exception):
    """Base class for all asset intake errors."""


class MalformedVinError(IntakeError):
    """Raised when a VIN has the wrong length or untransliterable characters."""


class ExternalLookupError(IntakeError):
    """Raised by decode, vision or geolocation adapters; callers degrade to unknown."""


class InvalidTransitionError(IntakeError):
    """Raised when a workflow action is not available in the current state."""

    def __init__(self, action: str, state: str) -> None:
        super().__init__(f"Action '{action}' is not available in state {state}")
        self.action = action
        self.state = state


class AssetNotFoundError(IntakeError):
    """Raised when a commit references an asset id that is not in the store."""


class PersistenceError(IntakeError):
    """Raised when the record store could not be written."""


def _format_context(context: Mapping[str, Any] | None) -> str:
    if not context:
        return ""
    pairs = " ".join(f"{key}={value}" for key, value in context.items() if value is not None)
    return f" {pairs}" if pairs else ""


def log_exception(
    logger: logging.Logger,
    msg: str,
    *,
    context: Mapping[str, Any] | None = None,
    exc: BaseException | None = None,
) -> None:
    """Log ``msg`` at ERROR with ``key=value`` context and the traceback."""
    message = f"{msg}{_format_context(context)}"
    if exc is None:
        logger.exception(message)
    else:
        logger.error("%s: %s", message, exc, exc_info=exc)


def read_json(path: str | Path, default: T, *, logger: logging.Logger | None = None) -> Any:
    """
    Read a JSON document, returning ``default`` if it is unreadable.

    A missing file is not an error and is not logged.
    """
    source = Path(path)
    if not source.exists():
        return default
    try:
        return json.loads(source.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        if logger:
            log_exception(logger, "JSON read failed", context={"path": source}, exc=exc)
        return default


def write_json_atomic(
    path: str | Path,
    data: Any,
    *,
    logger: logging.Logger | None = None,
    indent: int = 2,
) -> bool:
    """
    Replace ``path`` with ``data`` serialized as JSON.

    The document is written to a sibling temp file and renamed over the
    target, so readers see either the old or the new content. Returns
    ``False`` (and leaves the target untouched) on any failure.
    """
    target = Path(path)
    pending: Optional[Path] = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as handle:
            pending = Path(handle.name)
            json.dump(data, handle, indent=indent, default=str)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(pending, target)
        pending = None
        return True
    except Exception as exc:
        if logger:
            log_exception(logger, "JSON atomic write failed", context={"path": target}, exc=exc)
        return False
    finally:
        if pending is not None:
            pending.unlink(missing_ok=True)


async def guarded_call_async(
    name: str,
    fn: Callable[[], Awaitable[T]],
    *,
    fallback: T | None = None,
    logger: logging.Logger | None = None,
    context: Mapping[str, Any] | None = None,
) -> T | None:
    """
    Await fn() and degrade to fallback on any failure, logging a warning.

    External lookups never abort the intake flow, so the stack trace is only
    attached at DEBUG level.
    """
    try:
        return await fn()
    except Exception as exc:
        if logger:
            logger.warning(
                "%s failed%s: %s",
                name,
                _format_context(context),
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
        return fallback


__all__ = [
    "IntakeError",
    "MalformedVinError",
    "ExternalLookupError",
    "InvalidTransitionError",
    "AssetNotFoundError",
    "PersistenceError",
    "log_exception",
    "read_json",
    "write_json_atomic",
    "guarded_call_async",
]
