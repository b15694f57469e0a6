"""
Timeout-bounded geolocation for captures.

A capture never waits on the location provider for longer than the
configured budget; on timeout or error it proceeds without a location.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from ..models.records import Location

LocationProvider = Callable[[], Awaitable[Location]]

DEFAULT_TIMEOUT_SEC = 5.0

_logger = logging.getLogger("Geolocation")


@dataclass(frozen=True)
class LocationFound:
    location: Location


@dataclass(frozen=True)
class LocationTimedOut:
    timeout_sec: float


@dataclass(frozen=True)
class LocationFailed:
    error: str


LocationOutcome = Union[LocationFound, LocationTimedOut, LocationFailed]


async def acquire_location(
    provider: Optional[LocationProvider],
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
) -> LocationOutcome:
    if provider is None:
        return LocationFailed(error="no location provider configured")
    try:
        location = await asyncio.wait_for(provider(), timeout=timeout_sec)
    except asyncio.TimeoutError:
        _logger.warning("Location lookup timed out after %.1fs", timeout_sec)
        return LocationTimedOut(timeout_sec=timeout_sec)
    except Exception as exc:
        _logger.warning("Location lookup failed: %s", exc)
        return LocationFailed(error=str(exc))
    if not isinstance(location, Location):
        return LocationFailed(error=f"provider returned {type(location).__name__}")
    return LocationFound(location=location)


def location_or_none(outcome: LocationOutcome) -> Optional[Location]:
    return outcome.location if isinstance(outcome, LocationFound) else None
