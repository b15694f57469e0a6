"""
Duplicate resolution of a pending capture against the known assets.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from ..models.records import PLATE_PLACEHOLDERS, VIN_PLACEHOLDERS, AssetRecord, PendingCapture

_logger = logging.getLogger("DuplicateResolver")


def _usable(value: Optional[str], placeholders: frozenset) -> bool:
    return bool(value) and value not in placeholders


def find_existing(capture: PendingCapture, records: Iterable[AssetRecord]) -> Optional[AssetRecord]:
    """
    Return the first record whose plate OR VIN equals the capture's.

    Placeholder values never match. Either field alone is sufficient, so a
    transferred plate can conflate two different vehicles; the matching
    field is logged to make such cases traceable.
    """
    plate = capture.recognition.plate
    vin = capture.recognition.vin
    check_plate = _usable(plate, PLATE_PLACEHOLDERS)
    check_vin = _usable(vin, VIN_PLACEHOLDERS)
    if not check_plate and not check_vin:
        return None

    for record in records:
        if check_plate and record.plate == plate:
            _logger.info("Capture %s matches asset %s by plate=%s", capture.id, record.id, plate)
            return record
        if check_vin and record.vin == vin:
            _logger.info("Capture %s matches asset %s by vin=%s", capture.id, record.id, vin)
            return record
    return None
