"""
VIN reasoning: checksum verdict, OCR repair suggestions, structure and
manufacturing data combined into one result for the operator.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional

from ..core.errors import guarded_call_async
from ..models.vin import ChecksumStatus, ManufacturingInfo, VinReasoning, VinStructure
from .corrections import suggest_corrections
from .validator import PLANT_INDEX, VIN_LENGTH, YEAR_INDEX, validate

DecodeLookup = Callable[[str], Awaitable[Optional[ManufacturingInfo]]]

_logger = logging.getLogger("VinReasoning")


def vin_structure(normalized: str) -> VinStructure:
    """Slice WMI/VDS/VIS from whatever characters are present."""
    return VinStructure(
        wmi=normalized[0:3],
        vds=normalized[3:9],
        vis=normalized[9:17],
        year_digit=normalized[YEAR_INDEX:YEAR_INDEX + 1],
        plant_digit=normalized[PLANT_INDEX:PLANT_INDEX + 1],
    )


async def reason(vin: str, decode_lookup: Optional[DecodeLookup] = None) -> VinReasoning:
    """
    Build a :class:`VinReasoning` for ``vin``.

    ``decode_lookup`` is awaited exactly once with the normalized VIN. A
    failed or empty lookup leaves ``manufacturing_intel`` empty; no retries
    are made here.
    """
    raw = vin if isinstance(vin, str) else ""
    verdict = validate(raw)
    normalized = verdict.normalized

    if len(normalized) != VIN_LENGTH:
        status = ChecksumStatus.UNVERIFIABLE
    elif verdict.passed:
        status = ChecksumStatus.PASS
    else:
        status = ChecksumStatus.FAIL

    # searched on the raw text so illegal characters can still be repaired
    suggestions = [] if verdict.passed else suggest_corrections(raw)

    intel: Optional[ManufacturingInfo] = None
    if decode_lookup is not None:
        intel = await guarded_call_async(
            "VIN decode lookup",
            lambda: decode_lookup(normalized),
            fallback=None,
            logger=_logger,
            context={"vin": normalized},
        )
    if not isinstance(intel, ManufacturingInfo):
        intel = ManufacturingInfo()

    if suggestions:
        _logger.info("VIN %s failed checksum; %s correction(s) found", normalized, len(suggestions))

    return VinReasoning(
        is_valid=verdict.passed,
        checksum_status=status,
        normalized=normalized,
        errors=list(verdict.errors),
        suggestions=suggestions,
        structure=vin_structure(normalized),
        manufacturing_intel=intel,
    )
