"""
ISO 3779 check-digit verification for 17-character VINs.

The transliteration and weight tables must stay exactly as below so that
results agree with VINs already recorded in the asset store.
"""

from __future__ import annotations

import re
from typing import Dict, Tuple

from ..core.errors import MalformedVinError
from ..models.vin import VinValidation


VIN_LENGTH = 17
CHECK_DIGIT_INDEX = 8
YEAR_INDEX = 9
PLANT_INDEX = 10

# I, O and Q are never valid in a VIN
_NON_VIN_CHARS = re.compile(r"[^A-HJ-NPR-Z0-9]")

TRANSLITERATION: Dict[str, int] = {
    'A': 1, 'B': 2, 'C': 3, 'D': 4, 'E': 5, 'F': 6, 'G': 7, 'H': 8,
    'J': 1, 'K': 2, 'L': 3, 'M': 4, 'N': 5, 'P': 7, 'R': 9,
    'S': 2, 'T': 3, 'U': 4, 'V': 5, 'W': 6, 'X': 7, 'Y': 8, 'Z': 9,
    '0': 0, '1': 1, '2': 2, '3': 3, '4': 4, '5': 5, '6': 6, '7': 7, '8': 8, '9': 9,
}

WEIGHTS: Tuple[int, ...] = (8, 7, 6, 5, 4, 3, 2, 10, 0, 9, 8, 7, 6, 5, 4, 3, 2)


def normalize_vin(vin: str) -> str:
    """Uppercase and drop every character that cannot appear in a VIN."""
    return _NON_VIN_CHARS.sub("", vin.upper())


def compute_check_digit(vin: str) -> str:
    """
    Compute the expected check digit of a 17-character VIN.

    Raises
    ------
    MalformedVinError
        If the VIN is not 17 characters long or contains a character
        without a transliteration value.
    """
    if len(vin) != VIN_LENGTH:
        raise MalformedVinError(f"VIN must be {VIN_LENGTH} characters (got {len(vin)})")
    total = 0
    for i, char in enumerate(vin):
        value = TRANSLITERATION.get(char)
        if value is None:
            raise MalformedVinError(f"Invalid character at position {i + 1}")
        total += value * WEIGHTS[i]
    remainder = total % 11
    return 'X' if remainder == 10 else str(remainder)


def validate(vin: object) -> VinValidation:
    """
    Validate a VIN's check digit.

    The input is normalized first; a normalized value that is not 17
    characters long fails without computing a checksum.
    """
    if not isinstance(vin, str):
        return VinValidation(passed=False, normalized="", errors=["VIN must be a string"])

    normalized = normalize_vin(vin)
    if len(normalized) != VIN_LENGTH:
        return VinValidation(
            passed=False,
            normalized=normalized,
            errors=[f"VIN must be {VIN_LENGTH} characters (got {len(normalized)})"],
        )

    try:
        expected = compute_check_digit(normalized)
    except MalformedVinError as exc:
        return VinValidation(passed=False, normalized=normalized, errors=[str(exc)])

    actual = normalized[CHECK_DIGIT_INDEX]
    if actual != expected:
        return VinValidation(
            passed=False,
            normalized=normalized,
            errors=[f"Check digit mismatch: expected {expected}, got {actual}"],
        )
    return VinValidation(passed=True, normalized=normalized, errors=[])


def is_valid_vin(vin: object) -> bool:
    return validate(vin).passed
