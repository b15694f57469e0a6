"""
VIN verification: checksum validation, OCR repair search and reasoning.
"""

from .corrections import suggest_corrections
from .reasoning import reason, vin_structure
from .validator import compute_check_digit, is_valid_vin, normalize_vin, validate

__all__ = [
    "compute_check_digit",
    "is_valid_vin",
    "normalize_vin",
    "reason",
    "suggest_corrections",
    "validate",
    "vin_structure",
]
