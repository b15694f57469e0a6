"""
Bounded search for OCR-damaged VINs.

OCR misreads concentrate on visually similar glyphs, so only two cheap
passes are attempted:

1. swap the characters that are illegal in a VIN (``O``, ``I``, ``Q``) for
   the digits they are usually mistaken for, all at once;
2. failing that, try every single substitution from :data:`CONFUSABLES`.

Candidates are kept only when they pass :func:`validate`.
"""

from __future__ import annotations

import re
from typing import Dict, List, Tuple

from .validator import VIN_LENGTH, validate


_NON_ALNUM = re.compile(r"[^A-Z0-9]")

_ILLEGAL_SWAPS = str.maketrans({'O': '0', 'I': '1', 'Q': '0'})

# Alternatives are tried in the listed order.
CONFUSABLES: Dict[str, Tuple[str, ...]] = {
    'O': ('0',),
    '0': ('O',),
    'I': ('1',),
    '1': ('I', 'L'),
    'S': ('5',),
    '5': ('S',),
    'Z': ('2',),
    '2': ('Z',),
    'G': ('6',),
    '6': ('G',),
    'B': ('8',),
    '8': ('B',),
}


def _clean(vin: str) -> str:
    return _NON_ALNUM.sub("", vin.upper())


def _swap_illegal(vin: str) -> List[str]:
    swapped = vin.translate(_ILLEGAL_SWAPS)
    if swapped != vin and validate(swapped).passed:
        return [swapped]
    return []


def _single_substitutions(vin: str) -> List[str]:
    found: List[str] = []
    seen = set()
    for i, char in enumerate(vin):
        for alternative in CONFUSABLES.get(char, ()):
            candidate = vin[:i] + alternative + vin[i + 1:]
            if candidate in seen:
                continue
            if validate(candidate).passed:
                seen.add(candidate)
                found.append(candidate)
    return found


def suggest_corrections(vin: str) -> List[str]:
    """
    Return checksum-valid repairs of ``vin``, deduplicated in discovery order.

    Only inputs that are 17 characters after removing separators are
    searched; anything else yields an empty list.
    """
    if not isinstance(vin, str):
        return []
    cleaned = _clean(vin)
    if len(cleaned) != VIN_LENGTH:
        return []
    return _swap_illegal(cleaned) or _single_substitutions(cleaned)
