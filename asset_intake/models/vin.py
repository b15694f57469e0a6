"""
Pydantic models describing VIN verification results.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChecksumStatus(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    UNVERIFIABLE = "UNVERIFIABLE"


class VinValidation(BaseModel):
    """Outcome of the ISO 3779 check-digit verification."""

    model_config = ConfigDict(frozen=True)

    passed: bool
    normalized: str
    errors: List[str] = Field(default_factory=list)


class VinStructure(BaseModel):
    """WMI / VDS / VIS decomposition plus the raw year and plant characters."""

    model_config = ConfigDict(frozen=True)

    wmi: str = ""
    vds: str = ""
    vis: str = ""
    year_digit: str = ""
    plant_digit: str = ""


class ManufacturingInfo(BaseModel):
    """Manufacturing data returned by the external decode service."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    country: Optional[str] = None
    manufacturer: Optional[str] = None
    plant: Optional[str] = None
    model_year: Optional[str] = None
    operational_status: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not any(self.model_dump().values())


class VinReasoning(BaseModel):
    """Combined verdict shown to the operator next to a recognised VIN."""

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    checksum_status: ChecksumStatus
    normalized: str
    errors: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    structure: VinStructure = Field(default_factory=VinStructure)
    manufacturing_intel: ManufacturingInfo = Field(default_factory=ManufacturingInfo)


__all__ = [
    "ChecksumStatus",
    "VinValidation",
    "VinStructure",
    "ManufacturingInfo",
    "VinReasoning",
]
