"""
Pydantic models for captures, asset records and interactions.

Recognition payloads from the vision service use placeholder strings
(``"Unknown"``, ``"N/A"``, ``"Not Scanned"``) for fields it could not
determine. Those sentinels are turned into ``None`` when a payload is
parsed and only reappear in :meth:`RecognitionResult.to_payload` and in
persisted asset records, which keep the historical string format.
"""

from __future__ import annotations

import datetime
import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .vin import VinReasoning


UNKNOWN = "Unknown"
SENTINELS = frozenset({"Unknown", "N/A", "Not Scanned"})
PLATE_PLACEHOLDERS = frozenset({"N/A", "Unknown"})
VIN_PLACEHOLDERS = frozenset({"Not Scanned", "Unknown"})

_TEXT_FIELDS = ("plate", "vin", "year", "make", "model", "color")


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(microsecond=0)


def new_id() -> str:
    return str(uuid.uuid4())


class VehicleCategory(str, Enum):
    NORMAL = "Normal"
    SUSPICIOUS = "Suspicious"
    WANTED = "Wanted"
    STOLEN = "Stolen"
    ABANDONED = "Abandoned"
    COMMERCIAL = "Commercial"
    DELIVERY = "Delivery"
    CONTRACTOR = "Contractor"
    EMERGENCY = "Emergency"
    PUBLIC_WORKS = "Public Works"
    DIPLOMATIC = "Diplomatic"
    VIP = "VIP"
    RENTAL = "Rental"
    VISITOR = "Visitor"
    EMPLOYEE = "Employee"
    RESIDENT = "Resident"


class InteractionKind(str, Enum):
    SIGHTING = "Sighting"
    TRESPASS = "Trespass"
    NOTIFICATION = "Notification"


class WarningType(str, Enum):
    NONE = "None"
    VERBAL = "Verbal"
    WRITTEN = "Written"


class Location(BaseModel):
    """Geographic position of a capture."""

    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float
    label: Optional[str] = None


class Photo(BaseModel):
    """A single evidence photo attached to a capture or asset."""

    model_config = ConfigDict(frozen=True)

    url: str
    label: str = "General"
    timestamp: datetime.datetime = Field(default_factory=utc_now)


class RecognitionResult(BaseModel):
    """Structured output of the vision service for one capture."""

    model_config = ConfigDict(frozen=True)

    plate: Optional[str] = None
    vin: Optional[str] = None
    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    color: Optional[str] = None
    category: VehicleCategory = VehicleCategory.NORMAL
    confidence: Optional[float] = None
    notes: Optional[str] = None

    @field_validator(*_TEXT_FIELDS, "notes", mode="before")
    @classmethod
    def _drop_placeholders(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        if not text or text in SENTINELS:
            return None
        return text

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value: Any) -> VehicleCategory:
        if isinstance(value, VehicleCategory):
            return value
        try:
            return VehicleCategory(str(value).strip())
        except ValueError:
            return VehicleCategory.NORMAL

    @field_validator("confidence", mode="before")
    @classmethod
    def _coerce_confidence(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    @classmethod
    def from_vision_payload(cls, payload: Optional[Dict[str, Any]]) -> "RecognitionResult":
        """Build a result from a raw vision payload, ignoring unknown keys."""
        if not isinstance(payload, dict):
            return cls()
        known = {name: payload.get(name) for name in cls.model_fields if name in payload}
        return cls(**known)

    def to_payload(self) -> Dict[str, Any]:
        """Render with sentinel strings, as the vision service would."""
        data = self.model_dump(mode="json")
        for name in _TEXT_FIELDS:
            if data.get(name) is None:
                data[name] = UNKNOWN
        return data

    @property
    def has_identity(self) -> bool:
        return bool(self.plate or self.vin)


class PendingCapture(BaseModel):
    """A completed capture waiting in the intake queue for operator review."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    recognition: RecognitionResult = Field(default_factory=RecognitionResult)
    photos: List[Photo] = Field(default_factory=list)
    location: Optional[Location] = None
    vin_reasoning: Optional[VinReasoning] = None
    captured_at: datetime.datetime = Field(default_factory=utc_now)


class AssetRecord(BaseModel):
    """The durable vehicle entity."""

    id: str = Field(default_factory=new_id)
    plate: str = UNKNOWN
    vin: str = UNKNOWN
    year: str = UNKNOWN
    make: str = UNKNOWN
    model: str = UNKNOWN
    color: str = UNKNOWN
    category: VehicleCategory = VehicleCategory.NORMAL
    notes: Optional[str] = None
    photos: List[Photo] = Field(default_factory=list)
    timestamp: datetime.datetime = Field(default_factory=utc_now)
    last_sighting: Optional[datetime.datetime] = None
    location: Optional[Location] = None


class InteractionRecord(BaseModel):
    """Immutable audit entry for one operator decision about an asset."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    kind: InteractionKind
    asset_id: str
    timestamp: datetime.datetime = Field(default_factory=utc_now)
    notes: str
    operator: str
    warning_type: WarningType = WarningType.NONE
    location: Optional[Location] = None


__all__ = [
    "UNKNOWN",
    "SENTINELS",
    "PLATE_PLACEHOLDERS",
    "VIN_PLACEHOLDERS",
    "utc_now",
    "new_id",
    "VehicleCategory",
    "InteractionKind",
    "WarningType",
    "Location",
    "Photo",
    "RecognitionResult",
    "PendingCapture",
    "AssetRecord",
    "InteractionRecord",
]
