from .records import (
    AssetRecord,
    InteractionKind,
    InteractionRecord,
    Location,
    PendingCapture,
    Photo,
    RecognitionResult,
    VehicleCategory,
    WarningType,
)
from .vin import ChecksumStatus, ManufacturingInfo, VinReasoning, VinStructure, VinValidation

__all__ = [
    "AssetRecord",
    "InteractionKind",
    "InteractionRecord",
    "Location",
    "PendingCapture",
    "Photo",
    "RecognitionResult",
    "VehicleCategory",
    "WarningType",
    "ChecksumStatus",
    "ManufacturingInfo",
    "VinReasoning",
    "VinStructure",
    "VinValidation",
]
