"""
Record commit: turn a resolved capture into an asset record and an
interaction entry. Pure; persistence is the caller's job.
"""

from __future__ import annotations

import datetime
from typing import Callable, Optional, Sequence, Tuple

from ..core.errors import AssetNotFoundError
from ..models.records import (
    UNKNOWN,
    AssetRecord,
    InteractionKind,
    InteractionRecord,
    Location,
    Photo,
    RecognitionResult,
    WarningType,
    new_id,
    utc_now,
)

MAX_ASSET_PHOTOS = 20

NOTE_INITIAL = "Initial sighting of {subject} logged."
NOTE_DUPLICATE = "Repeat sighting of {subject} logged against existing asset."
NOTE_TRESPASS = "Trespass warning ({warning}) issued to {subject}."


def _subject(plate: Optional[str], vin: Optional[str]) -> str:
    if plate and plate != UNKNOWN:
        return f"plate {plate}"
    if vin and vin != UNKNOWN:
        return f"VIN {vin}"
    return "unidentified asset"


def interaction_notes(warning: WarningType, *, duplicate: bool, plate: Optional[str], vin: Optional[str]) -> str:
    subject = _subject(plate, vin)
    if warning != WarningType.NONE:
        return NOTE_TRESPASS.format(warning=warning.value, subject=subject)
    if duplicate:
        return NOTE_DUPLICATE.format(subject=subject)
    return NOTE_INITIAL.format(subject=subject)


def commit_capture(
    recognition: RecognitionResult,
    photos: Sequence[Photo],
    warning: WarningType,
    existing_id: Optional[str] = None,
    location: Optional[Location] = None,
    *,
    records: Sequence[AssetRecord] = (),
    operator: str = "Unassigned",
    now: Optional[datetime.datetime] = None,
    id_factory: Callable[[], str] = new_id,
) -> Tuple[AssetRecord, InteractionRecord]:
    """
    Create or update an asset and build the interaction for one review run.

    Raises
    ------
    AssetNotFoundError
        If ``existing_id`` is given but not present in ``records``.
    """
    now = now or utc_now()
    photos = list(photos)

    if existing_id is None:
        asset = AssetRecord(
            id=id_factory(),
            plate=recognition.plate or UNKNOWN,
            vin=recognition.vin or UNKNOWN,
            year=recognition.year or UNKNOWN,
            make=recognition.make or UNKNOWN,
            model=recognition.model or UNKNOWN,
            color=recognition.color or UNKNOWN,
            category=recognition.category,
            notes=recognition.notes,
            photos=photos[:MAX_ASSET_PHOTOS],
            timestamp=now,
            last_sighting=now,
            location=location,
        )
    else:
        current = next((r for r in records if r.id == existing_id), None)
        if current is None:
            raise AssetNotFoundError(f"Asset {existing_id} not found")
        updates = {
            "photos": (photos + list(current.photos))[:MAX_ASSET_PHOTOS],
            "last_sighting": now,
        }
        if location is not None:
            updates["location"] = location
        asset = current.model_copy(update=updates, deep=True)

    kind = InteractionKind.SIGHTING if warning == WarningType.NONE else InteractionKind.TRESPASS
    interaction = InteractionRecord(
        id=id_factory(),
        kind=kind,
        asset_id=asset.id,
        timestamp=now,
        notes=interaction_notes(warning, duplicate=existing_id is not None, plate=asset.plate, vin=asset.vin),
        operator=operator,
        warning_type=warning,
        location=location,
    )
    return asset, interaction
