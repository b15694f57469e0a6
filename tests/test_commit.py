from __future__ import annotations

import datetime
import itertools

import pytest

from asset_intake.core.errors import AssetNotFoundError
from asset_intake.intake.commit import MAX_ASSET_PHOTOS, commit_capture
from asset_intake.models.records import (
    AssetRecord,
    InteractionKind,
    Location,
    Photo,
    RecognitionResult,
    VehicleCategory,
    WarningType,
)

NOW = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _ids():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


def _photos(prefix: str, count: int) -> list[Photo]:
    return [Photo(url=f"{prefix}-{i}.jpg") for i in range(count)]


def test_new_asset_fills_unknowns():
    recognition = RecognitionResult(vin="1HGBH41JXMN109186", category="Suspicious")
    asset, interaction = commit_capture(
        recognition,
        _photos("new", 2),
        WarningType.NONE,
        now=NOW,
        operator="Officer Reyes",
        id_factory=_ids(),
    )
    assert asset.id == "id-1"
    assert asset.plate == "Unknown"
    assert asset.vin == "1HGBH41JXMN109186"
    assert asset.make == "Unknown"
    assert asset.category == VehicleCategory.SUSPICIOUS
    assert asset.timestamp == NOW
    assert asset.last_sighting == NOW
    assert [p.url for p in asset.photos] == ["new-0.jpg", "new-1.jpg"]

    assert interaction.id == "id-2"
    assert interaction.asset_id == asset.id
    assert interaction.kind == InteractionKind.SIGHTING
    assert interaction.warning_type == WarningType.NONE
    assert interaction.operator == "Officer Reyes"
    assert interaction.notes == "Initial sighting of VIN 1HGBH41JXMN109186 logged."


def test_new_asset_photos_are_capped():
    asset, _ = commit_capture(RecognitionResult(plate="ABC123"), _photos("p", 25), WarningType.NONE, now=NOW)
    assert len(asset.photos) == MAX_ASSET_PHOTOS


def test_existing_asset_prepends_photos_and_caps():
    existing = AssetRecord(id="A1", plate="ABC123", photos=_photos("old", 19), timestamp=NOW)
    later = NOW + datetime.timedelta(hours=1)

    asset, interaction = commit_capture(
        RecognitionResult(plate="ABC123"),
        _photos("new", 3),
        WarningType.WRITTEN,
        "A1",
        records=[existing],
        now=later,
    )

    assert asset.id == "A1"
    assert len(asset.photos) == MAX_ASSET_PHOTOS
    assert [p.url for p in asset.photos[:4]] == ["new-0.jpg", "new-1.jpg", "new-2.jpg", "old-0.jpg"]
    assert asset.photos[-1].url == "old-16.jpg"
    assert asset.timestamp == NOW
    assert asset.last_sighting == later
    # the stored record is not mutated in place
    assert len(existing.photos) == 19

    assert interaction.kind == InteractionKind.TRESPASS
    assert interaction.warning_type == WarningType.WRITTEN
    assert interaction.notes == "Trespass warning (Written) issued to plate ABC123."


def test_existing_location_replaced_only_when_supplied():
    old = Location(lat=1.0, lng=2.0)
    new = Location(lat=3.0, lng=4.0)
    existing = AssetRecord(id="A1", plate="ABC123", location=old)

    kept, _ = commit_capture(RecognitionResult(), [], WarningType.NONE, "A1", None, records=[existing])
    assert kept.location == old

    moved, interaction = commit_capture(RecognitionResult(), [], WarningType.NONE, "A1", new, records=[existing])
    assert moved.location == new
    assert interaction.location == new
    assert interaction.notes == "Repeat sighting of plate ABC123 logged against existing asset."


def test_missing_existing_asset_raises():
    with pytest.raises(AssetNotFoundError):
        commit_capture(RecognitionResult(), [], WarningType.NONE, "missing", records=[AssetRecord(id="A1")])


def test_unidentified_asset_notes():
    _, interaction = commit_capture(RecognitionResult(), [], WarningType.VERBAL)
    assert interaction.notes == "Trespass warning (Verbal) issued to unidentified asset."
