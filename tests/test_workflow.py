from __future__ import annotations

import asyncio
import datetime
import itertools
import json
from pathlib import Path

import pytest

from asset_intake.core.errors import InvalidTransitionError, PersistenceError
from asset_intake.intake.queue import IntakeQueue
from asset_intake.intake.workflow import (
    CLOSED,
    Duplicate,
    IntakeWorkflow,
    TrespassPrompt,
    WarningMethod,
)
from asset_intake.models.records import (
    AssetRecord,
    InteractionKind,
    PendingCapture,
    Photo,
    RecognitionResult,
    WarningType,
)
from asset_intake.models.vin import ChecksumStatus
from asset_intake.store import json_store
from asset_intake.store.json_store import JsonRecordStore

REFERENCE_VIN = "1HGBH41JXMN109186"
NOW = datetime.datetime(2024, 5, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _make_workflow(tmp_path: Path, assets=()) -> tuple[IntakeWorkflow, IntakeQueue, JsonRecordStore]:
    path = tmp_path / "store.json"
    if assets:
        document = {"assets": [a.model_dump(mode="json") for a in assets], "interactions": []}
        path.write_text(json.dumps(document), encoding="utf-8")
    store = JsonRecordStore(path)
    store.load()
    queue = IntakeQueue()
    counter = itertools.count(1)
    workflow = IntakeWorkflow(
        queue,
        store,
        operator="Officer Reyes",
        clock=lambda: NOW,
        id_factory=lambda: f"id-{next(counter)}",
    )
    return workflow, queue, store


def _capture(cid: str, plate: str = "Unknown", vin: str = "Not Scanned", photos=()) -> PendingCapture:
    return PendingCapture(id=cid, recognition=RecognitionResult(plate=plate, vin=vin), photos=list(photos))


def test_new_vehicle_without_trespass(tmp_path: Path):
    workflow, queue, store = _make_workflow(tmp_path)
    assert workflow.is_idle

    queue.enqueue(_capture("C1", plate="Unknown", vin=REFERENCE_VIN))
    assert workflow.state == TrespassPrompt()
    assert workflow.available_actions() == ("trespass_yes", "trespass_no")

    assert workflow.trespass_no() == CLOSED

    assert len(store.assets) == 1
    asset = store.assets[0]
    assert asset.vin == REFERENCE_VIN
    assert asset.plate == "Unknown"
    assert len(store.interactions) == 1
    interaction = store.interactions[0]
    assert interaction.kind == InteractionKind.SIGHTING
    assert interaction.warning_type == WarningType.NONE
    assert interaction.asset_id == asset.id
    assert interaction.operator == "Officer Reyes"
    assert workflow.history[-1].result == "committed"


def test_repeat_vehicle_with_written_warning(tmp_path: Path):
    existing = AssetRecord(id="A1", vin=REFERENCE_VIN, photos=[Photo(url="old.jpg")])
    workflow, queue, store = _make_workflow(tmp_path, [existing])

    queue.enqueue(_capture("C1", vin=REFERENCE_VIN, photos=[Photo(url="new.jpg")]))
    state = workflow.state
    assert isinstance(state, Duplicate)
    assert state.existing.id == "A1"

    state = workflow.update_asset()
    assert isinstance(state, TrespassPrompt) and state.existing.id == "A1"
    assert isinstance(workflow.trespass_yes(), WarningMethod)
    assert workflow.dispatch("warn_written") == CLOSED

    assert [a.id for a in store.assets] == ["A1"]
    assert [p.url for p in store.assets[0].photos] == ["new.jpg", "old.jpg"]
    assert store.assets[0].last_sighting == NOW
    interaction = store.interactions[0]
    assert interaction.kind == InteractionKind.TRESPASS
    assert interaction.warning_type == WarningType.WRITTEN
    assert interaction.asset_id == "A1"


def test_discard_leaves_store_untouched(tmp_path: Path):
    workflow, queue, store = _make_workflow(tmp_path, [AssetRecord(id="A1", plate="ABC123")])
    before = store.path.read_bytes()

    queue.enqueue(_capture("C1", plate="ABC123"))
    assert isinstance(workflow.state, Duplicate)
    assert workflow.discard() == CLOSED

    assert store.path.read_bytes() == before
    assert store.interactions == []
    assert workflow.history[-1].result == "discarded"


def test_captures_reviewed_in_queue_order(tmp_path: Path):
    workflow, queue, store = _make_workflow(tmp_path)
    for cid, plate in (("C1", "AAA111"), ("C2", "BBB222"), ("C3", "CCC333")):
        queue.enqueue(_capture(cid, plate=plate))

    assert workflow.active.id == "C1"
    assert len(queue) == 2
    for _ in range(3):
        workflow.trespass_no()

    assert [o.capture_id for o in workflow.history] == ["C1", "C2", "C3"]
    assert workflow.is_idle
    assert [a.plate for a in store.assets] == ["CCC333", "BBB222", "AAA111"]


def test_enqueue_during_review_waits(tmp_path: Path):
    workflow, queue, _ = _make_workflow(tmp_path)
    queue.enqueue(_capture("C1", plate="AAA111"))
    queue.enqueue(_capture("C2", plate="BBB222"))
    assert workflow.active.id == "C1"
    workflow.trespass_yes()
    assert workflow.choose_warning(WarningType.VERBAL) == TrespassPrompt()
    assert workflow.active.id == "C2"


def test_invalid_transition_keeps_state(tmp_path: Path):
    workflow, queue, _ = _make_workflow(tmp_path)
    with pytest.raises(InvalidTransitionError):
        workflow.update_asset()

    queue.enqueue(_capture("C1", plate="AAA111"))
    with pytest.raises(InvalidTransitionError) as info:
        workflow.discard()
    assert info.value.state == "TrespassPrompt"
    with pytest.raises(InvalidTransitionError):
        workflow.dispatch("warn_verbal")
    with pytest.raises(InvalidTransitionError):
        workflow.dispatch("launch")
    assert workflow.state == TrespassPrompt()
    assert workflow.active.id == "C1"


def test_cancel_closes_without_writing(tmp_path: Path):
    workflow, queue, store = _make_workflow(tmp_path)
    queue.enqueue(_capture("C1", plate="AAA111"))
    workflow.trespass_yes()
    assert workflow.cancel() == CLOSED
    assert store.assets == []
    assert workflow.history[-1].result == "cancelled"
    assert workflow.cancel() == CLOSED


def test_vin_correction_reruns_duplicate_resolution(tmp_path: Path):
    workflow, queue, _ = _make_workflow(tmp_path, [AssetRecord(id="A1", vin=REFERENCE_VIN)])
    queue.enqueue(_capture("C1", vin="1HGBH41JXMN1091B6"))
    assert workflow.state == TrespassPrompt()

    state = asyncio.run(workflow.apply_vin_correction(" 1hgbh41jxmn109186 "))

    assert isinstance(state, Duplicate)
    assert state.existing.id == "A1"
    assert workflow.active.recognition.vin == REFERENCE_VIN
    assert workflow.active.vin_reasoning.checksum_status == ChecksumStatus.PASS


def test_vin_correction_after_update_keeps_target(tmp_path: Path):
    workflow, queue, _ = _make_workflow(tmp_path, [AssetRecord(id="A1", plate="ABC123")])
    queue.enqueue(_capture("C1", plate="ABC123", vin="1HGBH41JXMN1091B6"))
    workflow.update_asset()

    state = asyncio.run(workflow.apply_vin_correction(REFERENCE_VIN))

    assert isinstance(state, TrespassPrompt)
    assert state.existing.id == "A1"
    assert workflow.active.recognition.vin == REFERENCE_VIN


def test_vin_correction_not_allowed_when_choosing_warning(tmp_path: Path):
    workflow, queue, _ = _make_workflow(tmp_path)
    queue.enqueue(_capture("C1", plate="AAA111"))
    workflow.trespass_yes()
    with pytest.raises(InvalidTransitionError):
        asyncio.run(workflow.apply_vin_correction(REFERENCE_VIN))


def test_failed_save_keeps_review_open(tmp_path: Path, monkeypatch):
    workflow, queue, store = _make_workflow(tmp_path)
    queue.enqueue(_capture("C1", plate="AAA111"))

    monkeypatch.setattr(json_store, "write_json_atomic", lambda *_a, **_k: False)
    with pytest.raises(PersistenceError):
        workflow.trespass_no()
    assert workflow.state == TrespassPrompt()
    assert workflow.active.id == "C1"
    assert store.assets == []

    monkeypatch.undo()
    assert workflow.trespass_no() == CLOSED
    assert len(store.assets) == 1


def test_manual_pump_when_not_listening(tmp_path: Path):
    store = JsonRecordStore(tmp_path / "store.json")
    store.load()
    queue = IntakeQueue()
    workflow = IntakeWorkflow(queue, store, auto_pump=False)
    queue.enqueue(_capture("C1", plate="AAA111"))
    assert workflow.is_idle
    assert workflow.pump().id == "C1"
    assert workflow.state == TrespassPrompt()
    assert workflow.pump() is None


def test_vin_correction_does_not_undo_a_warning_choice_made_during_lookup(tmp_path: Path):
    workflow, queue, store = _make_workflow(tmp_path, [AssetRecord(id="A1", vin=REFERENCE_VIN)])
    queue.enqueue(_capture("C1", plate="AAA111", vin="1HGBH41JXMN1091B6"))
    assert workflow.state == TrespassPrompt()

    async def slow_lookup(_vin: str):
        # another operator action lands while the decode request is in flight
        workflow.trespass_yes()
        return None

    workflow.decode_lookup = slow_lookup
    state = asyncio.run(workflow.apply_vin_correction(REFERENCE_VIN))

    assert state == WarningMethod()
    assert workflow.state == WarningMethod()
    assert workflow.active.recognition.vin == "1HGBH41JXMN1091B6"
    workflow.choose_warning(WarningType.VERBAL)
    assert store.assets[-1].id == "A1"
    assert len(store.assets) == 2


def test_history_keeps_only_most_recent_outcomes(tmp_path: Path):
    store = JsonRecordStore(tmp_path / "store.json")
    store.load()
    queue = IntakeQueue()
    workflow = IntakeWorkflow(queue, store, history_limit=2)
    for cid in ("C1", "C2", "C3"):
        queue.enqueue(_capture(cid, plate=f"{cid}X"))
        workflow.cancel()

    assert [o.capture_id for o in workflow.history] == ["C2", "C3"]
    assert workflow.history[-1].result == "cancelled"
