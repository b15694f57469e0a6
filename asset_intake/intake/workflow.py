"""
Operator confirmation workflow for queued captures.

Exactly one capture is under review at a time. On dequeue the duplicate
resolver decides the first state::

    Duplicate{existing} --update_asset--> TrespassPrompt{existing}
    Duplicate{existing} --discard-------> Closed            (nothing written)
    TrespassPrompt      --trespass_yes--> WarningMethod
    TrespassPrompt      --trespass_no---> commit(None) -> Closed
    WarningMethod       --warn_*--------> commit(type) -> Closed

Reaching ``Closed`` pulls the next capture from the queue, if any. The
rendering layer only reads :attr:`IntakeWorkflow.state` and
:meth:`IntakeWorkflow.available_actions`.
"""

from __future__ import annotations

import collections
import datetime
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Optional, Tuple, Union

from ..core.errors import InvalidTransitionError
from ..models.records import AssetRecord, PendingCapture, RecognitionResult, WarningType, new_id, utc_now
from ..store.json_store import JsonRecordStore
from ..vin.reasoning import DecodeLookup, reason
from .commit import commit_capture
from .dedup import find_existing
from .queue import IntakeQueue


@dataclass(frozen=True)
class Duplicate:
    existing: AssetRecord


@dataclass(frozen=True)
class TrespassPrompt:
    # set once the operator chose "Update Asset"
    existing: Optional[AssetRecord] = None


@dataclass(frozen=True)
class WarningMethod:
    existing: Optional[AssetRecord] = None


@dataclass(frozen=True)
class Closed:
    pass


WorkflowState = Union[Duplicate, TrespassPrompt, WarningMethod, Closed]

CLOSED = Closed()

HISTORY_LIMIT = 1000

UPDATE_ASSET = "update_asset"
DISCARD = "discard"
TRESPASS_YES = "trespass_yes"
TRESPASS_NO = "trespass_no"
WARN_VERBAL = "warn_verbal"
WARN_WRITTEN = "warn_written"
WARN_NONE = "warn_none"

ACTIONS: Dict[type, Tuple[str, ...]] = {
    Duplicate: (UPDATE_ASSET, DISCARD),
    TrespassPrompt: (TRESPASS_YES, TRESPASS_NO),
    WarningMethod: (WARN_VERBAL, WARN_WRITTEN, WARN_NONE),
    Closed: (),
}

_WARNING_ACTIONS = {
    WARN_VERBAL: WarningType.VERBAL,
    WARN_WRITTEN: WarningType.WRITTEN,
    WARN_NONE: WarningType.NONE,
}


def state_name(state: WorkflowState) -> str:
    return type(state).__name__


@dataclass(frozen=True)
class WorkflowOutcome:
    capture_id: str
    result: str  # committed | discarded | cancelled
    asset_id: Optional[str] = None
    interaction_id: Optional[str] = None


class IntakeWorkflow:
    def __init__(
        self,
        queue: IntakeQueue,
        store: JsonRecordStore,
        *,
        operator: str = "Unassigned",
        decode_lookup: Optional[DecodeLookup] = None,
        clock: Callable[[], datetime.datetime] = utc_now,
        id_factory: Callable[[], str] = new_id,
        logger: Optional[logging.Logger] = None,
        auto_pump: bool = True,
        history_limit: int = HISTORY_LIMIT,
    ) -> None:
        self.logger = logger or logging.getLogger("IntakeWorkflow")
        self.queue = queue
        self.store = store
        self.operator = operator
        self.decode_lookup = decode_lookup
        self._clock = clock
        self._id_factory = id_factory
        # Serializes operator actions with pumps fired from producer threads.
        self._lock = threading.RLock()
        self._state: WorkflowState = CLOSED
        self._active: Optional[PendingCapture] = None
        # most recent outcomes only; older ones are dropped
        self.history: Deque[WorkflowOutcome] = collections.deque(maxlen=history_limit)
        if auto_pump:
            queue.add_listener(self.pump)

    @property
    def state(self) -> WorkflowState:
        with self._lock:
            return self._state

    @property
    def active(self) -> Optional[PendingCapture]:
        with self._lock:
            return self._active

    @property
    def is_idle(self) -> bool:
        with self._lock:
            return isinstance(self._state, Closed)

    def available_actions(self) -> Tuple[str, ...]:
        with self._lock:
            return ACTIONS[type(self._state)]

    def pump(self) -> Optional[PendingCapture]:
        """Start reviewing the next queued capture if no review is in progress."""
        with self._lock:
            if not isinstance(self._state, Closed):
                return None
            capture = self.queue.try_dequeue_next()
            if capture is None:
                return None
            self._active = capture
            self._resolve()
            self.logger.info("Reviewing capture %s state=%s", capture.id, state_name(self._state))
            return capture

    def _resolve(self) -> None:
        existing = find_existing(self._active, self.store.assets)
        self._state = Duplicate(existing) if existing is not None else TrespassPrompt()

    def _require(self, action: str) -> WorkflowState:
        state = self._state
        if action not in ACTIONS[type(state)]:
            raise InvalidTransitionError(action, state_name(state))
        return state

    def dispatch(self, action: str) -> WorkflowState:
        """Run a transition by name and return the resulting state."""
        handlers: Dict[str, Callable[[], WorkflowState]] = {
            UPDATE_ASSET: self.update_asset,
            DISCARD: self.discard,
            TRESPASS_YES: self.trespass_yes,
            TRESPASS_NO: self.trespass_no,
        }
        if action in _WARNING_ACTIONS:
            return self.choose_warning(_WARNING_ACTIONS[action])
        handler = handlers.get(action)
        if handler is None:
            with self._lock:
                raise InvalidTransitionError(action, state_name(self._state))
        return handler()

    def update_asset(self) -> WorkflowState:
        with self._lock:
            state = self._require(UPDATE_ASSET)
            self._state = TrespassPrompt(existing=state.existing)
            return self._state

    def discard(self) -> WorkflowState:
        with self._lock:
            self._require(DISCARD)
            self.logger.info("Capture %s discarded as duplicate", self._active.id)
            return self._close("discarded")

    def trespass_yes(self) -> WorkflowState:
        with self._lock:
            state = self._require(TRESPASS_YES)
            self._state = WarningMethod(existing=state.existing)
            return self._state

    def trespass_no(self) -> WorkflowState:
        with self._lock:
            self._require(TRESPASS_NO)
            return self._commit(WarningType.NONE)

    def choose_warning(self, warning: WarningType) -> WorkflowState:
        action = next(name for name, value in _WARNING_ACTIONS.items() if value == warning)
        with self._lock:
            self._require(action)
            return self._commit(warning)

    def cancel(self) -> WorkflowState:
        """Abandon the active review without writing anything."""
        with self._lock:
            if isinstance(self._state, Closed):
                return self._state
            self.logger.info("Review of capture %s cancelled", self._active.id)
            return self._close("cancelled")

    async def apply_vin_correction(self, vin: str) -> WorkflowState:
        """
        Replace the active capture's VIN with an operator-edited value.

        The VIN is re-reasoned and, unless the operator already chose to
        update an existing asset, duplicate resolution runs again against
        the corrected value.
        """
        with self._lock:
            state = self._state
            if not isinstance(state, (Duplicate, TrespassPrompt)):
                raise InvalidTransitionError("correct_vin", state_name(state))
            capture_id = self._active.id

        corrected = vin.strip().upper()
        reasoning = await reason(corrected, self.decode_lookup)

        with self._lock:
            if self._active is None or self._active.id != capture_id:
                # the review ended while the lookup was in flight
                return self._state
            if not isinstance(self._state, (Duplicate, TrespassPrompt)):
                # the operator moved on to the warning choice; leave the VIN as captured
                self.logger.info("Ignoring VIN correction on capture %s in state %s", capture_id, state_name(self._state))
                return self._state
            recognition = RecognitionResult.model_validate(
                {**self._active.recognition.model_dump(), "vin": corrected}
            )
            self._active = self._active.model_copy(
                update={"recognition": recognition, "vin_reasoning": reasoning}
            )
            current = self._state
            if isinstance(current, TrespassPrompt) and current.existing is not None:
                return current
            self._resolve()
            self.logger.info(
                "VIN corrected on capture %s to %s (checksum %s) state=%s",
                capture_id,
                corrected,
                reasoning.checksum_status.value,
                state_name(self._state),
            )
            return self._state

    def _commit(self, warning: WarningType) -> WorkflowState:
        capture = self._active
        existing = getattr(self._state, "existing", None)
        asset, interaction = commit_capture(
            capture.recognition,
            capture.photos,
            warning,
            existing.id if existing is not None else None,
            capture.location,
            records=self.store.assets,
            operator=self.operator,
            now=self._clock(),
            id_factory=self._id_factory,
        )
        # PersistenceError propagates with the state untouched so the operator can retry
        self.store.persist_commit(asset, interaction)
        return self._close("committed", asset_id=asset.id, interaction_id=interaction.id)

    def _close(self, result: str, *, asset_id: Optional[str] = None, interaction_id: Optional[str] = None) -> WorkflowState:
        self.history.append(
            WorkflowOutcome(
                capture_id=self._active.id,
                result=result,
                asset_id=asset_id,
                interaction_id=interaction_id,
            )
        )
        self._active = None
        self._state = CLOSED
        self.pump()
        return self._state
