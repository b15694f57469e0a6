"""
Capture ingestion: vision recognition, geolocation and VIN reasoning for new
captures, then hand-off to the intake queue.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..config import Settings
from ..core.errors import ExternalLookupError, guarded_call_async
from ..models.records import Location, PendingCapture, Photo, RecognitionResult, new_id
from ..services.geolocation import DEFAULT_TIMEOUT_SEC, LocationProvider, acquire_location, location_or_none
from ..vin.reasoning import DecodeLookup, reason
from .queue import IntakeQueue

IDENTIFICATION_LABEL = "Identification Frame"

ERROR_NETWORK = "network"
ERROR_VISION = "vision"
ERROR_CONFIDENCE = "confidence"
ERROR_UNKNOWN = "unknown"


class VisionService(Protocol):
    async def analyze(self, image: bytes) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class BatchItem:
    image: bytes
    photo: Optional[Photo] = None
    id: str = field(default_factory=new_id)
    # known capture location; skips the location provider
    location: Optional[Location] = None


@dataclass(frozen=True)
class BatchItemOutcome:
    item_id: str
    status: str  # success | error
    capture: Optional[PendingCapture] = None
    error_type: Optional[str] = None
    error: Optional[str] = None


def _is_network_error(exc: BaseException) -> bool:
    if isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError, OSError)):
        return True
    message = str(exc).lower()
    return "network" in message or "fetch" in message


class CaptureIngestor:
    def __init__(
        self,
        queue: IntakeQueue,
        vision: VisionService,
        *,
        decode_lookup: Optional[DecodeLookup] = None,
        location_provider: Optional[LocationProvider] = None,
        geolocation_timeout: float = DEFAULT_TIMEOUT_SEC,
        min_confidence: float = 0.4,
        concurrency: int = 3,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("CaptureIngest")
        self.queue = queue
        self.vision = vision
        self.decode_lookup = decode_lookup
        self.location_provider = location_provider
        self.geolocation_timeout = geolocation_timeout
        self.min_confidence = min_confidence
        self.concurrency = max(1, int(concurrency))

    @classmethod
    def from_settings(
        cls,
        queue: IntakeQueue,
        vision: VisionService,
        settings: Settings,
        *,
        decode_lookup: Optional[DecodeLookup] = None,
        location_provider: Optional[LocationProvider] = None,
    ) -> "CaptureIngestor":
        return cls(
            queue,
            vision,
            decode_lookup=decode_lookup,
            location_provider=location_provider,
            geolocation_timeout=settings.geolocation.timeout_sec,
            min_confidence=settings.batch.min_confidence,
            concurrency=settings.batch.concurrency,
        )

    async def _recognize(self, image: bytes) -> RecognitionResult:
        payload = await self.vision.analyze(image)
        if not isinstance(payload, dict):
            raise ExternalLookupError(f"vision service returned {type(payload).__name__}")
        return RecognitionResult.from_vision_payload(payload)

    async def _build_capture(
        self,
        recognition: RecognitionResult,
        photos: Sequence[Photo],
        location: Optional[Location] = None,
    ) -> PendingCapture:
        if location is None:
            location = location_or_none(await acquire_location(self.location_provider, self.geolocation_timeout))
        vin_reasoning = None
        if recognition.vin:
            vin_reasoning = await reason(recognition.vin, self.decode_lookup)
        return PendingCapture(
            recognition=recognition,
            photos=list(photos),
            location=location,
            vin_reasoning=vin_reasoning,
        )

    async def ingest(self, image: bytes, photos: Sequence[Photo], target_index: int = 0) -> PendingCapture:
        """
        Recognise one capture and queue it for review.

        A vision failure does not drop the capture: it is queued with an
        empty recognition so the operator can still resolve it.
        """
        recognition = await guarded_call_async(
            "Vision analysis",
            lambda: self._recognize(image),
            fallback=RecognitionResult(),
            logger=self.logger,
        )
        labelled = [
            p.model_copy(update={"label": IDENTIFICATION_LABEL}) if i == target_index else p
            for i, p in enumerate(photos)
        ]
        capture = await self._build_capture(recognition, labelled)
        self.queue.enqueue(capture)
        return capture

    async def _process_batch_item(self, item: BatchItem) -> BatchItemOutcome:
        try:
            recognition = await self._recognize(item.image)
        except Exception as exc:
            error_type = ERROR_NETWORK if _is_network_error(exc) else ERROR_UNKNOWN
            self.logger.warning("Batch item %s failed (%s): %s", item.id, error_type, exc)
            return BatchItemOutcome(item_id=item.id, status="error", error_type=error_type, error=str(exc) or error_type)

        if recognition.confidence is not None and recognition.confidence < self.min_confidence:
            return BatchItemOutcome(
                item_id=item.id,
                status="error",
                error_type=ERROR_CONFIDENCE,
                error=f"Low recognition confidence ({recognition.confidence * 100:.0f}%)",
            )
        if not recognition.has_identity:
            return BatchItemOutcome(
                item_id=item.id,
                status="error",
                error_type=ERROR_VISION,
                error="No plate or VIN detected",
            )

        photos = [item.photo] if item.photo is not None else []
        capture = await self._build_capture(recognition, photos, item.location)
        return BatchItemOutcome(item_id=item.id, status="success", capture=capture)

    async def ingest_batch(self, items: Sequence[BatchItem]) -> List[BatchItemOutcome]:
        """
        Recognise many captures with bounded concurrency.

        Successful captures are queued in input order once every item has
        been processed; rejected items are only reported.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run(item: BatchItem) -> BatchItemOutcome:
            async with semaphore:
                return await self._process_batch_item(item)

        outcomes = list(await asyncio.gather(*(run(item) for item in items)))
        for idx, outcome in enumerate(outcomes):
            if outcome.capture is None:
                continue
            if not self.queue.enqueue(outcome.capture):
                outcomes[idx] = dataclasses.replace(
                    outcome,
                    status="error",
                    capture=None,
                    error_type=ERROR_UNKNOWN,
                    error="Intake queue full",
                )
        succeeded = sum(1 for o in outcomes if o.status == "success")
        self.logger.info("Batch import finished: %s/%s queued", succeeded, len(outcomes))
        return outcomes
