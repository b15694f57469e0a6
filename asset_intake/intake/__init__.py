"""
Intake pipeline: queue, duplicate resolution, review workflow and commit.
"""

from .commit import MAX_ASSET_PHOTOS, commit_capture
from .dedup import find_existing
from .ingest import BatchItem, BatchItemOutcome, CaptureIngestor
from .queue import IntakeQueue
from .workflow import (
    CLOSED,
    Closed,
    Duplicate,
    IntakeWorkflow,
    TrespassPrompt,
    WarningMethod,
    WorkflowOutcome,
    state_name,
)

__all__ = [
    "MAX_ASSET_PHOTOS",
    "commit_capture",
    "find_existing",
    "BatchItem",
    "BatchItemOutcome",
    "CaptureIngestor",
    "IntakeQueue",
    "CLOSED",
    "Closed",
    "Duplicate",
    "IntakeWorkflow",
    "TrespassPrompt",
    "WarningMethod",
    "WorkflowOutcome",
    "state_name",
]
