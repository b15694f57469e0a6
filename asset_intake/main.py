"""
Command-line entry point for asset intake.

Usage (from project root)::

    python -m asset_intake.main vin 1HGBH41JXMN109186
    python -m asset_intake.main --config config/asset_intake.yaml review --captures captures.json

``vin`` prints the reasoning for a single VIN as JSON. ``review`` replays a
JSON list of recorded vision payloads through batch ingestion, then walks
the operator through each queued capture on the console until the queue is
drained.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TextIO, Tuple

from dotenv import load_dotenv

from .config import Settings, load_settings
from .core.errors import IntakeError, PersistenceError
from .intake.ingest import BatchItem, CaptureIngestor
from .intake.queue import IntakeQueue
from .intake.workflow import IntakeWorkflow, state_name
from .logging_config import parse_level, setup_logging
from .models.records import Location, Photo
from .services.decode import NhtsaDecodeClient
from .store.json_store import JsonRecordStore
from .vin.reasoning import reason

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID_VIN = 2

QUIT_COMMANDS = {"quit", "exit", "q"}


def parse_args(argv: List[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Vehicle asset intake")
    parser.add_argument(
        "--config",
        type=str,
        default=os.getenv("ASSET_CONFIG_PATH", "config/asset_intake.yaml"),
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    parser.add_argument(
        "--log-file",
        type=str,
        default=os.getenv("ASSET_LOG_FILE"),
        help="Also write logs to this file",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    vin_cmd = sub.add_parser("vin", help="Verify a VIN and print the reasoning as JSON")
    vin_cmd.add_argument("vin", type=str)
    vin_cmd.add_argument(
        "--offline",
        action="store_true",
        help="Skip the external decode service",
    )

    review_cmd = sub.add_parser("review", help="Review queued captures on the console")
    review_cmd.add_argument(
        "--captures",
        type=str,
        required=True,
        help="JSON file holding a list of captures",
    )
    return parser.parse_args(argv)


def _decode_client(settings: Settings, offline: bool = False) -> Optional[NhtsaDecodeClient]:
    if offline or not settings.decode.enabled:
        return None
    return NhtsaDecodeClient.from_config(settings.decode)


class RecordedVision:
    """Vision service that replays payloads already returned by the recognition model."""

    def __init__(self, payloads: Dict[bytes, Dict[str, Any]]) -> None:
        self.payloads = payloads

    async def analyze(self, image: bytes) -> Dict[str, Any]:
        return self.payloads[image]


def load_captures(path: str | Path) -> Tuple[List[BatchItem], RecordedVision]:
    """
    Read a JSON list of recorded captures.

    Each entry is either ``{"recognition": {...}, "photo": {...}, "location": {...}}``
    or a bare vision payload.
    """
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise IntakeError(f"{path} must contain a JSON list of captures")
    items: List[BatchItem] = []
    payloads: Dict[bytes, Dict[str, Any]] = {}
    for index, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            raise IntakeError(f"capture entry {index} must be an object, got {type(entry).__name__}")
        key = f"{Path(path).name}#{index}".encode()
        if "recognition" in entry:
            payload = entry.get("recognition")
            photo = Photo.model_validate(entry["photo"]) if entry.get("photo") else None
            location = Location.model_validate(entry["location"]) if entry.get("location") else None
        else:
            payload, photo, location = entry, None, None
        payloads[key] = payload if isinstance(payload, dict) else {}
        items.append(BatchItem(image=key, photo=photo, id=f"capture-{index}", location=location))
    return items, RecordedVision(payloads)


def _describe(workflow: IntakeWorkflow) -> str:
    capture = workflow.active
    state = workflow.state
    if capture is None:
        return f"[{state_name(state)}]"
    rec = capture.recognition
    lines = [f"[{state_name(state)}] capture {capture.id} plate={rec.plate or '-'} vin={rec.vin or '-'}"]
    existing = getattr(state, "existing", None)
    if existing is not None:
        lines.append(f"  existing asset {existing.id} plate={existing.plate} vin={existing.vin}")
    reasoning = capture.vin_reasoning
    if reasoning is not None:
        lines.append(f"  checksum {reasoning.checksum_status.value}")
        for error in reasoning.errors:
            lines.append(f"  ! {error}")
        if reasoning.suggestions:
            lines.append(f"  suggestions: {', '.join(reasoning.suggestions)}")
    actions = list(workflow.available_actions()) + ["correct <VIN>", "cancel", "quit"]
    lines.append(f"  actions: {' | '.join(actions)}")
    return "\n".join(lines)


def run_console(
    workflow: IntakeWorkflow,
    *,
    read_line: Callable[[str], str] = input,
    out: Optional[TextIO] = None,
) -> int:
    """Drive the workflow from console input until the queue is drained."""
    if out is None:
        out = sys.stdout
    workflow.pump()
    while not workflow.is_idle:
        print(_describe(workflow), file=out)
        try:
            line = read_line("> ").strip()
        except EOFError:
            break
        if not line:
            continue
        command, _, argument = line.partition(" ")
        command = command.lower()
        if command in QUIT_COMMANDS:
            break
        try:
            if command == "correct":
                asyncio.run(workflow.apply_vin_correction(argument))
            elif command == "cancel":
                workflow.cancel()
            else:
                workflow.dispatch(command)
        except PersistenceError as exc:
            print(f"  save failed, try again: {exc}", file=out)
        except IntakeError as exc:
            print(f"  {exc}", file=out)
    committed = sum(1 for o in workflow.history if o.result == "committed")
    print(f"Reviewed {len(workflow.history)} capture(s), {committed} committed", file=out)
    return EXIT_OK


def _run_vin(args: argparse.Namespace, settings: Settings) -> int:
    client = _decode_client(settings, offline=args.offline)
    try:
        result = asyncio.run(reason(args.vin, client.lookup if client else None))
    finally:
        if client is not None:
            client.close()
    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return EXIT_OK if result.is_valid else EXIT_INVALID_VIN


def _run_review(args: argparse.Namespace, settings: Settings, logger: logging.Logger) -> int:
    store = JsonRecordStore(settings.store.path)
    try:
        store.load()
    except PersistenceError as exc:
        logger.error("Cannot open record store: %s", exc)
        return EXIT_ERROR
    try:
        items, vision = load_captures(args.captures)
    except (OSError, ValueError, IntakeError) as exc:
        logger.error("Failed to load captures from %s: %s", args.captures, exc)
        return EXIT_ERROR
    client = _decode_client(settings)
    lookup = client.lookup if client else None
    try:
        queue = IntakeQueue(max_pending=settings.queue.max_pending)
        workflow = IntakeWorkflow(
            queue,
            store,
            operator=settings.operator,
            decode_lookup=lookup,
            auto_pump=False,
        )
        ingestor = CaptureIngestor.from_settings(queue, vision, settings, decode_lookup=lookup)
        for outcome in asyncio.run(ingestor.ingest_batch(items)):
            if outcome.status != "success":
                print(f"Skipped {outcome.item_id}: {outcome.error} ({outcome.error_type})")
        logger.info("Queued %s capture(s) for review by %s", len(queue), settings.operator)
        return run_console(workflow)
    finally:
        if client is not None:
            client.close()


def main(argv: List[str] | None = None) -> int:
    load_dotenv()
    args = parse_args(argv if argv is not None else sys.argv[1:])
    setup_logging(level=parse_level(args.log_level), log_file=args.log_file)
    logger = logging.getLogger("main")
    config_path = args.config if args.config and Path(args.config).exists() else None
    if args.config and config_path is None:
        logger.warning("Configuration file %s not found; using defaults", args.config)
    try:
        settings = load_settings(config_path)
    except Exception as exc:
        logger.error("Failed to load configuration: %s", exc)
        return EXIT_ERROR
    if args.command == "vin":
        return _run_vin(args, settings)
    return _run_review(args, settings, logger)


if __name__ == "__main__":
    sys.exit(main())
