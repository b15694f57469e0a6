"""
JSON-file record store for assets and interactions.

The whole document is loaded once at startup and rewritten atomically after
every mutation. Assets are kept newest-first by insertion; interactions are
newest-first.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..core.errors import PersistenceError, read_json, write_json_atomic
from ..models.records import AssetRecord, InteractionRecord

_UNREADABLE = object()


class JsonRecordStore:
    def __init__(self, path: Path | str, *, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger("RecordStore")
        self.path = Path(path)
        self._lock = threading.Lock()
        self._assets: List[AssetRecord] = []
        self._interactions: List[InteractionRecord] = []
        self._rejected: Dict[str, list] = {"assets": [], "interactions": []}
        self.loaded = False

    def load(self) -> None:
        """
        Read the store document from disk.

        A missing file starts an empty store. A file that exists but does not
        parse raises :class:`PersistenceError` and is left untouched, so a
        later commit cannot overwrite records that failed to load.
        """
        if not self.path.exists():
            self.logger.info("No record store at %s; starting empty", self.path)
            with self._lock:
                self._assets, self._interactions = [], []
                self._rejected = {"assets": [], "interactions": []}
                self.loaded = True
            return
        payload = read_json(self.path, _UNREADABLE, logger=self.logger)
        if payload is _UNREADABLE:
            raise PersistenceError(f"Record store {self.path} is unreadable; refusing to start empty")
        if not isinstance(payload, dict):
            raise PersistenceError(f"Record store {self.path} must hold a JSON object")
        rejected: Dict[str, list] = {}
        assets = self._parse(payload, "assets", AssetRecord, rejected)
        interactions = self._parse(payload, "interactions", InteractionRecord, rejected)
        with self._lock:
            self._assets = assets
            self._interactions = interactions
            self._rejected = rejected
            self.loaded = True
        self.logger.info(
            "Record store loaded path=%s assets=%s interactions=%s",
            self.path,
            len(assets),
            len(interactions),
        )

    def _parse(self, payload: Dict[str, Any], key: str, model: type, rejected: Dict[str, list]) -> list:
        items = payload.get(key)
        if items is None:
            items = []
        if not isinstance(items, list):
            raise PersistenceError(f"Record store {self.path}: '{key}' must be a list")
        out, skipped = [], []
        for item in items:
            try:
                out.append(model.model_validate(item))
            except ValidationError as exc:
                # kept verbatim and written back on save
                skipped.append(item)
                self.logger.warning("Skipping unreadable %s entry in %s: %s", model.__name__, self.path, exc)
        rejected[key] = skipped
        return out

    @property
    def assets(self) -> List[AssetRecord]:
        with self._lock:
            return list(self._assets)

    @property
    def interactions(self) -> List[InteractionRecord]:
        with self._lock:
            return list(self._interactions)

    def get_asset(self, asset_id: str) -> Optional[AssetRecord]:
        with self._lock:
            return next((a for a in self._assets if a.id == asset_id), None)

    def _document(self) -> Dict[str, Any]:
        if not self.loaded:
            raise PersistenceError(f"Record store {self.path} was not loaded; refusing to overwrite it")
        return {
            "assets": [a.model_dump(mode="json") for a in self._assets] + self._rejected.get("assets", []),
            "interactions": [i.model_dump(mode="json") for i in self._interactions]
            + self._rejected.get("interactions", []),
        }

    @property
    def rejected(self) -> Dict[str, list]:
        """Raw entries that failed validation on load, by collection."""
        with self._lock:
            return {key: list(items) for key, items in self._rejected.items()}

    def save(self) -> bool:
        with self._lock:
            document = self._document()
        return write_json_atomic(self.path, document, logger=self.logger)

    def persist_commit(self, asset: AssetRecord, interaction: InteractionRecord) -> None:
        """
        Store an asset and its interaction together.

        Both entities are written or neither: on a failed write the
        in-memory collections are restored and :class:`PersistenceError`
        is raised.
        """
        with self._lock:
            if not self.loaded:
                raise PersistenceError(f"Record store {self.path} was not loaded; refusing to overwrite it")
            previous_assets = self._assets
            previous_interactions = self._interactions

            assets = list(previous_assets)
            index = next((i for i, a in enumerate(assets) if a.id == asset.id), None)
            if index is None:
                assets.insert(0, asset)
            else:
                assets[index] = asset
            self._assets = assets
            self._interactions = [interaction] + list(previous_interactions)

            if not write_json_atomic(self.path, self._document(), logger=self.logger):
                self._assets = previous_assets
                self._interactions = previous_interactions
                raise PersistenceError(f"Failed to write record store {self.path}")
        self.logger.info(
            "Committed asset=%s interaction=%s kind=%s",
            asset.id,
            interaction.id,
            interaction.kind.value,
        )
