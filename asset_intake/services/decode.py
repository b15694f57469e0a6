"""
NHTSA vPIC client used as the external VIN decode service.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

import requests

from ..config import NHTSA_VPIC_URL, DecodeConfig
from ..models.records import VIN_PLACEHOLDERS
from ..models.vin import ManufacturingInfo

MIN_DECODABLE_LENGTH = 11

ERROR_MAP: Dict[str, str] = {
    "0": "Clean Decode",
    "1": "Check Digit Mismatch",
    "2": "Corrected Position Error",
    "3": "Corrected (Assumed Digit)",
    "5": "Incomplete VIN (Multiple Pos)",
    "6": "Incomplete VIN",
    "11": "Incorrect Model Year Pos",
    "400": "Invalid Characters",
}

_EMPTY_VALUES = {"", "0", "Not Applicable"}


def _filter_values(result: Dict[str, Any]) -> Dict[str, str]:
    filtered: Dict[str, str] = {}
    for key, value in result.items():
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value in _EMPTY_VALUES:
            continue
        filtered[key] = value
    return filtered


def operational_status(error_code: Optional[str]) -> str:
    code = (error_code or "0").split(" ")[0].strip()
    return ERROR_MAP.get(code, "Unrecognized Status")


def parse_decode_response(payload: Any) -> Optional[ManufacturingInfo]:
    """Map a ``DecodeVinValues`` JSON body onto :class:`ManufacturingInfo`."""
    if not isinstance(payload, dict):
        return None
    results = payload.get("Results")
    if not isinstance(results, list) or not results or not isinstance(results[0], dict):
        return None
    first = results[0]
    values = _filter_values(first)
    return ManufacturingInfo(
        country=values.get("PlantCountry"),
        manufacturer=values.get("Make"),
        plant=values.get("PlantCity"),
        model_year=values.get("ModelYear"),
        operational_status=operational_status(first.get("ErrorCode")),
    )


class NhtsaDecodeClient:
    def __init__(
        self,
        base_url: str = NHTSA_VPIC_URL,
        *,
        timeout_sec: float = 5.0,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.logger = logger or logging.getLogger("VinDecode")
        self.base_url = base_url.rstrip("/")
        self.timeout_sec = float(timeout_sec)
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, cfg: DecodeConfig) -> "NhtsaDecodeClient":
        return cls(cfg.base_url, timeout_sec=cfg.timeout_sec)

    def decode(self, vin: str) -> Optional[ManufacturingInfo]:
        """Blocking decode. Returns ``None`` on skip, no match or any transport error."""
        if not vin or vin in VIN_PLACEHOLDERS:
            return None
        clean = "".join(vin.split()).replace("-", "").upper()
        if len(clean) < MIN_DECODABLE_LENGTH:
            return None
        url = f"{self.base_url}/DecodeVinValues/{clean}"
        try:
            resp = self.session.get(url, params={"format": "json"}, timeout=self.timeout_sec)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as exc:
            self.logger.warning("VIN decode failed vin=%s: %s", clean, exc)
            return None
        info = parse_decode_response(payload)
        if info is None:
            self.logger.info("VIN decode returned no results vin=%s", clean)
        return info

    async def lookup(self, vin: str) -> Optional[ManufacturingInfo]:
        return await asyncio.to_thread(self.decode, vin)

    def close(self) -> None:
        self.session.close()
