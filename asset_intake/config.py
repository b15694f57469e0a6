"""
Configuration loading for the asset intake service.

This module provides a Settings class that loads configuration data
from a YAML file located on disk and allows overrides via environment
variables. Environment variables take precedence over values defined
in the YAML configuration. See ``config/asset_intake.yaml`` for a sample
configuration file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


NHTSA_VPIC_URL = "https://vpic.nhtsa.dot.gov/api/vehicles"


@dataclass
class StoreConfig:
    """Location of the JSON record store."""
    path: str = "data/asset_store.json"


@dataclass
class DecodeConfig:
    """External VIN decode service settings."""
    enabled: bool = True
    base_url: str = NHTSA_VPIC_URL
    timeout_sec: float = 5.0


@dataclass
class GeolocationConfig:
    """Budget for acquiring the capture location."""
    timeout_sec: float = 5.0


@dataclass
class BatchConfig:
    """
    Batch import policy.

    Attributes
    ----------
    concurrency: int
        Number of captures sent to the vision service at the same time.
    min_confidence: float
        Recognition confidence below which a batch item is rejected.
    """

    concurrency: int = 3
    min_confidence: float = 0.4


@dataclass
class QueueConfig:
    """Intake queue bound. ``0`` disables the bound."""
    max_pending: int = 0


@dataclass
class Settings:
    """
    Application settings loaded from YAML and environment variables.

    Parameters are typed for convenience. Every leaf value may be
    overridden via the environment variable names listed in
    :func:`load_settings`.
    """

    operator: str = "Unassigned"
    store: StoreConfig = field(default_factory=StoreConfig)
    decode: DecodeConfig = field(default_factory=DecodeConfig)
    geolocation: GeolocationConfig = field(default_factory=GeolocationConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)


def _load_yaml_file(config_path: Path) -> dict:
    """Load a YAML configuration file and return a dictionary."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file {config_path!s} not found")
    with config_path.open('r', encoding='utf-8') as f:
        return yaml.safe_load(f) or {}


def _section(data: dict, name: str) -> dict:
    value = data.get(name)
    return value if isinstance(value, dict) else {}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return bool(default)
    return raw.strip().lower() in {"1", "true", "yes", "y"}


def load_settings(config_path: Optional[str] = None) -> Settings:
    """
    Load settings from a YAML file and environment variables.

    Environment variable overrides:

    - ``ASSET_OPERATOR`` overrides ``operator``
    - ``ASSET_STORE_PATH`` overrides ``store.path``
    - ``ASSET_DECODE_ENABLED`` / ``ASSET_DECODE_BASE_URL`` /
      ``ASSET_DECODE_TIMEOUT_SEC`` override the ``decode`` section
    - ``ASSET_GEO_TIMEOUT_SEC`` overrides ``geolocation.timeout_sec``
    - ``ASSET_BATCH_CONCURRENCY`` / ``ASSET_BATCH_MIN_CONFIDENCE`` override
      the ``batch`` section
    - ``ASSET_QUEUE_MAX_PENDING`` overrides ``queue.max_pending``

    Parameters
    ----------
    config_path: Optional[str]
        Path to the YAML configuration file. When ``None`` only defaults
        and environment variables are used.

    Returns
    -------
    Settings
        A Settings instance with configuration and environment overrides applied.
    """
    data = _load_yaml_file(Path(config_path)) if config_path else {}

    store_data = _section(data, 'store')
    decode_data = _section(data, 'decode')
    geo_data = _section(data, 'geolocation')
    batch_data = _section(data, 'batch')
    queue_data = _section(data, 'queue')

    store = StoreConfig(
        path=os.getenv('ASSET_STORE_PATH', store_data.get('path', StoreConfig.path)),
    )
    decode = DecodeConfig(
        enabled=_env_bool('ASSET_DECODE_ENABLED', decode_data.get('enabled', True)),
        base_url=os.getenv('ASSET_DECODE_BASE_URL', decode_data.get('base_url', NHTSA_VPIC_URL)).rstrip('/'),
        timeout_sec=float(os.getenv('ASSET_DECODE_TIMEOUT_SEC', decode_data.get('timeout_sec', 5.0))),
    )
    geolocation = GeolocationConfig(
        timeout_sec=float(os.getenv('ASSET_GEO_TIMEOUT_SEC', geo_data.get('timeout_sec', 5.0))),
    )
    batch = BatchConfig(
        concurrency=max(1, int(os.getenv('ASSET_BATCH_CONCURRENCY', batch_data.get('concurrency', 3)))),
        min_confidence=float(os.getenv('ASSET_BATCH_MIN_CONFIDENCE', batch_data.get('min_confidence', 0.4))),
    )
    queue = QueueConfig(
        max_pending=max(0, int(os.getenv('ASSET_QUEUE_MAX_PENDING', queue_data.get('max_pending', 0)))),
    )

    return Settings(
        operator=os.getenv('ASSET_OPERATOR', data.get('operator', 'Unassigned')),
        store=store,
        decode=decode,
        geolocation=geolocation,
        batch=batch,
        queue=queue,
    )


__all__ = [
    'StoreConfig',
    'DecodeConfig',
    'GeolocationConfig',
    'BatchConfig',
    'QueueConfig',
    'Settings',
    'load_settings',
]
