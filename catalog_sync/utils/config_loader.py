"""
Sync configuration loader (catalog provider, transform, reconcile, scheduler, guard, store).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "sync_config.yml"


class CatalogConfig(BaseModel):
    """Upstream catalog provider configuration (secrets come from env)"""

    mode: Literal["auto", "mock", "real"] = "auto"
    environment: Literal["sandbox", "production"] = "sandbox"
    api_version: str = "2023-10-18"
    timeout_seconds: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=3, ge=0, le=10)
    backoff_seconds: float = Field(default=0.5, ge=0)
    requests_per_minute: int = Field(default=60, ge=0, le=10000)
    page_limit: int = Field(default=1000, ge=1, le=1000)
    fixture_path: str = "data/sample_catalog.json"


class TransformSettings(BaseModel):
    """Rules applied when normalizing raw catalog objects"""

    fallback_category: str = "Uncategorized"
    default_stock: int = Field(default=100, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)
    default_currency: str = "USD"
    image_url_template: str = "/api/v1/images/{image_id}"
    placeholder_image: str = "/images/placeholder.svg"


class ReconcileConfig(BaseModel):
    fetch_timeout_seconds: float = Field(default=30.0, gt=0)
    operation_timeout_seconds: float = Field(default=10.0, gt=0)
    max_concurrent_writes: int = Field(default=8, ge=1, le=100)


class SchedulerConfig(BaseModel):
    min_interval_seconds: float = Field(default=120.0, ge=0)


class GuardThresholds(BaseModel):
    safe_percent: float = Field(default=70.0, gt=0, le=100)
    critical_percent: float = Field(default=85.0, gt=0, le=100)
    emergency_percent: float = Field(default=95.0, gt=0, le=100)

    @model_validator(mode="after")
    def _ordered(self) -> "GuardThresholds":
        if not self.safe_percent <= self.critical_percent <= self.emergency_percent:
            raise ValueError("thresholds must satisfy safe <= critical <= emergency")
        return self


class GuardConfig(BaseModel):
    poll_interval_seconds: float = Field(default=60.0, ge=0)
    thresholds: GuardThresholds = Field(default_factory=GuardThresholds)
    # Monthly platform quotas (hobby tier)
    quotas: Dict[str, float] = Field(
        default_factory=lambda: {
            "requests": 1_000_000,
            "bytes_transferred": 100 * 1024 * 1024 * 1024,
            "invocations": 1_000_000,
        }
    )


class StoreConfig(BaseModel):
    products_collection: str = "products"
    categories_collection: str = "categories"
    redis_prefix: str = "catalog"


class SyncConfig(BaseModel):
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    transform: TransformSettings = Field(default_factory=TransformSettings)
    reconcile: ReconcileConfig = Field(default_factory=ReconcileConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    guard: GuardConfig = Field(default_factory=GuardConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def load_sync_config(config_path: Optional[Path] = None) -> SyncConfig:
    """
    Load and validate sync configuration from YAML file

    Args:
        config_path: Path to config file. Defaults to config/sync_config.yml

    Returns:
        Validated SyncConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Sync config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    try:
        cfg = SyncConfig(**data)
        logger.info("Successfully loaded sync config from %s", config_path)
        return cfg
    except ValidationError as e:
        logger.error("Sync config validation failed: %s", e)
        raise
