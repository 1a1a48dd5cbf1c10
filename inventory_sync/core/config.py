"""Application configuration loaded from environment variables."""

from pathlib import Path

from pydantic import BaseModel
from pydantic_settings import BaseSettings


class PipelineConfig(BaseModel):
    """Explicit configuration handed to the pipeline orchestrator."""

    bucket: str = "valleyridge-inventory-sync"
    support_email: str = "support@valleyridge.ca"
    incremental: bool = True

    delta_prefix: str = "processed/delta/"
    full_prefix: str = "processed/"
    latest_delta_key: str = "processed/latest/inventory-delta.csv"
    latest_full_key: str = "processed/latest/inventory.csv"

    # Constant export fields
    inventory_tracker: str = "shopify"
    inventory_policy: str = "deny"

    processed_by: str = "valleyridge-inventory-sync"


class Settings(BaseSettings):
    # Object storage
    s3_bucket: str = "valleyridge-inventory-sync"
    storage_root: str = "data/objects"

    # Redis
    redis_host: str = "127.0.0.1"
    redis_port: int = 6379

    # Baseline: "object_store" | "redis"
    baseline_backend: str = "object_store"
    baseline_key: str = "baseline/inventory-baseline.json"

    # Error notification: "log" | "redis"
    notifier: str = "log"
    notification_channel: str = "inventory-sync:errors"
    support_email: str = "support@valleyridge.ca"

    # Run metrics: "log" | "redis"
    metrics: str = "log"
    metrics_prefix: str = "inventory-sync:metrics"

    # Pipeline
    incremental: bool = True
    inventory_tracker: str = "shopify"
    inventory_policy: str = "deny"

    log_level: str = "INFO"

    @property
    def storage_path(self) -> Path:
        return Path(self.storage_root)

    def pipeline_config(self) -> PipelineConfig:
        return PipelineConfig(
            bucket=self.s3_bucket,
            support_email=self.support_email,
            incremental=self.incremental,
            inventory_tracker=self.inventory_tracker,
            inventory_policy=self.inventory_policy,
        )

    model_config = {"env_file": ".env", "env_prefix": "", "extra": "ignore"}


settings = Settings()
