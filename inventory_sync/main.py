"""Inventory Sync: FastAPI application entry point.

Builds the pipeline from settings on startup and registers API routers.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from inventory_sync.api import baseline, events, health, imports
from inventory_sync.core import redis_client
from inventory_sync.core.baseline_store import ObjectStoreBaselineStore, RedisBaselineStore
from inventory_sync.core.config import Settings, settings
from inventory_sync.core.metrics import LogMetrics, RedisMetrics
from inventory_sync.core.notifier import LogNotifier, RedisNotifier
from inventory_sync.core.object_store import LocalObjectStore
from inventory_sync.core.pipeline import PipelineOrchestrator

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def build_pipeline(cfg: Settings, object_store: LocalObjectStore) -> PipelineOrchestrator:
    """Wire the orchestrator's collaborators according to settings."""
    pipeline_config = cfg.pipeline_config()

    if cfg.baseline_backend == "redis":
        baseline_store = RedisBaselineStore(redis_client.get_redis_client(), key=cfg.baseline_key)
    elif cfg.baseline_backend == "object_store":
        baseline_store = ObjectStoreBaselineStore(
            object_store, cfg.s3_bucket, key=cfg.baseline_key,
            processed_by=pipeline_config.processed_by,
        )
    else:
        raise ValueError(f"Unknown baseline backend: {cfg.baseline_backend}")

    if cfg.notifier == "redis":
        notifier = RedisNotifier(
            redis_client.get_redis_client(), cfg.notification_channel, cfg.support_email,
        )
    elif cfg.notifier == "log":
        notifier = LogNotifier(cfg.support_email)
    else:
        raise ValueError(f"Unknown notifier: {cfg.notifier}")

    if cfg.metrics == "redis":
        metrics = RedisMetrics(redis_client.get_redis_client(), cfg.metrics_prefix)
    elif cfg.metrics == "log":
        metrics = LogMetrics()
    else:
        raise ValueError(f"Unknown metrics backend: {cfg.metrics}")

    return PipelineOrchestrator(pipeline_config, object_store, baseline_store, notifier, metrics=metrics)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize storage and the pipeline on startup, close clients on shutdown."""
    logger.info("Starting inventory sync backend...")

    if redis_client.uses_redis(settings):
        redis_client.init_redis_client(settings)

    object_store = LocalObjectStore(settings.storage_path)
    app.state.settings = settings
    app.state.object_store = object_store
    app.state.pipeline = build_pipeline(settings, object_store)
    logger.info(
        f"Pipeline ready (bucket={settings.s3_bucket}, baseline={settings.baseline_backend}, "
        f"incremental={settings.incremental})"
    )
    yield

    logger.info("Shutting down inventory sync backend...")
    redis_client.close_redis_client()


app = FastAPI(
    title="Inventory Sync",
    version="0.1.0",
    description="Turns supplier inventory spreadsheets into change-only CSV "
                "files for the store's bulk-import tool.",
    lifespan=lifespan,
)

app.include_router(health.router, prefix="/api", tags=["health"])
app.include_router(events.router, prefix="/api", tags=["events"])
app.include_router(imports.router, prefix="/api", tags=["imports"])
app.include_router(baseline.router, prefix="/api", tags=["baseline"])
