"""
Companion controller service.

Runs the pipeline in the background for the lifetime of the app and exposes
read-only health and diagnostics endpoints.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response, status

from companion.common.config import load_pipeline_config
from companion.common.logging import get_logger

from .models import PipelineStatus
from .pipeline import CompanionPipeline

# Logging is configured in main.py before this module is imported
logger = get_logger(__name__, service_name="controller")

SERVICE_NAME = "controller"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    # Tests may provide a ready-made pipeline (or config) on app.state
    pipeline: CompanionPipeline | None = getattr(app.state, "pipeline", None)
    owns_pipeline = pipeline is None
    if pipeline is None:
        config = getattr(app.state, "config", None) or load_pipeline_config()
        pipeline = CompanionPipeline(config)
        app.state.pipeline = pipeline

    try:
        await pipeline.start()
    except Exception as exc:
        logger.error("controller.startup_failed", error=str(exc))
        raise
    logger.info("controller.startup_complete", running=pipeline.is_running)

    try:
        yield
    finally:
        await pipeline.stop()
        if owns_pipeline:
            del app.state.pipeline
        logger.info("controller.shutdown")


app = FastAPI(title="Companion Controller", version="1.0.0", lifespan=lifespan)


def _pipeline(request: Request) -> CompanionPipeline:
    return request.app.state.pipeline


@app.get("/health/live")
async def health_live() -> dict[str, str]:
    return {"status": "alive", "service": SERVICE_NAME}


@app.get("/health/ready")
async def health_ready(request: Request, response: Response) -> dict[str, Any]:
    pipeline = _pipeline(request)
    health = pipeline.inference.health
    ready = pipeline.is_running and health.available
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "ready" if ready else "not_ready",
        "service": SERVICE_NAME,
        "components": {
            "pipeline_running": pipeline.is_running,
            "backend_available": health.available,
        },
        "backend_message": health.message,
    }


@app.get("/api/controller/status", response_model=PipelineStatus)
async def controller_status(request: Request) -> PipelineStatus:
    return _pipeline(request).status()


@app.get("/api/text/buffer")
async def text_buffer(request: Request) -> list[dict[str, Any]]:
    return [unit.to_dict() for unit in _pipeline(request).text_service.get_all_text()]


@app.get("/api/text/status")
async def text_status(request: Request) -> dict[str, Any]:
    return _pipeline(request).text_service.status()


__all__ = ["app", "lifespan"]
