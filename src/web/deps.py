"""Dependency injection for FastAPI routes."""

import asyncio
from functools import lru_cache

import structlog

from cli.config import load_config_model
from cli.utils import get_components as build_components
from observability import log_run_summary

logger = structlog.get_logger()

_components: dict | None = None


@lru_cache
def get_config():
    """Load shared config (./config.yaml, ~/.cultivate/config.yaml, ...)."""
    return load_config_model()


def get_components() -> dict:
    """Process-wide stores, pipeline, reconciler and deletion guard."""
    global _components
    if _components is None:
        _components = build_components(get_config())
    return _components


async def shutdown_components(timeout: float = 10.0) -> None:
    """Let in-flight stages finish, then cancel what is left."""
    global _components
    if _components is None:
        return
    scheduler = _components["scheduler"]
    try:
        await scheduler.drain(timeout=timeout)
    except TimeoutError:
        logger.warning("web.shutdown_cancelling", pending=scheduler.pending)
        await scheduler.cancel_all()
    await _components["transcriber"].aclose()
    log_run_summary()
    _components = None
