"""
Production wiring for the review engine.

Usage:
    manager = await create_session_manager()
    current = manager.current_card
    ...
    manager.close()
"""

from __future__ import annotations

import random
import sys
from pathlib import Path

from loguru import logger

from .config import Settings, get_settings

from .review import (
    KeyValueCardStore,
    KeyValueStore,
    SessionManager,
    SessionStateStore,
    SM2Scheduler,
    StoreUnavailable,
    SystemClock,
)


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default sink with the configured ones."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{level: <8}</level> | {name}:{function} - <level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level=settings.log_level,
            rotation="10 MB",
            retention=5,
        )


async def create_session_manager(settings: Settings | None = None) -> SessionManager:
    """
    Build a SessionManager backed by the local SQLite store and initialize it.

    If the database cannot be opened the manager still starts on an
    in-memory database, with the default deck and saving disabled.

    Args:
        settings: Settings to use (cached environment settings if None)

    Returns:
        Initialized SessionManager
    """
    settings = settings or get_settings()
    configure_logging(settings)

    storage_failed = False
    try:
        kv = KeyValueStore(settings.database_path)
    except StoreUnavailable as exc:
        logger.warning(f"Local database unavailable, running in memory: {exc}")
        kv = KeyValueStore(Path(":memory:"))
        storage_failed = True

    manager = SessionManager(
        card_store=KeyValueCardStore(kv),
        session_store=SessionStateStore(kv),
        scheduler=SM2Scheduler(settings.get_sm2_config()),
        config=settings.get_session_config(),
        clock=SystemClock(),
        rng=random.Random(),
    )
    manager.storage_failed = storage_failed
    await manager.initialize()
    return manager
