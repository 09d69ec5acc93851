"""Environment-driven application factory used by ``uvicorn --factory``."""
from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import FastAPI

from .config import apply_seed_data, env_flag, load_seed_data, resolve_seed_path
from .database import open_database
from .service import create_app

logger = logging.getLogger("peerledger.application")


def create_application(
    *,
    database_path: Optional[str] = None,
    storage: Optional[str] = None,
    seed: Optional[bool] = None,
    seed_path: Optional[str] = None,
) -> FastAPI:
    """Create the ASGI application from keyword overrides or the environment."""

    database = open_database(database_path, storage)
    database.initialize()

    should_seed = seed if seed is not None else env_flag(os.getenv("PEERLEDGER_SEED"))
    if should_seed:
        path = resolve_seed_path(seed_path or os.getenv("PEERLEDGER_SEED_PATH"))
        logger.info("Seeding %s storage from %s", database.backend, path)
        apply_seed_data(database, load_seed_data(path))

    return create_app(database=database)


__all__ = ["create_application"]
