# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""FastAPI server: onboarding workflow (/api/auth/*) and health check."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict


# Load .env first so HEVA_JWT_SECRET etc. are available (for uvicorn and run_api)
def _load_env() -> None:
    from dotenv import load_dotenv

    # 1) Repo root .env is primary; override so file wins over empty shell vars
    _repo_root = Path(__file__).resolve().parent.parent.parent
    _env_file = _repo_root / ".env"
    if _env_file.exists():
        load_dotenv(_env_file, override=True)
    # 2) Current working directory .env
    load_dotenv()


_load_env()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from heva import __version__
from heva.api.auth_routes import get_identity_service, router as auth_router
from heva.core.settings import load_config

logger = logging.getLogger(__name__)

SERVICE_NAME = "HEVA Cultural Inclusion API"


@asynccontextmanager
async def _lifespan(app: FastAPI):
    config = load_config()
    service = get_identity_service()
    logger.info(
        "[SERVER] %s %s starting (db=%s, debug=%s)",
        SERVICE_NAME, __version__, service.store.db_path, config.debug,
    )
    yield
    logger.info("[SERVER] Shutting down")


app = FastAPI(title=SERVICE_NAME, version=__version__, lifespan=_lifespan)

app.include_router(auth_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(load_config().server.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
def health() -> Dict[str, Any]:
    """Health check. No auth required."""
    return {
        "ok": True,
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
