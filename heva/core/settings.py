# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Centralized configuration loader for the HEVA onboarding service.

Loads config.yaml from the repository root and provides typed access to settings.
Falls back to sensible defaults if config.yaml is missing or incomplete.
Environment variables override config.yaml values.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

_CONFIG_CACHE: Optional["HevaConfig"] = None

# Development-only fallback; deployments set HEVA_JWT_SECRET.
_DEV_JWT_SECRET = "heva-development-only-secret-change-me-before-deploying"


def _repo_root() -> Path:
    """Return the repository root."""
    # heva/core/settings.py -> repo root
    return Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class AuthConfig:
    """Bearer token settings."""
    jwt_secret: str
    jwt_algorithm: str
    token_ttl_hours: int


@dataclass(frozen=True)
class StorageConfig:
    """Identity database and output locations."""
    db_path: str
    output_dir: str


@dataclass(frozen=True)
class ReviewConfig:
    """Administrator review helpers."""
    recommendation_threshold: int  # trust score below which verification is recommended


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings."""
    cors_origins: Tuple[str, ...]


@dataclass(frozen=True)
class HevaConfig:
    """Root configuration object."""
    auth: AuthConfig
    storage: StorageConfig
    review: ReviewConfig
    server: ServerConfig
    debug: bool


def _load_yaml_config() -> dict:
    """Load config.yaml from repo root. Returns empty dict if not found."""
    config_path = Path(os.getenv("HEVA_CONFIG_FILE", str(_repo_root() / "config.yaml")))
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("[CONFIG] Failed to read %s: %s", config_path, e)
        return {}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "")
    if raw.lower() in ("true", "1", "yes"):
        return True
    if raw.lower() in ("false", "0", "no"):
        return False
    return bool(default)


def load_config(*, reload: bool = False) -> HevaConfig:
    """Load and return the service configuration.

    Priority order (highest to lowest):
    1. Environment variables (HEVA_JWT_SECRET, HEVA_DB_PATH, HEVA_OUTPUT_DIR, etc.)
    2. config.yaml values
    3. Built-in defaults

    Parameters
    ----------
    reload : bool
        If True, force reload from disk. Otherwise use cached config.

    Returns
    -------
    HevaConfig
        The loaded configuration.
    """
    global _CONFIG_CACHE

    if _CONFIG_CACHE is not None and not reload:
        return _CONFIG_CACHE

    raw = _load_yaml_config()

    # Auth configuration
    auth_raw = raw.get("auth", {}) or {}
    jwt_secret = os.getenv("HEVA_JWT_SECRET", auth_raw.get("jwt_secret") or "")
    if not jwt_secret:
        logger.warning("[CONFIG] HEVA_JWT_SECRET not set; using development secret")
        jwt_secret = _DEV_JWT_SECRET
    jwt_algorithm = os.getenv("HEVA_JWT_ALGORITHM", auth_raw.get("jwt_algorithm", "HS256"))
    token_ttl_hours = int(os.getenv(
        "HEVA_TOKEN_TTL_HOURS",
        str(auth_raw.get("token_ttl_hours", 24))
    ))
    auth_config = AuthConfig(
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        token_ttl_hours=max(1, token_ttl_hours),
    )

    # Storage configuration
    storage_raw = raw.get("storage", {}) or {}
    output_dir = os.getenv("HEVA_OUTPUT_DIR", storage_raw.get("output_dir", "out"))
    db_path = os.getenv(
        "HEVA_DB_PATH",
        storage_raw.get("db_path") or str(Path(output_dir) / "heva.db")
    )
    storage_config = StorageConfig(db_path=db_path, output_dir=output_dir)

    # Review helpers
    review_raw = raw.get("review", {}) or {}
    threshold = int(os.getenv(
        "HEVA_RECOMMENDATION_THRESHOLD",
        str(review_raw.get("recommendation_threshold", 80))
    ))
    review_config = ReviewConfig(recommendation_threshold=max(0, min(100, threshold)))

    # Server
    server_raw = raw.get("server", {}) or {}
    origins_raw = os.getenv("HEVA_CORS_ORIGINS")
    if origins_raw is not None:
        origins = [o.strip() for o in origins_raw.split(",") if o.strip()]
    else:
        origins = list(server_raw.get("cors_origins") or [])
    server_config = ServerConfig(cors_origins=tuple(origins or ["http://localhost:5173"]))

    # App-level settings
    app_raw = raw.get("app", {}) or {}
    debug = _env_bool("HEVA_DEBUG", app_raw.get("debug", False))

    config = HevaConfig(
        auth=auth_config,
        storage=storage_config,
        review=review_config,
        server=server_config,
        debug=debug,
    )

    _CONFIG_CACHE = config
    return config


def get_output_dir() -> str:
    """Convenience: return output directory from config."""
    return load_config().storage.output_dir


def get_db_path() -> str:
    """Convenience: return identity database path from config."""
    return load_config().storage.db_path


def get_recommendation_threshold() -> int:
    """Convenience: return the trust score below which extra verification is recommended."""
    return load_config().review.recommendation_threshold
