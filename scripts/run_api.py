#!/usr/bin/env python3
# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Run the HEVA onboarding REST API. Serves /api/auth/* and /api/health."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from dotenv import load_dotenv

repo_root = Path(__file__).resolve().parent.parent
load_dotenv(repo_root / ".env")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def main() -> int:
    parser = argparse.ArgumentParser(description="Run HEVA onboarding API server")
    parser.add_argument("--host", default="0.0.0.0", help="Bind host")
    parser.add_argument("--port", type=int, default=5002, help="Port")
    args = parser.parse_args()

    import uvicorn
    from heva.api.server import app

    uvicorn.run(app, host=args.host, port=args.port)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
