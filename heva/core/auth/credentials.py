# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Credentials: Argon2id password hashing and JWT bearer tokens.

Tokens only identify the caller (``sub``); they grant nothing by themselves.
Role and approval are re-read from the identity store on every request.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from heva.core.errors import AuthenticationError
from heva.core.settings import load_config

logger = logging.getLogger(__name__)

_hasher = PasswordHasher()


# =============================================================================
# PASSWORD HASHING
# =============================================================================


def hash_password(password: str) -> str:
    """Hash a password with Argon2id (salt embedded in the output)."""
    return _hasher.hash(password)


def verify_password(password: str, stored_hash: str) -> bool:
    """Check ``password`` against an Argon2 hash. Never raises on mismatch."""
    if not stored_hash or not password:
        return False
    try:
        return _hasher.verify(stored_hash, password)
    except VerifyMismatchError:
        return False
    except (VerificationError, InvalidHashError) as e:
        logger.warning("[AUTH] Unusable password hash: %s", e)
        return False


# =============================================================================
# TOKENS
# =============================================================================


def issue_token(identity_id: str, role: str, now: Optional[datetime] = None) -> str:
    """Issue a signed bearer token for ``identity_id``."""
    auth = load_config().auth
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": identity_id,
        "role": role,
        "iat": issued,
        "exp": issued + timedelta(hours=auth.token_ttl_hours),
    }
    return jwt.encode(payload, auth.jwt_secret, algorithm=auth.jwt_algorithm)


def decode_token(token: str) -> Dict[str, Any]:
    """Verify and decode a bearer token.

    Raises
    ------
    AuthenticationError
        If the token is missing, expired, or fails verification.
    """
    if not token:
        raise AuthenticationError("Access denied. No token provided.")
    auth = load_config().auth
    try:
        payload = jwt.decode(token, auth.jwt_secret, algorithms=[auth.jwt_algorithm])
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired. Please log in again.") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token.") from e
    if not payload.get("sub"):
        raise AuthenticationError("Invalid token.")
    return payload


def parse_bearer(authorization: Optional[str]) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header value."""
    value = (authorization or "").strip()
    if value.lower().startswith("bearer "):
        return value[7:].strip()
    return ""
