# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Workflow error taxonomy.

Every failure raised by the onboarding core carries a stable machine-readable
``kind`` and the HTTP status the API surfaces it with. Guards raise these before
any write reaches the identity store, so a failed operation never leaves a
partial update behind.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class OnboardingError(Exception):
    """Base class for all workflow errors."""

    kind = "error"
    status_code = 400

    def __init__(self, message: str, *, extra: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.extra: Dict[str, Any] = dict(extra or {})
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, **self.extra}


class ValidationError(OnboardingError):
    """Malformed or missing input."""

    kind = "validation_error"
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None) -> None:
        self.errors: List[str] = list(errors or [message])
        super().__init__(message, extra={"errors": self.errors})


class AuthenticationError(OnboardingError):
    """Missing, expired or invalid bearer token."""

    kind = "authentication_error"
    status_code = 401


class PermissionDeniedError(OnboardingError):
    """Role, ownership or approval check failed."""

    kind = "permission_denied"
    status_code = 403


class NotFoundError(OnboardingError):
    """Unknown identity id."""

    kind = "not_found"
    status_code = 404


class InvalidStateError(OnboardingError):
    """Transition attempted from a state that forbids it."""

    kind = "invalid_state"
    status_code = 400


class ConflictError(OnboardingError):
    """Duplicate resource, repeated appeal, or a stale concurrent write."""

    kind = "conflict"
    status_code = 400


class InternalError(OnboardingError):
    """Unexpected store failure. The message shown to callers is always generic."""

    kind = "internal_error"
    status_code = 500

    def __init__(self, message: str = "Internal error") -> None:
        super().__init__(message)


__all__ = [
    "OnboardingError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "InvalidStateError",
    "ConflictError",
    "InternalError",
]
