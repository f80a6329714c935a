# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Onboarding API: /api/auth/* for registration, login, approvals, appeals and evidence.

Every route except register/login authenticates the bearer token and reloads the
identity from the store. Privileged routes then run the access gate, so approval
changes take effect on the very next request.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from heva.core.auth.credentials import parse_bearer
from heva.core.errors import InternalError, OnboardingError, ValidationError
from heva.core.identity.models import Identity
from heva.core.identity.service import IdentityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

_SERVICE: Optional[IdentityService] = None
_SERVICE_LOCK = threading.Lock()


def get_identity_service() -> IdentityService:
    """Process-wide service over the configured identity store."""
    global _SERVICE
    with _SERVICE_LOCK:
        if _SERVICE is None:
            _SERVICE = IdentityService()
        return _SERVICE


def _http_error(err: OnboardingError) -> HTTPException:
    headers = {"WWW-Authenticate": "Bearer"} if err.status_code == 401 else None
    return HTTPException(status_code=err.status_code, detail=err.to_dict(), headers=headers)


def _internal_error(action: str, e: Exception) -> HTTPException:
    logger.exception("Error in %s: %s", action, e)
    return _http_error(InternalError())


async def _json_body(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise _http_error(ValidationError("Invalid JSON body"))
    if not isinstance(body, dict):
        raise _http_error(ValidationError("Request body must be a JSON object"))
    return body


def _first(body: Dict[str, Any], *keys: str) -> Any:
    """First present key; accepts the client's older field names as aliases."""
    for key in keys:
        if key in body:
            return body[key]
    return None


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------


def current_identity(authorization: Optional[str] = Header(None)) -> Identity:
    """Authenticated caller, freshly loaded (no approval check)."""
    try:
        return get_identity_service().authenticate(parse_bearer(authorization))
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("authenticate", e)


def approved_identity(request: Request, identity: Identity = Depends(current_identity)) -> Identity:
    """Authenticated caller that passes the access gate."""
    try:
        get_identity_service().check_access(identity, path=request.url.path)
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("access-gate", e)
    return identity


# ---------------------------------------------------------------------------
# Registration and login
# ---------------------------------------------------------------------------


@router.post("/register", status_code=201)
async def api_register(request: Request) -> Dict[str, Any]:
    """Register a beneficiary or field officer. Returns summary + token."""
    body = await _json_body(request)
    try:
        identity, token = get_identity_service().register(body)
        return {"user": identity.to_dict(), "token": token}
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("register", e)


@router.post("/login")
async def api_login(request: Request) -> Dict[str, Any]:
    """Log in. Unapproved accounts get 403 with their status (and a token for profile/appeal)."""
    body = await _json_body(request)
    try:
        identity, token = get_identity_service().login(body.get("email"), body.get("password"))
        return {"user": identity.to_dict(), "token": token}
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("login", e)


@router.get("/profile")
def api_profile(identity: Identity = Depends(current_identity)) -> Dict[str, Any]:
    """Own identity summary, available before approval so applicants can follow their status."""
    try:
        return {"user": identity.to_dict()}
    except Exception as e:
        raise _internal_error("profile", e)


# ---------------------------------------------------------------------------
# Approvals
# ---------------------------------------------------------------------------


@router.get("/pending-approvals")
def api_pending_approvals(identity: Identity = Depends(approved_identity)) -> List[Dict[str, Any]]:
    """Applications awaiting an administrator decision."""
    try:
        return [i.to_dict() for i in get_identity_service().list_pending(identity.id)]
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("pending-approvals", e)


@router.post("/update-approval")
async def api_update_approval(
    request: Request,
    identity: Identity = Depends(approved_identity),
) -> Dict[str, Any]:
    """Administrator decision: identityId, status, comment?, reason?."""
    body = await _json_body(request)
    target_id = _first(body, "identityId", "userId")
    if not isinstance(target_id, str) or not target_id:
        raise _http_error(ValidationError("identityId is required"))
    try:
        updated = get_identity_service().decide(
            target_id,
            _first(body, "status", "approvalStatus"),
            comment=_first(body, "comment", "approvalComment"),
            rejection_reason=_first(body, "reason", "rejectionReason"),
            decider_id=identity.id,
        )
        return {"user": updated.to_dict()}
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("update-approval", e)


# ---------------------------------------------------------------------------
# Appeals
# ---------------------------------------------------------------------------


@router.post("/submit-appeal")
async def api_submit_appeal(
    request: Request,
    identity: Identity = Depends(current_identity),
) -> Dict[str, Any]:
    """Applicant appeals their own rejection (no approval gate: rejected callers must reach it)."""
    body = await _json_body(request)
    try:
        updated = get_identity_service().submit_appeal(
            identity.id,
            _first(body, "comment", "appealComment"),
            requester_id=identity.id,
        )
        return {"appealStatus": updated.appeal_status.value, "user": updated.to_dict()}
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("submit-appeal", e)


@router.get("/appeals")
def api_appeals(identity: Identity = Depends(approved_identity)) -> List[Dict[str, Any]]:
    """Pending appeals."""
    try:
        return [i.to_dict() for i in get_identity_service().list_appeals(identity.id)]
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("appeals", e)


@router.post("/resolve-appeal")
async def api_resolve_appeal(
    request: Request,
    identity: Identity = Depends(approved_identity),
) -> Dict[str, Any]:
    """Administrator grants or denies a pending appeal: identityId, granted, comment?."""
    body = await _json_body(request)
    target_id = _first(body, "identityId", "userId")
    if not isinstance(target_id, str) or not target_id:
        raise _http_error(ValidationError("identityId is required"))
    try:
        updated = get_identity_service().resolve_appeal(
            target_id,
            body.get("granted"),
            decider_id=identity.id,
            comment=body.get("comment"),
        )
        return {"user": updated.to_dict()}
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("resolve-appeal", e)


# ---------------------------------------------------------------------------
# Verification evidence
# ---------------------------------------------------------------------------


@router.put("/verification-data/{identity_id}")
async def api_update_verification(
    identity_id: str,
    request: Request,
    identity: Identity = Depends(approved_identity),
) -> Dict[str, Any]:
    """Apply a partial evidence patch; returns the recomputed trust score and risk level."""
    body = await _json_body(request)
    try:
        updated = get_identity_service().update_verification(identity_id, body, editor_id=identity.id)
        return {
            "trustScore": updated.trust_score,
            "riskLevel": updated.risk_level.value,
            "user": updated.to_dict(),
        }
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("verification-data", e)


@router.get("/verification-recommendations")
def api_verification_recommendations(
    identity: Identity = Depends(approved_identity),
) -> List[Dict[str, Any]]:
    """Applicants whose trust score suggests more verification, lowest score first."""
    try:
        return get_identity_service().verification_recommendations(identity.id)
    except OnboardingError as e:
        raise _http_error(e)
    except Exception as e:
        raise _internal_error("verification-recommendations", e)
