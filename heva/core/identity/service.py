# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Identity service: registration, approval decisions, appeals and evidence rescoring.

Rules:
  - Registration seeds trust score and risk level; officers are auto-approved, beneficiaries start pending
  - The administrator role cannot be requested through registration
  - Evidence submitted at registration is stored unverified
  - Only administrators decide applications and resolve appeals
  - Only the applicant may appeal, once, and only after a rejection
  - Evidence changes and the resulting score/risk are written together
  - Every write is a read -> validate -> compare_and_swap; stale writers get ConflictError
"""

from __future__ import annotations

import logging
import re
from dataclasses import replace
from typing import Any, Callable, Dict, List, Optional, Tuple

from heva.core import audit
from heva.core.auth.credentials import decode_token, hash_password, issue_token, verify_password
from heva.core.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from heva.core.gates.access_gate import GateDecision, authorize
from heva.core.identity.models import (
    AppealStatus,
    ApprovalStatus,
    Identity,
    Role,
    Verification,
    generate_identity_id,
    normalize_email,
    utc_now_iso,
)
from heva.core.identity.store import IdentityStore
from heva.core.identity.verification import (
    apply_verification_patch,
    as_unverified,
    missing_evidence,
    validate_verification_patch,
)
from heva.core.scoring.trust import score_and_classify
from heva.core.state_machine import appeal as appeal_sm
from heva.core.state_machine import approval as approval_sm

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
MIN_PASSWORD_LENGTH = 6
MAX_COMMENT_LENGTH = 2000
APPLICANT_ROLES = (Role.FIELD_OFFICER, Role.BENEFICIARY)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_registration_data(data: Dict[str, Any]) -> List[str]:
    """Validate a registration payload. Returns list of error messages (empty = valid)."""
    errors: List[str] = []

    name = data.get("name")
    if not isinstance(name, str) or not name.strip():
        errors.append("name is required")

    email = data.get("email")
    if not isinstance(email, str) or not email.strip():
        errors.append("email is required")
    elif not _EMAIL_RE.match(email.strip()):
        errors.append("email is not a valid address")

    password = data.get("password")
    if not isinstance(password, str) or not password:
        errors.append("password is required")
    elif len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"password must be at least {MIN_PASSWORD_LENGTH} characters")

    if data.get("role") is not None:
        try:
            Role.parse(data["role"])
        except ValueError as e:
            errors.append(str(e))

    errors.extend(validate_verification_patch(data.get("evidence")))
    return errors


def _optional_text(value: Any, field_name: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    if len(value) > MAX_COMMENT_LENGTH:
        raise ValidationError(f"{field_name} must be at most {MAX_COMMENT_LENGTH} characters")
    return value


def parse_approval_status(value: Any) -> ApprovalStatus:
    """Parse a wire approval status, raising ValidationError on unknown values."""
    if isinstance(value, ApprovalStatus):
        return value
    try:
        return ApprovalStatus(str(value or "").strip().lower())
    except ValueError:
        raise ValidationError(
            f"status must be one of {[s.value for s in ApprovalStatus]}"
        ) from None


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class IdentityService:
    """Onboarding workflow operations over an :class:`IdentityStore`."""

    def __init__(self, store: Optional[IdentityStore] = None) -> None:
        self.store = store if store is not None else IdentityStore()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _load(self, identity_id: str) -> Identity:
        identity = self.store.get(identity_id)
        if identity is None:
            raise NotFoundError(f"Identity {identity_id} not found")
        return identity

    def _load_actor(self, actor_id: str) -> Optional[Identity]:
        return self.store.get(actor_id) if actor_id else None

    def _require_admin(self, actor_id: str) -> Identity:
        return approval_sm.require_decider(self._load_actor(actor_id))

    def _mutate(self, identity_id: str, change: Callable[[Identity], Identity]) -> Tuple[Identity, Identity]:
        """Read, apply ``change`` (which raises on guard failure), compare-and-swap.

        Returns (before, after).
        """
        before = self._load(identity_id)
        after = change(before)
        stored = self.store.compare_and_swap(after, expected_version=before.version)
        return before, stored

    # ------------------------------------------------------------------ #
    # Registration and login
    # ------------------------------------------------------------------ #
    def register(self, data: Dict[str, Any]) -> Tuple[Identity, str]:
        """Register a new identity. Returns (identity, token).

        Raises
        ------
        ValidationError
            Malformed payload.
        PermissionDeniedError
            Administrator role requested.
        ConflictError
            Email already registered.
        """
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
        errors = validate_registration_data(data)
        if errors:
            raise ValidationError("Invalid registration data", errors)

        role = Role.parse(data.get("role") or Role.BENEFICIARY.value)
        if not role.capabilities.self_registration:
            logger.warning("[IDENTITY] Registration refused: role %s requested", role.value)
            raise PermissionDeniedError(f"Role {role.value} cannot be requested at registration")

        email = normalize_email(data["email"])
        if self.store.get_by_email(email) is not None:
            raise ConflictError("Email is already registered")

        identity = self._build_identity(
            name=data["name"].strip(),
            email=email,
            password=data["password"],
            role=role,
            evidence=as_unverified(data.get("evidence") or {}),
        )
        stored = self.store.insert(identity)
        audit.audit_identity_registered(
            stored.id, stored.role.value, stored.approval_status.value, stored.trust_score
        )
        logger.info(
            "[IDENTITY] Registered %s as %s (%s, trust=%d)",
            stored.id, stored.role.value, stored.approval_status.value, stored.trust_score,
        )
        return stored, issue_token(stored.id, stored.role.value)

    def _build_identity(
        self,
        name: str,
        email: str,
        password: str,
        role: Role,
        evidence: Dict[str, Any],
    ) -> Identity:
        verification = apply_verification_patch(Verification(), evidence)
        score, risk = score_and_classify(verification, role)
        now = utc_now_iso()
        return Identity(
            id=generate_identity_id(),
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=role,
            approval_status=approval_sm.initial_approval_status(role),
            trust_score=score,
            risk_level=risk,
            verification=verification,
            created_at=now,
            updated_at=now,
        )

    def bootstrap_admin(self, name: str, email: str, password: str) -> Tuple[Identity, bool]:
        """Create an approved administrator unless the email exists. Returns (identity, created)."""
        existing = self.store.get_by_email(email)
        if existing is not None:
            return existing, False
        errors = validate_registration_data({"name": name, "email": email, "password": password})
        if errors:
            raise ValidationError("Invalid administrator data", errors)
        identity = self._build_identity(
            name=name.strip(),
            email=normalize_email(email),
            password=password,
            role=Role.ADMINISTRATOR,
            evidence={},
        )
        stored = self.store.insert(identity)
        audit.audit_identity_registered(
            stored.id, stored.role.value, stored.approval_status.value, stored.trust_score
        )
        logger.info("[IDENTITY] Bootstrapped administrator %s", stored.id)
        return stored, True

    def login(self, email: Any, password: Any) -> Tuple[Identity, str]:
        """Check credentials and the access gate. Returns (identity, token).

        Raises
        ------
        ValidationError
            Missing or wrong credentials.
        PermissionDeniedError
            Credentials are valid but the account is not approved. The error
            carries approval/appeal status, the summary and a token so the
            applicant can still read their profile and appeal.
        """
        if not isinstance(email, str) or not isinstance(password, str) or not email or not password:
            raise ValidationError("email and password are required")
        identity = self.store.get_by_email(email)
        if identity is None or not verify_password(password, identity.password_hash):
            logger.warning("[AUTH] Failed login for %s", normalize_email(email))
            raise ValidationError("Invalid credentials")

        token = issue_token(identity.id, identity.role.value)
        decision = authorize(identity, path="login")
        if not decision.allowed:
            raise PermissionDeniedError(
                decision.reason,
                extra={
                    "approvalStatus": decision.approval_status.value,
                    "appealStatus": decision.appeal_status.value,
                    "user": identity.to_dict(),
                    "token": token,
                },
            )
        return identity, token

    # ------------------------------------------------------------------ #
    # Per-request authentication and access gate
    # ------------------------------------------------------------------ #
    def authenticate(self, token: str) -> Identity:
        """Resolve a bearer token to the identity as currently stored."""
        payload = decode_token(token)
        identity = self.store.get(payload["sub"])
        if identity is None:
            raise AuthenticationError("Invalid token.")
        return identity

    def check_access(self, identity: Identity, path: Optional[str] = None) -> GateDecision:
        """Run the access gate; raise PermissionDeniedError with status details on denial."""
        decision = authorize(identity, path=path)
        if not decision.allowed:
            raise PermissionDeniedError(
                decision.reason,
                extra={
                    "approvalStatus": decision.approval_status.value,
                    "appealStatus": decision.appeal_status.value,
                },
            )
        return decision

    def get_profile(self, identity_id: str) -> Identity:
        return self._load(identity_id)

    # ------------------------------------------------------------------ #
    # Approval
    # ------------------------------------------------------------------ #
    def decide(
        self,
        identity_id: str,
        new_status: Any,
        comment: Optional[str] = None,
        rejection_reason: Optional[str] = None,
        decider_id: str = "",
    ) -> Identity:
        """Administrator decision on an application.

        Raises
        ------
        PermissionDeniedError
            Decider is not an administrator.
        NotFoundError
            Unknown identity.
        ValidationError
            Unknown status or malformed comment/reason.
        ConflictError
            The identity changed concurrently.
        """
        decider = self._require_admin(decider_id)
        status = parse_approval_status(new_status)
        comment = _optional_text(comment, "comment")
        rejection_reason = _optional_text(rejection_reason, "reason")

        before, after = self._mutate(
            identity_id,
            lambda current: approval_sm.apply_decision(
                current, status, decider, comment=comment, rejection_reason=rejection_reason
            ),
        )
        audit.audit_approval_decided(
            after.id, decider.id, before.approval_status.value, after.approval_status.value,
            comment=comment, rejection_reason=rejection_reason,
        )
        return after

    def list_pending(self, requester_id: str) -> List[Identity]:
        """Applications awaiting a decision (administrators only)."""
        self._require_admin(requester_id)
        return self.store.query(
            approval_statuses=approval_sm.OPEN_STATES,
            roles=APPLICANT_ROLES,
        )

    # ------------------------------------------------------------------ #
    # Appeals
    # ------------------------------------------------------------------ #
    def submit_appeal(self, identity_id: str, comment: Any, requester_id: str) -> Identity:
        """Applicant appeals their own rejection.

        Raises
        ------
        ValidationError
            Missing comment.
        PermissionDeniedError
            Requester is not the applicant.
        NotFoundError
            Unknown identity.
        InvalidStateError
            Application is not rejected.
        ConflictError
            An appeal already exists (pending or resolved).
        """
        if not isinstance(comment, str) or not comment.strip():
            raise ValidationError("comment is required")
        comment = _optional_text(comment.strip(), "comment")
        if requester_id != identity_id:
            raise PermissionDeniedError("Only the applicant may appeal their own application")

        _, after = self._mutate(
            identity_id,
            lambda current: appeal_sm.open_appeal(current, comment, requester_id),
        )
        audit.audit_appeal_submitted(after.id)
        return after

    def resolve_appeal(
        self,
        identity_id: str,
        granted: bool,
        decider_id: str,
        comment: Optional[str] = None,
    ) -> Identity:
        """Administrator grants or denies a pending appeal."""
        decider = self._require_admin(decider_id)
        if not isinstance(granted, bool):
            raise ValidationError("granted must be a boolean")
        comment = _optional_text(comment, "comment")

        _, after = self._mutate(
            identity_id,
            lambda current: appeal_sm.resolve(current, granted, decider, comment=comment),
        )
        audit.audit_appeal_resolved(after.id, decider.id, granted)
        return after

    def list_appeals(self, requester_id: str) -> List[Identity]:
        """Pending appeals against rejections (administrators only)."""
        self._require_admin(requester_id)
        return self.store.query(
            approval_statuses=[ApprovalStatus.REJECTED],
            appeal_statuses=[AppealStatus.PENDING],
        )

    # ------------------------------------------------------------------ #
    # Verification evidence
    # ------------------------------------------------------------------ #
    def _require_editor(self, editor_id: str, identity_id: str) -> Identity:
        editor = self._load_actor(editor_id)
        if editor is None or not editor.role.capabilities.edits_verification:
            raise PermissionDeniedError("Access denied. Officer privileges required.")
        self.check_access(editor)
        if editor.id == identity_id and not editor.role.capabilities.bypasses_approval:
            raise PermissionDeniedError("Officers cannot verify their own evidence")
        return editor

    def update_verification(self, identity_id: str, patch: Any, editor_id: str) -> Identity:
        """Apply an evidence patch and rescore in the same write.

        Raises
        ------
        PermissionDeniedError
            Editor is neither an administrator nor an approved field officer.
        ValidationError
            Any field of the patch is invalid (nothing is applied).
        NotFoundError
            Unknown identity.
        """
        editor = self._require_editor(editor_id, identity_id)
        if not isinstance(patch, dict):
            raise ValidationError("evidence must be an object")
        errors = validate_verification_patch(patch)
        if errors:
            raise ValidationError("Invalid verification evidence", errors)

        def rescore(current: Identity) -> Identity:
            verification = apply_verification_patch(current.verification, patch)
            score, risk = score_and_classify(verification, current.role)
            return replace(
                current,
                verification=verification,
                trust_score=score,
                risk_level=risk,
                updated_at=utc_now_iso(),
            )

        before, after = self._mutate(identity_id, rescore)
        audit.audit_verification_updated(
            after.id, editor.id, list(patch), after.trust_score, after.risk_level.value
        )
        logger.info(
            "[IDENTITY] Rescored %s: %d/%s -> %d/%s (by %s)",
            after.id, before.trust_score, before.risk_level.value,
            after.trust_score, after.risk_level.value, editor.id,
        )
        return after

    def verification_recommendations(
        self,
        requester_id: str,
        threshold: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Applicants whose trust score is below ``threshold``, lowest first, with missing evidence."""
        self._require_admin(requester_id)
        if threshold is None:
            from heva.core.settings import get_recommendation_threshold
            threshold = get_recommendation_threshold()
        candidates = self.store.query(roles=APPLICANT_ROLES, max_trust_score=threshold - 1)
        candidates.sort(key=lambda i: (i.trust_score, i.created_at))
        return [
            {**identity.to_dict(), "missingEvidence": missing_evidence(identity.verification)}
            for identity in candidates
        ]
