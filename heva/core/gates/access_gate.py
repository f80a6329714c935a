# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Access gate: per-request authorization on role and approval status.

Run on every privileged request against the identity as currently stored, never
against claims baked into a token, because approval can change between a
token's issuance and its use.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from heva.core.identity.models import AppealStatus, ApprovalStatus, Identity

logger = logging.getLogger(__name__)

_DENY_MESSAGES: Dict[ApprovalStatus, str] = {
    ApprovalStatus.PENDING: "Account pending approval. Please contact an administrator.",
    ApprovalStatus.UNDER_REVIEW: "Account is under review. Please check back later.",
    ApprovalStatus.REJECTED: "Account application was rejected.",
}


@dataclass(frozen=True)
class GateDecision:
    """Outcome of an access check."""
    allowed: bool
    reason: str
    approval_status: ApprovalStatus
    appeal_status: AppealStatus

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "reason": self.reason,
            "approvalStatus": self.approval_status.value,
            "appealStatus": self.appeal_status.value,
        }


def _denial_reason(identity: Identity) -> str:
    if identity.approval_status is ApprovalStatus.REJECTED:
        if identity.appeal_status is AppealStatus.NONE:
            return _DENY_MESSAGES[ApprovalStatus.REJECTED] + " You may submit an appeal."
        if identity.appeal_status is AppealStatus.PENDING:
            return _DENY_MESSAGES[ApprovalStatus.REJECTED] + " Your appeal is being reviewed."
        return _DENY_MESSAGES[ApprovalStatus.REJECTED] + " Your appeal was denied."
    return _DENY_MESSAGES.get(identity.approval_status, "Account is not approved.")


def authorize(identity: Identity, path: Optional[str] = None) -> GateDecision:
    """
    Administrators are always allowed. Everyone else needs isApproved.
    Denials carry approval and appeal status so the client can render guidance.
    """
    if identity.role.capabilities.bypasses_approval:
        return GateDecision(True, "administrator", identity.approval_status, identity.appeal_status)
    if identity.is_approved:
        return GateDecision(True, "approved", identity.approval_status, identity.appeal_status)

    reason = _denial_reason(identity)
    logger.info(
        "[GATE] Denied %s (%s) on %s: approval=%s appeal=%s",
        identity.id, identity.role.value, path or "-",
        identity.approval_status.value, identity.appeal_status.value,
    )
    return GateDecision(False, reason, identity.approval_status, identity.appeal_status)
