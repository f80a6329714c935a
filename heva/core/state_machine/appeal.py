# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Appeal state machine: a single reconsideration cycle after rejection.

NONE -> PENDING -> APPROVED | REJECTED. A granted appeal is an approval (the
approval side effects reset the appeal back to NONE). A denied appeal is final:
its REJECTED state blocks any further appeal.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional, Set

from heva.core.errors import ConflictError, InvalidStateError, PermissionDeniedError
from heva.core.identity.models import AppealStatus, ApprovalStatus, Identity, utc_now_iso
from heva.core.state_machine.approval import apply_decision, require_decider

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[AppealStatus, Set[AppealStatus]] = {
    AppealStatus.NONE: {AppealStatus.PENDING},
    AppealStatus.PENDING: {AppealStatus.APPROVED, AppealStatus.REJECTED},
    AppealStatus.APPROVED: set(),  # Terminal; approval resets it to NONE
    AppealStatus.REJECTED: set(),  # Terminal: appeal is single-shot
}

GRANTED_COMMENT = "Appeal granted"
DENIED_COMMENT = "Appeal rejected"


def open_appeal(
    identity: Identity,
    comment: str,
    requester_id: str,
    now: Optional[str] = None,
) -> Identity:
    """Open an appeal against a rejection.

    Raises
    ------
    PermissionDeniedError
        If the requester does not own the identity or its role may not appeal.
    InvalidStateError
        If the application is not rejected.
    ConflictError
        If an appeal was already opened (pending or resolved).
    """
    if requester_id != identity.id:
        raise PermissionDeniedError("Only the applicant may appeal their own application")
    if not identity.role.capabilities.may_appeal:
        raise PermissionDeniedError(f"Role {identity.role.value} cannot submit appeals")
    if identity.approval_status is not ApprovalStatus.REJECTED:
        raise InvalidStateError(
            "Appeals can only be submitted for rejected applications",
            extra={"approvalStatus": identity.approval_status.value},
        )
    if AppealStatus.PENDING not in ALLOWED_TRANSITIONS[identity.appeal_status]:
        raise ConflictError(
            "An appeal has already been submitted for this application",
            extra={"appealStatus": identity.appeal_status.value},
        )

    ts = now or utc_now_iso()
    updated = replace(
        identity,
        appeal_status=AppealStatus.PENDING,
        appeal_comment=comment,
        appeal_submitted_at=ts,
        updated_at=ts,
    )
    logger.info("[APPEAL] Identity %s opened an appeal", identity.id)
    return updated


def resolve(
    identity: Identity,
    granted: bool,
    decider: Identity,
    comment: Optional[str] = None,
    now: Optional[str] = None,
) -> Identity:
    """Resolve a pending appeal.

    Granted appeals go through :func:`apply_decision` with APPROVED, so every
    approval side effect applies. Denied appeals keep the application REJECTED.

    Raises
    ------
    PermissionDeniedError
        If ``decider`` cannot decide applications.
    InvalidStateError
        If there is no pending appeal.
    """
    require_decider(decider)
    if identity.appeal_status is not AppealStatus.PENDING or \
            identity.approval_status is not ApprovalStatus.REJECTED:
        raise InvalidStateError(
            "No pending appeal to resolve",
            extra={
                "approvalStatus": identity.approval_status.value,
                "appealStatus": identity.appeal_status.value,
            },
        )

    ts = now or utc_now_iso()
    if granted:
        logger.info("[APPEAL] Appeal for %s granted by %s", identity.id, decider.id)
        return apply_decision(
            identity,
            ApprovalStatus.APPROVED,
            decider,
            comment=comment or GRANTED_COMMENT,
            now=ts,
        )

    logger.info("[APPEAL] Appeal for %s denied by %s", identity.id, decider.id)
    return replace(
        identity,
        appeal_status=AppealStatus.REJECTED,
        approved_by=decider.id,
        approved_at=ts,
        approval_comment=comment or DENIED_COMMENT,
        updated_at=ts,
    )


__all__ = [
    "ALLOWED_TRANSITIONS",
    "GRANTED_COMMENT",
    "DENIED_COMMENT",
    "open_appeal",
    "resolve",
]
