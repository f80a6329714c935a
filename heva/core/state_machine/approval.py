# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Approval state machine for onboarding applications.

States: PENDING, UNDER_REVIEW, APPROVED, REJECTED. No transition is structurally
forbidden: an administrator may re-decide any application at any time. The only
gate is the actor's role. Transition functions are pure and return an updated
copy of the identity; persisting it is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional, Set

from heva.core.errors import InvalidStateError, PermissionDeniedError
from heva.core.identity.models import AppealStatus, ApprovalStatus, Identity, Role, utc_now_iso

logger = logging.getLogger(__name__)


# Allowed transitions: from_state -> set of allowed to_states (administrator actor only)
ALLOWED_TRANSITIONS: Dict[ApprovalStatus, Set[ApprovalStatus]] = {
    state: set(ApprovalStatus) for state in ApprovalStatus
}

# States an administrator still has to act on
OPEN_STATES: Set[ApprovalStatus] = {ApprovalStatus.PENDING, ApprovalStatus.UNDER_REVIEW}


def initial_approval_status(role: Role) -> ApprovalStatus:
    """Approval status at registration: auto-approved roles start APPROVED, others PENDING."""
    if role.capabilities.auto_approved:
        return ApprovalStatus.APPROVED
    return ApprovalStatus.PENDING


def require_decider(decider: Optional[Identity]) -> Identity:
    """Return ``decider`` if it may decide applications.

    Raises
    ------
    PermissionDeniedError
        If the decider is unknown or its role cannot decide.
    """
    if decider is None or not decider.role.capabilities.decides_applications:
        logger.warning(
            "[APPROVAL] Decision refused for %s: administrator privileges required",
            decider.id if decider else "<unknown>",
        )
        raise PermissionDeniedError("Access denied. Admin privileges required.")
    return decider


def get_allowed_transitions(current_state: ApprovalStatus) -> Set[ApprovalStatus]:
    """Get all states an administrator may move ``current_state`` to."""
    return ALLOWED_TRANSITIONS.get(current_state, set()).copy()


def apply_decision(
    identity: Identity,
    new_status: ApprovalStatus,
    decider: Identity,
    comment: Optional[str] = None,
    rejection_reason: Optional[str] = None,
    now: Optional[str] = None,
) -> Identity:
    """Apply an administrator decision to ``identity``.

    Parameters
    ----------
    identity:
        Application being decided.
    new_status:
        Target approval status.
    decider:
        Administrator making the decision.
    comment, rejection_reason:
        Stored as given; either may be empty.
    now:
        ISO timestamp for the decision (defaults to current UTC time).

    Returns
    -------
    Identity
        Updated copy. Approving resets the appeal fields; any other non-rejected
        status also clears them, since an appeal only exists against a rejection.

    Raises
    ------
    PermissionDeniedError
        If ``decider`` cannot decide applications.
    InvalidStateError
        If the transition table forbids the move.
    """
    require_decider(decider)
    if new_status not in get_allowed_transitions(identity.approval_status):
        raise InvalidStateError(
            f"Transition {identity.approval_status.value} -> {new_status.value} is not allowed"
        )

    ts = now or utc_now_iso()
    updates = {
        "approval_status": new_status,
        "approved_by": decider.id,
        "approved_at": ts,
        "approval_comment": comment,
        "rejection_reason": rejection_reason,
        "updated_at": ts,
    }
    if new_status is not ApprovalStatus.REJECTED:
        updates["appeal_status"] = AppealStatus.NONE
        updates["appeal_comment"] = None

    updated = replace(identity, **updates)
    logger.info(
        "[APPROVAL] Identity %s transitioned: %s -> %s (by %s)",
        identity.id, identity.approval_status.value, new_status.value, decider.id,
    )
    return updated


__all__ = [
    "ALLOWED_TRANSITIONS",
    "OPEN_STATES",
    "initial_approval_status",
    "require_decider",
    "get_allowed_transitions",
    "apply_decision",
]
