# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Approval and appeal state machines.

All approval-status and appeal-status changes must go through the functions in
this package; they enforce the actor and state guards before returning the
updated identity.
"""

from heva.core.state_machine.appeal import open_appeal, resolve as resolve_appeal
from heva.core.state_machine.approval import (
    OPEN_STATES,
    apply_decision,
    get_allowed_transitions,
    initial_approval_status,
    require_decider,
)

__all__ = [
    "OPEN_STATES",
    "apply_decision",
    "get_allowed_transitions",
    "initial_approval_status",
    "require_decider",
    "open_appeal",
    "resolve_appeal",
]
