# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Audit logging: registrations, approval decisions, appeals, verification updates.

Records are appended as JSON lines only after the corresponding write has been
committed. A failed audit write is logged and never fails the workflow step.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

_LOCK = threading.Lock()


def _audit_path() -> Path:
    from heva.core.settings import get_output_dir
    return Path(get_output_dir()) / "audit" / "identity_actions.jsonl"


def _write_audit(action_type: str, payload: Dict[str, Any]) -> None:
    """Append structured audit record. Includes timestamp, action_type, identity_id, actor_id."""
    path = _audit_path()
    record = {
        "ts": datetime.now(timezone.utc).isoformat(),
        "action_type": action_type,
        **payload,
    }
    with _LOCK:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "a", encoding="utf-8") as f:
                f.write(json.dumps(record, default=str) + "\n")
        except OSError as e:
            logger.warning("[AUDIT] Failed to write: %s", e)


def audit_identity_registered(identity_id: str, role: str, approval_status: str, trust_score: int) -> None:
    """Log a new registration (or administrator bootstrap)."""
    _write_audit("identity_registered", {
        "identity_id": identity_id,
        "actor_id": identity_id,
        "role": role,
        "approval_status": approval_status,
        "trust_score": trust_score,
    })


def audit_approval_decided(
    identity_id: str,
    actor_id: str,
    from_status: str,
    to_status: str,
    comment: Optional[str] = None,
    rejection_reason: Optional[str] = None,
) -> None:
    """Log an administrator approval decision."""
    payload: Dict[str, Any] = {
        "identity_id": identity_id,
        "actor_id": actor_id,
        "from_status": from_status,
        "to_status": to_status,
    }
    if comment:
        payload["comment"] = comment
    if rejection_reason:
        payload["rejection_reason"] = rejection_reason
    _write_audit("approval_decided", payload)


def audit_appeal_submitted(identity_id: str) -> None:
    """Log an applicant's appeal."""
    _write_audit("appeal_submitted", {"identity_id": identity_id, "actor_id": identity_id})


def audit_appeal_resolved(identity_id: str, actor_id: str, granted: bool) -> None:
    """Log an appeal resolution."""
    _write_audit("appeal_resolved", {
        "identity_id": identity_id,
        "actor_id": actor_id,
        "granted": granted,
    })


def audit_verification_updated(
    identity_id: str,
    actor_id: str,
    fields: List[str],
    trust_score: int,
    risk_level: str,
) -> None:
    """Log an evidence update and the resulting score."""
    _write_audit("verification_updated", {
        "identity_id": identity_id,
        "actor_id": actor_id,
        "fields": sorted(fields),
        "trust_score": trust_score,
        "risk_level": risk_level,
    })


def read_audit_log(limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """Read audit records, oldest first (last ``limit`` if given)."""
    path = _audit_path()
    if not path.exists():
        return []
    records: List[Dict[str, Any]] = []
    with _LOCK:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    logger.warning("[AUDIT] Skipping malformed record")
    if limit is not None:
        records = records[-limit:]
    return records
