# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""SQLite-backed storage for identities.

This module provides a thin, typed wrapper around ``sqlite3`` for persisting
and retrieving :class:`heva.core.identity.models.Identity` objects.

Responsibilities only cover storage concerns:
- Database/file initialization
- Repository operations: ``get``, ``insert``, ``compare_and_swap``, ``query``

Every write bumps the record's ``version``. ``compare_and_swap`` only succeeds
when the caller read the latest version, which makes each workflow step an
atomic read-modify-write. All workflow rules live in the service layer.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from heva.core.errors import ConflictError
from heva.core.identity.models import (
    AppealStatus,
    ApprovalStatus,
    Identity,
    RiskLevel,
    Role,
    Verification,
    normalize_email,
)

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id", "name", "email", "password_hash", "role",
    "approval_status", "is_approved", "appeal_status",
    "trust_score", "risk_level", "verification",
    "approved_by", "approved_at", "rejection_reason", "approval_comment",
    "appeal_comment", "appeal_submitted_at",
    "created_at", "updated_at", "version",
)


class IdentityStore:
    """Persistence layer for :class:`Identity` objects using SQLite."""

    def __init__(self, db_path: Optional[Path] = None) -> None:
        """Create a new ``IdentityStore``.

        Parameters
        ----------
        db_path:
            Path to the SQLite database file. If omitted, uses the configured
            storage path (``HEVA_DB_PATH``, default ``out/heva.db``).
        """
        if db_path is None:
            from heva.core.settings import get_db_path
            db_path = Path(get_db_path())

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

        self._init_db()

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _get_connection(self) -> sqlite3.Connection:
        """Open a new SQLite connection."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize the database schema if it does not exist."""
        conn = self._get_connection()
        try:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS identities (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    role TEXT NOT NULL,
                    approval_status TEXT NOT NULL,
                    is_approved INTEGER NOT NULL DEFAULT 0,
                    appeal_status TEXT NOT NULL DEFAULT 'none',
                    trust_score INTEGER NOT NULL,
                    risk_level TEXT NOT NULL,
                    verification TEXT NOT NULL DEFAULT '{}',
                    approved_by TEXT,
                    approved_at TEXT,
                    rejection_reason TEXT,
                    approval_comment TEXT,
                    appeal_comment TEXT,
                    appeal_submitted_at TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1
                );
                CREATE INDEX IF NOT EXISTS idx_identities_approval
                    ON identities (approval_status, appeal_status);
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _to_params(identity: Identity) -> Dict[str, Any]:
        return {
            "id": identity.id,
            "name": identity.name,
            "email": normalize_email(identity.email),
            "password_hash": identity.password_hash,
            "role": identity.role.value,
            "approval_status": identity.approval_status.value,
            "is_approved": 1 if identity.is_approved else 0,
            "appeal_status": identity.appeal_status.value,
            "trust_score": identity.trust_score,
            "risk_level": identity.risk_level.value,
            "verification": json.dumps(identity.verification.to_dict()),
            "approved_by": identity.approved_by,
            "approved_at": identity.approved_at,
            "rejection_reason": identity.rejection_reason,
            "approval_comment": identity.approval_comment,
            "appeal_comment": identity.appeal_comment,
            "appeal_submitted_at": identity.appeal_submitted_at,
            "created_at": identity.created_at,
            "updated_at": identity.updated_at,
            "version": identity.version,
        }

    @staticmethod
    def _row_to_identity(row: sqlite3.Row) -> Identity:
        return Identity(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=Role(row["role"]),
            approval_status=ApprovalStatus(row["approval_status"]),
            appeal_status=AppealStatus(row["appeal_status"]),
            trust_score=int(row["trust_score"]),
            risk_level=RiskLevel(row["risk_level"]),
            verification=Verification.from_dict(json.loads(row["verification"] or "{}")),
            approved_by=row["approved_by"],
            approved_at=row["approved_at"],
            rejection_reason=row["rejection_reason"],
            approval_comment=row["approval_comment"],
            appeal_comment=row["appeal_comment"],
            appeal_submitted_at=row["appeal_submitted_at"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            version=int(row["version"]),
        )

    def _fetch_one(self, where: str, params: tuple) -> Optional[Identity]:
        conn = self._get_connection()
        try:
            row = conn.execute(
                f"SELECT {', '.join(_COLUMNS)} FROM identities WHERE {where}", params
            ).fetchone()
        finally:
            conn.close()
        return self._row_to_identity(row) if row else None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def get(self, identity_id: str) -> Optional[Identity]:
        """Fetch one identity by id, or ``None``."""
        return self._fetch_one("id = ?", (identity_id,))

    def get_by_email(self, email: str) -> Optional[Identity]:
        """Fetch one identity by (case-insensitive) email, or ``None``."""
        return self._fetch_one("email = ?", (normalize_email(email),))

    def insert(self, identity: Identity) -> Identity:
        """Insert a new identity. Returns it with ``version`` 1.

        Raises
        ------
        ConflictError
            If the email (or id) is already registered.
        """
        stored = replace(identity, email=normalize_email(identity.email), version=1)
        params = self._to_params(stored)
        placeholders = ", ".join(f":{c}" for c in _COLUMNS)
        with self._lock:
            conn = self._get_connection()
            try:
                conn.execute(
                    f"INSERT INTO identities ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                    params,
                )
                conn.commit()
            except sqlite3.IntegrityError as e:
                logger.warning("[IDENTITY] Insert rejected for %s: %s", stored.email, e)
                if "email" in str(e):
                    raise ConflictError(f"Email {stored.email} is already registered") from e
                raise ConflictError(f"Identity {stored.id} already exists") from e
            finally:
                conn.close()
        return stored

    def compare_and_swap(self, identity: Identity, expected_version: int) -> Identity:
        """Persist ``identity`` only if the stored version still equals ``expected_version``.

        Returns the stored identity with its version bumped.

        Raises
        ------
        ConflictError
            If another writer updated the record first (or it vanished).
        """
        stored = replace(identity, version=expected_version + 1)
        params = self._to_params(stored)
        params["expected_version"] = expected_version
        assignments = ", ".join(f"{c} = :{c}" for c in _COLUMNS if c not in ("id", "created_at"))
        with self._lock:
            conn = self._get_connection()
            try:
                cur = conn.execute(
                    f"UPDATE identities SET {assignments} WHERE id = :id AND version = :expected_version",
                    params,
                )
                conn.commit()
                updated = cur.rowcount
            finally:
                conn.close()
        if updated != 1:
            logger.warning(
                "[IDENTITY] Stale write rejected for %s (expected version %d)",
                identity.id, expected_version,
            )
            raise ConflictError(
                f"Identity {identity.id} was modified concurrently; reload and retry"
            )
        return stored

    def query(
        self,
        *,
        approval_statuses: Optional[Iterable[ApprovalStatus]] = None,
        appeal_statuses: Optional[Iterable[AppealStatus]] = None,
        roles: Optional[Iterable[Role]] = None,
        max_trust_score: Optional[int] = None,
    ) -> List[Identity]:
        """Fetch identities matching every given filter, oldest first."""
        clauses: List[str] = []
        params: List[Any] = []
        for column, values in (
            ("approval_status", approval_statuses),
            ("appeal_status", appeal_statuses),
            ("role", roles),
        ):
            if values is None:
                continue
            vals = [v.value for v in values]
            if not vals:
                return []
            clauses.append(f"{column} IN ({','.join('?' * len(vals))})")
            params.extend(vals)
        if max_trust_score is not None:
            clauses.append("trust_score <= ?")
            params.append(int(max_trust_score))

        sql = f"SELECT {', '.join(_COLUMNS)} FROM identities"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at ASC, id ASC"

        conn = self._get_connection()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [self._row_to_identity(row) for row in rows]

    def list_all(self) -> List[Identity]:
        """Fetch all identities."""
        return self.query()
