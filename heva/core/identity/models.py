# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Identity model: one record per registered person (administrator, field officer, beneficiary).

An Identity carries the person's role, the approval/appeal workflow state and the
verification evidence the trust score is computed from. Field names on the wire
follow the client contract (camelCase); the Python side uses snake_case.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class Role(Enum):
    """Who the identity is on the platform."""

    ADMINISTRATOR = "admin"
    FIELD_OFFICER = "officer"
    BENEFICIARY = "beneficiary"

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Parse a wire value, accepting pre-migration role names."""
        if isinstance(value, Role):
            return value
        key = str(value or "").strip().lower()
        if key in ROLE_ALIASES:
            return ROLE_ALIASES[key]
        raise ValueError(f"role must be one of {sorted(r.value for r in cls)}")

    @property
    def capabilities(self) -> "RoleCapabilities":
        return ROLE_CAPABILITIES[self]


ROLE_ALIASES: Dict[str, Role] = {
    "admin": Role.ADMINISTRATOR,
    "administrator": Role.ADMINISTRATOR,
    "admin_user": Role.ADMINISTRATOR,
    "officer": Role.FIELD_OFFICER,
    "field_officer": Role.FIELD_OFFICER,
    "data_entry": Role.FIELD_OFFICER,
    "beneficiary": Role.BENEFICIARY,
    "user": Role.BENEFICIARY,
}


@dataclass(frozen=True)
class RoleCapabilities:
    """What a role may do inside the onboarding workflow.

    Fields:
        bypasses_approval: Always passes the access gate, whatever its approval status.
        auto_approved: Approved at registration without an administrator decision.
        self_registration: May be requested through the public registration endpoint.
        decides_applications: May decide approvals and resolve appeals.
        edits_verification: May update another identity's verification evidence.
        may_appeal: May contest a rejection.
        trust_bonus: Added to the evidence-based trust score.
    """
    bypasses_approval: bool
    auto_approved: bool
    self_registration: bool
    decides_applications: bool
    edits_verification: bool
    may_appeal: bool
    trust_bonus: int


ROLE_CAPABILITIES: Dict[Role, RoleCapabilities] = {
    Role.ADMINISTRATOR: RoleCapabilities(
        bypasses_approval=True,
        auto_approved=True,
        self_registration=False,
        decides_applications=True,
        edits_verification=True,
        may_appeal=False,
        trust_bonus=20,
    ),
    Role.FIELD_OFFICER: RoleCapabilities(
        bypasses_approval=False,
        auto_approved=True,
        self_registration=True,
        decides_applications=False,
        edits_verification=True,
        may_appeal=True,
        trust_bonus=10,
    ),
    Role.BENEFICIARY: RoleCapabilities(
        bypasses_approval=False,
        auto_approved=False,
        self_registration=True,
        decides_applications=False,
        edits_verification=False,
        may_appeal=True,
        trust_bonus=0,
    ),
}


class ApprovalStatus(Enum):
    """Approval workflow states."""

    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class AppealStatus(Enum):
    """Appeal workflow states. NONE means no appeal has been opened."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RiskLevel(Enum):
    """Coarse risk tier derived from the trust score."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Reference:
    """A personal reference vouching for the applicant."""
    verified: bool = False
    name: Optional[str] = None
    relationship: Optional[str] = None
    phone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"verified": self.verified}
        for key in ("name", "relationship", "phone"):
            v = getattr(self, key)
            if v is not None:
                d[key] = v
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Reference":
        return cls(
            verified=bool(d.get("verified", False)),
            name=d.get("name"),
            relationship=d.get("relationship"),
            phone=d.get("phone"),
        )


@dataclass(frozen=True)
class Document:
    """An uploaded supporting document."""
    verified: bool = False
    type: Optional[str] = None
    filename: Optional[str] = None
    uploaded_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"verified": self.verified}
        if self.type is not None:
            d["type"] = self.type
        if self.filename is not None:
            d["filename"] = self.filename
        if self.uploaded_at is not None:
            d["uploadedAt"] = self.uploaded_at
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Document":
        return cls(
            verified=bool(d.get("verified", False)),
            type=d.get("type"),
            filename=d.get("filename"),
            uploaded_at=d.get("uploadedAt"),
        )


@dataclass(frozen=True)
class Verification:
    """Structured verification evidence for one identity."""
    id_document_verified: bool = False
    phone_verified: bool = False
    email_verified: bool = False
    location_verified: bool = False
    references: Tuple[Reference, ...] = ()
    documents: Tuple[Document, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "idDocumentVerified": self.id_document_verified,
            "phoneVerified": self.phone_verified,
            "emailVerified": self.email_verified,
            "locationVerified": self.location_verified,
            "references": [r.to_dict() for r in self.references],
            "documents": [d.to_dict() for d in self.documents],
        }

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, Any]]) -> "Verification":
        d = d or {}
        return cls(
            id_document_verified=bool(d.get("idDocumentVerified", False)),
            phone_verified=bool(d.get("phoneVerified", False)),
            email_verified=bool(d.get("emailVerified", False)),
            location_verified=bool(d.get("locationVerified", False)),
            references=tuple(Reference.from_dict(r) for r in d.get("references") or []),
            documents=tuple(Document.from_dict(x) for x in d.get("documents") or []),
        )


@dataclass(frozen=True)
class Identity:
    """A registered person's account record, role and workflow state.

    Instances are immutable; workflow steps return updated copies which the
    store persists with a version check. ``password_hash`` never leaves the
    service layer: ``to_dict`` omits it.
    """
    id: str
    name: str
    email: str
    role: Role
    approval_status: ApprovalStatus
    trust_score: int
    risk_level: RiskLevel
    verification: Verification = field(default_factory=Verification)
    appeal_status: AppealStatus = AppealStatus.NONE
    password_hash: str = field(default="", repr=False)
    approved_by: Optional[str] = None
    approved_at: Optional[str] = None
    rejection_reason: Optional[str] = None
    approval_comment: Optional[str] = None
    appeal_comment: Optional[str] = None
    appeal_submitted_at: Optional[str] = None
    created_at: str = ""
    updated_at: str = ""
    version: int = 0

    @property
    def is_approved(self) -> bool:
        return self.approval_status is ApprovalStatus.APPROVED

    def to_dict(self) -> Dict[str, Any]:
        """Identity summary for API responses (credentials excluded)."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "approvalStatus": self.approval_status.value,
            "isApproved": self.is_approved,
            "appealStatus": self.appeal_status.value,
            "trustScore": self.trust_score,
            "riskLevel": self.risk_level.value,
            "verification": self.verification.to_dict(),
            "approvedBy": self.approved_by,
            "approvedAt": self.approved_at,
            "rejectionReason": self.rejection_reason,
            "approvalComment": self.approval_comment,
            "appealComment": self.appeal_comment,
            "appealSubmittedAt": self.appeal_submitted_at,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }


def generate_identity_id() -> str:
    """Generate a unique identity ID."""
    return f"usr_{uuid.uuid4().hex[:12]}"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


__all__ = [
    "Role",
    "RoleCapabilities",
    "ROLE_CAPABILITIES",
    "ROLE_ALIASES",
    "ApprovalStatus",
    "AppealStatus",
    "RiskLevel",
    "Reference",
    "Document",
    "Verification",
    "Identity",
    "generate_identity_id",
    "utc_now_iso",
    "normalize_email",
]
