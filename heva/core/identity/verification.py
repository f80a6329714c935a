# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Verification evidence patches.

A patch is a partial evidence payload. Each field is validated on its own; the
whole patch is rejected if any field is invalid, so evidence is never half-applied.
``references`` and ``documents`` replace the stored lists wholesale.

Rules:
  - Flag fields (idDocumentVerified, phoneVerified, emailVerified, locationVerified) must be booleans
  - references/documents must be lists of objects with a boolean ``verified``
  - Optional string metadata (name, relationship, phone / type, filename, uploadedAt) must be strings
  - Unknown fields are rejected
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List

from heva.core.errors import ValidationError
from heva.core.identity.models import Document, Reference, Verification

FLAG_FIELDS: Dict[str, str] = {
    "idDocumentVerified": "id_document_verified",
    "phoneVerified": "phone_verified",
    "emailVerified": "email_verified",
    "locationVerified": "location_verified",
}
_REFERENCE_TEXT_FIELDS = ("name", "relationship", "phone")
_DOCUMENT_TEXT_FIELDS = ("type", "filename", "uploadedAt")
LIST_FIELDS = ("references", "documents")


def _validate_items(key: str, items: Any, text_fields: tuple) -> List[str]:
    if not isinstance(items, list):
        return [f"{key} must be a list"]
    errors: List[str] = []
    for i, item in enumerate(items):
        if not isinstance(item, dict):
            errors.append(f"{key}[{i}] must be an object")
            continue
        unknown = set(item) - {"verified", *text_fields}
        if unknown:
            errors.append(f"{key}[{i}] has unknown fields: {sorted(unknown)}")
        if "verified" in item and not isinstance(item["verified"], bool):
            errors.append(f"{key}[{i}].verified must be a boolean")
        for tf in text_fields:
            if tf in item and item[tf] is not None and not isinstance(item[tf], str):
                errors.append(f"{key}[{i}].{tf} must be a string")
    return errors


def validate_verification_patch(patch: Any) -> List[str]:
    """Validate an evidence patch. Returns list of error messages (empty = valid)."""
    if patch is None:
        return []
    if not isinstance(patch, dict):
        return ["evidence must be an object"]

    errors: List[str] = []
    unknown = set(patch) - set(FLAG_FIELDS) - set(LIST_FIELDS)
    if unknown:
        errors.append(f"Unknown evidence fields: {sorted(unknown)}")

    for key in FLAG_FIELDS:
        if key in patch and not isinstance(patch[key], bool):
            errors.append(f"{key} must be a boolean")

    if "references" in patch:
        errors.extend(_validate_items("references", patch["references"], _REFERENCE_TEXT_FIELDS))
    if "documents" in patch:
        errors.extend(_validate_items("documents", patch["documents"], _DOCUMENT_TEXT_FIELDS))
    return errors


def apply_verification_patch(verification: Verification, patch: Dict[str, Any]) -> Verification:
    """Return ``verification`` with ``patch`` applied.

    Raises
    ------
    ValidationError
        If any field of the patch is invalid. Nothing is applied in that case.
    """
    errors = validate_verification_patch(patch)
    if errors:
        raise ValidationError("Invalid verification evidence", errors)
    if not patch:
        return verification

    updates: Dict[str, Any] = {
        attr: patch[key] for key, attr in FLAG_FIELDS.items() if key in patch
    }
    if "references" in patch:
        updates["references"] = tuple(Reference.from_dict(r) for r in patch["references"])
    if "documents" in patch:
        updates["documents"] = tuple(Document.from_dict(d) for d in patch["documents"])
    return replace(verification, **updates)


def missing_evidence(verification: Verification) -> List[str]:
    """Evidence items that would raise the trust score if verified."""
    missing = [key for key, attr in FLAG_FIELDS.items() if not getattr(verification, attr)]
    if not any(r.verified for r in verification.references):
        missing.append("references")
    if not any(d.verified for d in verification.documents):
        missing.append("documents")
    return missing


def as_unverified(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Copy of a validated ``patch`` with every ``verified`` claim cleared.

    Evidence supplied by the applicant is recorded for review; only an
    administrator or field officer can mark it verified.
    """
    cleared: Dict[str, Any] = {key: False for key in FLAG_FIELDS if key in patch}
    for key in LIST_FIELDS:
        if key in patch:
            cleared[key] = [{**item, "verified": False} for item in patch[key]]
    return cleared
