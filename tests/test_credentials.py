# Copyright 2026 HEVA
# SPDX-License-Identifier: MIT
"""Tests: password hashing and bearer tokens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from heva.core import settings
from heva.core.auth.credentials import (
    decode_token,
    hash_password,
    issue_token,
    parse_bearer,
    verify_password,
)
from heva.core.errors import AuthenticationError


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    monkeypatch.setenv("HEVA_JWT_SECRET", "heva-test-secret-0123456789abcdef")
    monkeypatch.setenv("HEVA_CONFIG_FILE", str(tmp_path / "missing.yaml"))
    monkeypatch.setattr(settings, "_CONFIG_CACHE", None)


def test_hash_and_verify() -> None:
    hashed = hash_password("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed) is True
    assert verify_password("wrong-pass", hashed) is False


def test_hashes_are_salted() -> None:
    assert hash_password("same-password") != hash_password("same-password")


def test_verify_against_unusable_hash() -> None:
    assert verify_password("anything", "not-an-argon2-hash") is False
    assert verify_password("anything", "") is False


def test_token_round_trip() -> None:
    token = issue_token("usr_abc", "beneficiary")
    payload = decode_token(token)
    assert payload["sub"] == "usr_abc"
    assert payload["role"] == "beneficiary"


def test_expired_token() -> None:
    token = issue_token("usr_abc", "beneficiary", now=datetime.now(timezone.utc) - timedelta(days=3))
    with pytest.raises(AuthenticationError, match="expired"):
        decode_token(token)


def test_token_signed_with_other_secret(monkeypatch) -> None:
    token = issue_token("usr_abc", "beneficiary")
    monkeypatch.setenv("HEVA_JWT_SECRET", "heva-rotated-secret-0123456789abcdef")
    settings.load_config(reload=True)
    with pytest.raises(AuthenticationError):
        decode_token(token)


def test_missing_token() -> None:
    with pytest.raises(AuthenticationError, match="No token"):
        decode_token("")


def test_parse_bearer() -> None:
    assert parse_bearer("Bearer abc.def") == "abc.def"
    assert parse_bearer("bearer   abc.def ") == "abc.def"
    assert parse_bearer("Basic xyz") == ""
    assert parse_bearer(None) == ""
