"""Tests for password hashing and legacy-scheme migration."""

import hashlib

import pytest

from covidwatch.core.security import (
    averify_and_update,
    get_password_hash,
    is_legacy_hash,
    verify_and_update,
    verify_password,
)


def _legacy(plain: str) -> str:
    return hashlib.sha256(plain.encode()).hexdigest()


def test_hash_is_bcrypt_and_salted():
    first = get_password_hash("Abcdef12")
    second = get_password_hash("Abcdef12")
    assert first.startswith("$2b$")
    assert first != second
    assert not is_legacy_hash(first)


def test_verify_current_scheme():
    hashed = get_password_hash("Abcdef12")
    assert verify_password("Abcdef12", hashed)
    assert not verify_password("abcdef12", hashed)


def test_current_hash_is_never_rewritten():
    hashed = get_password_hash("Abcdef12")
    assert verify_and_update("Abcdef12", hashed) == (True, None)
    assert verify_and_update("wrong", hashed) == (False, None)


def test_legacy_match_yields_bcrypt_replacement():
    legacy = _legacy("BobTheLegend963")
    assert is_legacy_hash(legacy)

    matched, new_hash = verify_and_update("BobTheLegend963", legacy)
    assert matched
    assert new_hash is not None and not is_legacy_hash(new_hash)
    assert verify_password("BobTheLegend963", new_hash)


def test_legacy_mismatch_has_no_replacement():
    assert verify_and_update("nope", _legacy("BobTheLegend963")) == (False, None)


@pytest.mark.parametrize("stored", ["", "plaintext-password", "$1$abc$def"])
def test_unknown_hash_format_never_matches(stored: str):
    assert verify_and_update(stored, stored) == (False, None)


@pytest.mark.asyncio
async def test_async_verify_without_user():
    assert await averify_and_update("anything", None) == (False, None)
