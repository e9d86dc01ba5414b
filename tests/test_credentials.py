"""
Tests for password policy, hashing and verification.
"""

import pytest

from userkit.core.exceptions import FieldError, HashingError, MissingPasswordError
from userkit.core.security import CredentialManager


def test_validate_accepts_matching_password(credentials: CredentialManager) -> None:
    """Test that a confirmed password within bounds passes."""
    assert credentials.validate("Secret1", "Secret1", is_new=True) == []


def test_validate_length_bounds(credentials: CredentialManager) -> None:
    """Test that both length bounds are inclusive and share one message."""
    assert credentials.validate("a" * 6, "a" * 6, is_new=True) == []
    assert credentials.validate("a" * 32, "a" * 32, is_new=True) == []

    too_short = credentials.validate("a" * 5, "a" * 5, is_new=True)
    too_long = credentials.validate("a" * 33, "a" * 33, is_new=True)
    expected = [FieldError("password", "must be at least 6 characters.")]
    assert too_short == expected
    assert too_long == expected


def test_validate_mismatched_confirmation(credentials: CredentialManager) -> None:
    """Test that a confirmation mismatch is reported on password_confirm."""
    errors = credentials.validate("Secret1", "Different", is_new=True)
    assert errors == [FieldError("password_confirm", "must match password.")]


def test_validate_collects_every_violation(credentials: CredentialManager) -> None:
    """Test that a short, unconfirmed password yields both errors."""
    errors = credentials.validate("abc", "abcd", is_new=False)
    assert [e.field for e in errors] == ["password", "password_confirm"]


def test_validate_confirmation_without_password(credentials: CredentialManager) -> None:
    """Test that a lone confirmation is checked like a password."""
    errors = credentials.validate(None, "Secret1", is_new=False)
    assert {e.field for e in errors} == {"password", "password_confirm"}


def test_validate_requires_password_for_new_record(credentials: CredentialManager) -> None:
    """Test that new records must supply a password but existing ones need not."""
    assert credentials.validate(None, None, is_new=True) == [FieldError("password", "required")]
    assert credentials.validate("", "", is_new=True) == [FieldError("password", "required")]
    assert credentials.validate(None, None, is_new=False) == []


def test_custom_length_bounds() -> None:
    """Test that bounds come from construction."""
    manager = CredentialManager(rounds=4, min_length=10, max_length=12)
    errors = manager.validate("Secret1", "Secret1", is_new=True)
    assert errors == [FieldError("password", "must be at least 10 characters.")]


@pytest.mark.asyncio
async def test_hash_is_salted_and_encodes_cost(credentials: CredentialManager) -> None:
    """Test that hashing twice gives different hashes that both verify."""
    first = await credentials.hash("Secret1")
    second = await credentials.hash("Secret1")

    assert first != second
    assert first != "Secret1"
    assert first.startswith("$bcrypt-sha256$")
    assert ",r=04$" in first
    assert await credentials.verify("Secret1", first)
    assert await credentials.verify("Secret1", second)


@pytest.mark.asyncio
async def test_verify_wrong_password_is_false(credentials: CredentialManager) -> None:
    """Test that a wrong password is a False result, not an error."""
    hashed = await credentials.hash("Secret1")
    assert await credentials.verify("Secret2", hashed) is False
    assert await credentials.verify("secret1", hashed) is False


@pytest.mark.asyncio
async def test_verify_requires_password(credentials: CredentialManager) -> None:
    """Test that an empty password is a caller error."""
    hashed = await credentials.hash("Secret1")
    with pytest.raises(MissingPasswordError):
        await credentials.verify("", hashed)
    with pytest.raises(MissingPasswordError):
        await credentials.verify(None, hashed)


@pytest.mark.asyncio
async def test_verify_unreadable_hash(credentials: CredentialManager) -> None:
    """Test that a corrupt stored hash surfaces as a hashing failure."""
    with pytest.raises(HashingError):
        await credentials.verify("Secret1", "not-a-hash")


@pytest.mark.asyncio
async def test_needs_rehash_after_cost_increase() -> None:
    """Test that hashes made with a lower cost are flagged for upgrade."""
    weak = CredentialManager(rounds=4)
    strong = CredentialManager(rounds=5)
    hashed = await weak.hash("Secret1")

    assert weak.needs_rehash(hashed) is False
    assert strong.needs_rehash(hashed) is True


@pytest.mark.asyncio
async def test_every_character_counts(credentials: CredentialManager) -> None:
    """Test that passwords sharing a long multibyte prefix do not verify against each other."""
    original = "\U0001F600" * 18 + "a" * 14
    other = "\U0001F600" * 18 + "b" * 14
    assert credentials.validate(original, original, is_new=True) == []

    hashed = await credentials.hash(original)

    assert await credentials.verify(original, hashed) is True
    assert await credentials.verify(other, hashed) is False


@pytest.mark.asyncio
async def test_nul_character_is_hashed(credentials: CredentialManager) -> None:
    """Test that a valid password containing NUL hashes and verifies exactly."""
    password = "abc\x00def"
    assert credentials.validate(password, password, is_new=True) == []

    hashed = await credentials.hash(password)

    assert await credentials.verify(password, hashed) is True
    assert await credentials.verify("abc", hashed) is False
