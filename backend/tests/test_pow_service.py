"""Tests for the PoW hash check."""

import hashlib

import pytest

from powgate.services.errors import InvalidNonceError, NonceTooLongError
from powgate.services.pow_service import (
    check_nonce_length,
    difficulty_prefix,
    hash_solution,
    verify_nonce,
)
from tests.test_utils import find_wrong_nonce, solve_pow


class TestVerifyNonce:
    def test_hash_is_sha256_of_concatenation(self):
        """No separator between secret and nonce."""
        expected = hashlib.sha256(b"abc123").hexdigest()
        assert hash_solution("abc", "123") == expected
        assert hash_solution("abc", "123") != hashlib.sha256(b"abc:123").hexdigest()

    def test_solved_nonce_verifies(self):
        nonce = solve_pow("test_challenge", "0000")
        assert verify_nonce("test_challenge", nonce, "0000") is True

    def test_wrong_nonce_fails(self):
        nonce = find_wrong_nonce("test_challenge", "0000")
        assert verify_nonce("test_challenge", nonce, "0000") is False

    def test_deterministic(self):
        """Same inputs always give the same answer."""
        for nonce in ["", "0", "42", "x" * 128]:
            first = verify_nonce("secret", nonce, "00")
            second = verify_nonce("secret", nonce, "00")
            assert first == second

    def test_empty_nonce_is_checked_not_rejected(self):
        digest = hashlib.sha256(b"secret").hexdigest()
        assert verify_nonce("secret", "", digest[:4]) is True
        wrong_prefix = "1" if digest[0] != "1" else "2"
        assert verify_nonce("secret", "", wrong_prefix) is False

    def test_prefix_is_lowercase_hex(self):
        secret = "case_check"
        digest = hash_solution(secret, "1")
        assert verify_nonce(secret, "1", digest[:6]) is True
        if any(c.isalpha() for c in digest[:6]):
            assert verify_nonce(secret, "1", digest[:6].upper()) is False

    def test_utf8_input(self):
        expected = hashlib.sha256("défi✓".encode()).hexdigest()
        assert hash_solution("défi", "✓") == expected


class TestDifficultyPrefix:
    def test_prefix_length_matches_difficulty(self):
        assert difficulty_prefix(4) == "0000"
        assert difficulty_prefix(1) == "0"


class TestNonceLength:
    def test_within_limit(self):
        check_nonce_length("a" * 128, 128)
        check_nonce_length("", 128)

    def test_over_limit(self):
        with pytest.raises(NonceTooLongError):
            check_nonce_length("a" * 129, 128)

    def test_too_long_is_an_invalid_nonce(self):
        with pytest.raises(InvalidNonceError):
            check_nonce_length("a" * 200, 128)
