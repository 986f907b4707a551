"""
Unit tests for code generation and hashing.
"""

import hashlib
import re
from datetime import datetime, timedelta, timezone

from services import code_service
from services.code_service import (
    CODE_TTL_MINUTES,
    codes_match,
    generate_code,
    hash_code,
    is_valid_code_format,
)

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class TestGenerateCode:
    """Test the 6-digit code generator"""

    def test_code_is_six_digits(self):
        for _ in range(200):
            code, _ = generate_code(NOW)
            assert re.fullmatch(r"\d{6}", code)
            assert 0 <= int(code) <= 999_999

    def test_code_is_zero_padded(self, monkeypatch):
        """Small draws keep their leading zeros"""
        monkeypatch.setattr(code_service.secrets, "randbelow", lambda n: 42)
        code, _ = generate_code(NOW)
        assert code == "000042"

    def test_upper_bound(self, monkeypatch):
        monkeypatch.setattr(code_service.secrets, "randbelow", lambda n: n - 1)
        code, _ = generate_code(NOW)
        assert code == "999999"

    def test_expiry_is_ten_minutes_after_issue(self):
        _, expires_at = generate_code(NOW)
        assert CODE_TTL_MINUTES == 10
        assert expires_at == NOW + timedelta(minutes=10)


class TestHashCode:
    """Test the stored digest"""

    def test_hash_is_deterministic(self):
        assert hash_code("123456", "salt") == hash_code("123456", "salt")

    def test_hash_is_sha256_hex(self):
        digest = hash_code("123456", "salt")
        assert re.fullmatch(r"[0-9a-f]{64}", digest)
        assert "123456" not in digest

    def test_digest_covers_code_then_secret(self):
        assert hash_code("123456", "salt") == hashlib.sha256(b"123456salt").hexdigest()

    def test_correct_code_matches(self):
        stored = hash_code("654321", "salt")
        assert codes_match("654321", "salt", stored)

    def test_single_character_difference_in_code_never_matches(self):
        stored = hash_code("654321", "salt")
        for i in range(6):
            digits = list("654321")
            digits[i] = "0" if digits[i] != "0" else "9"
            assert not codes_match("".join(digits), "salt", stored)

    def test_different_secret_never_matches(self):
        stored = hash_code("654321", "salt")
        assert not codes_match("654321", "salu", stored)
        assert not codes_match("654321", "", stored)

    def test_missing_stored_hash_does_not_match(self):
        assert not codes_match("654321", "salt", None)


class TestCodeFormat:
    def test_valid(self):
        assert is_valid_code_format("012345")

    def test_invalid(self):
        for bad in ("", "12345", "1234567", "12a456", "１２３４５６", " 12345"):
            assert not is_valid_code_format(bad)
