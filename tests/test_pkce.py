"""Tests for PKCE verifier and challenge helpers."""

from __future__ import annotations

import base64
import hashlib

import pytest

from vkid_auth.auth.pkce import (
    VERIFIER_ALPHABET,
    derive_code_challenge,
    generate_code_verifier,
)


class TestGenerateCodeVerifier:
    def test_default_length_is_128(self) -> None:
        assert len(generate_code_verifier()) == 128

    def test_uses_base36_alphabet(self) -> None:
        verifier = generate_code_verifier()
        assert set(verifier) <= set(VERIFIER_ALPHABET)

    def test_verifiers_differ(self) -> None:
        assert generate_code_verifier() != generate_code_verifier()

    def test_custom_length(self) -> None:
        assert len(generate_code_verifier(43)) == 43

    @pytest.mark.parametrize("length", [0, 42, 129])
    def test_rejects_out_of_range_length(self, length: int) -> None:
        with pytest.raises(ValueError):
            generate_code_verifier(length)


class TestDeriveCodeChallenge:
    def test_matches_rfc7636_example(self) -> None:
        """Appendix B of RFC 7636."""
        verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
        assert derive_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"

    def test_deterministic(self) -> None:
        verifier = generate_code_verifier()
        assert derive_code_challenge(verifier) == derive_code_challenge(verifier)

    def test_url_safe_without_padding(self) -> None:
        for _ in range(50):
            challenge = derive_code_challenge(generate_code_verifier())
            assert "+" not in challenge
            assert "/" not in challenge
            assert not challenge.endswith("=")
            assert len(challenge) == 43

    def test_is_sha256_of_verifier(self) -> None:
        verifier = "abc123"
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(verifier.encode()).digest())
            .rstrip(b"=")
            .decode()
        )
        assert derive_code_challenge(verifier) == expected
