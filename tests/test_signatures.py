"""Tests for the signing contract and signer recovery."""
from __future__ import annotations

import pytest

from messaging_auth.errors import SignatureMismatch
from messaging_auth.signatures import (
    MESSAGE_PREFIX,
    build_signing_message,
    recover_signer,
    verify_signer,
)
from tests.fakes import sign_text


class TestMessagePrefix:
    def test_prefix_is_stable(self):
        # Wire contract with deployed clients: must only change with a version bump.
        assert MESSAGE_PREFIX.startswith("Hi there from Connext!")
        assert "\n  \n" in MESSAGE_PREFIX
        assert MESSAGE_PREFIX.endswith("message ID that they can't guess: ")

    def test_message_is_prefix_plus_nonce(self):
        assert build_signing_message("0xabc") == MESSAGE_PREFIX + "0xabc"


class TestRecover:
    def test_recovers_checksummed_address(self, alice):
        sig = sign_text(alice, "hello")
        assert recover_signer("hello", sig) == alice.address

    def test_different_message_recovers_other_address(self, alice):
        sig = sign_text(alice, "hello")
        assert recover_signer("goodbye", sig) != alice.address

    @pytest.mark.parametrize("bad", ["", "0x", "not-hex", "0x" + "ff" * 65, "0x1234"])
    def test_malformed_signature_returns_none(self, bad):
        assert recover_signer("hello", bad) is None


class TestVerify:
    def test_match(self, alice):
        sig = sign_text(alice, "hello")
        assert verify_signer(alice.address, "hello", sig) == alice.address

    def test_other_signer_mismatch(self, alice, bob):
        sig = sign_text(bob, "hello")
        with pytest.raises(SignatureMismatch) as exc:
            verify_signer(alice.address, "hello", sig)
        assert exc.value.expected == alice.address
        assert exc.value.recovered == bob.address

    def test_lowercase_claim_does_not_match(self, alice):
        sig = sign_text(alice, "hello")
        with pytest.raises(SignatureMismatch):
            verify_signer(alice.address.lower(), "hello", sig)

    def test_unrecoverable_signature(self, alice):
        with pytest.raises(SignatureMismatch) as exc:
            verify_signer(alice.address, "hello", "garbage")
        assert exc.value.recovered is None
        assert "Verification failed" in exc.value.message
