"""Shared fakes and helpers for messaging_auth tests."""
from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct

from messaging_auth.signatures import build_signing_message


class FakeClock:
    """Manually advanced epoch clock; pass the instance wherever a clock is taken."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def sign_text(account, text: str) -> str:
    signed = Account.sign_message(encode_defunct(text=text), private_key=account.key)
    return "0x" + bytes(signed.signature).hex()


def sign_nonce(account, nonce: str) -> str:
    """Sign a nonce the way wallet clients do (personal_sign over prefix + nonce)."""
    return sign_text(account, build_signing_message(nonce))
