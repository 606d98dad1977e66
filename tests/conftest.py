"""Shared fixtures: deterministic wallet signers, fake clock, wired-up service."""

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from eth_account import Account
from fastapi.testclient import TestClient

from messaging_auth.audit import AuditLog
from messaging_auth.main import create_app
from messaging_auth.nonces import NonceRegistry
from messaging_auth.service import MessagingAuthService
from messaging_auth.tokens import TokenIssuer
from tests.fakes import FakeClock

NATS_URL = "nats://nats.test:4222"
ADMIN_TOKEN = "connext123"
NONCE_TTL = 24 * 60 * 60

ALICE_KEY = "0x" + "4c" * 32
BOB_KEY = "0x" + "5d" * 32


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def alice():
    return Account.from_key(ALICE_KEY)


@pytest.fixture
def bob():
    return Account.from_key(BOB_KEY)


@pytest.fixture
def signer_key():
    return Ed25519PrivateKey.generate()


@pytest.fixture
def issuer(signer_key, clock):
    return TokenIssuer(NATS_URL, signer_key, clock=clock)


@pytest.fixture
def registry(clock):
    return NonceRegistry(ttl_seconds=NONCE_TTL, clock=clock)


@pytest.fixture
def audit_log(tmp_path):
    return AuditLog(tmp_path / "audit")


@pytest.fixture
def service(registry, issuer, audit_log, clock):
    return MessagingAuthService(
        registry,
        issuer,
        ADMIN_TOKEN,
        audit=audit_log,
        clock=clock,
    )


@pytest.fixture
def client(service):
    with TestClient(create_app(service=service)) as c:
        yield c
