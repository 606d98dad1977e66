# messaging_auth/tokens.py
#
# -----------------------------------------------------------------------------
# Architectural notes
# -----------------------------------------------------------------------------
# This module is the *token layer*: it mints and checks the bearer JWTs the
# messaging cluster accepts.
#
# Responsibilities:
#   - Mint and verify signed bearer JWTs (PyJWT)
#   - Key loading from env-friendly material (PEM or raw base64)
#   - Pick the signing algorithm from the key: RS256 for RSA, EdDSA for Ed25519
#
# What this module is NOT:
#   - Not an identity system (user keys are secp256k1, see signatures.py)
#   - Not a policy engine (permissions arrive pre-built from permissions.py)
#   - Not stateful (no revocation list)
#
# Security model:
#   - Server holds ONE keypair (infrastructure key)
#   - Tokens are self-contained, audience-bound, short-lived
#   - decode() pins the algorithm to the loaded key's, so there is no alg
#     negotiation (no "none", no RS/HS confusion)
#
# Expiry is checked against the issuer's own clock rather than PyJWT's, so
# minting and validation share one time source.
# -----------------------------------------------------------------------------

import base64
import secrets
import time
from typing import Any, Callable, Dict, Optional, Union

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey, RSAPublicKey

from .errors import InfrastructureFailure, InvalidToken
from .permissions import PermissionScope, scope_to_permissions

SigningKey = Union[RSAPrivateKey, Ed25519PrivateKey]
VerifyingKey = Union[RSAPublicKey, Ed25519PublicKey]

REQUIRED_CLAIMS = ["aud", "sub", "iat", "exp", "jti"]


# -----------------------------------------------------------------------------
# Key loading
# -----------------------------------------------------------------------------
def _unescape_env(material: str) -> str:
    # env files commonly carry PEM blocks with literal "\n"
    return str(material).replace("\\n", "\n").strip()


def load_signing_key(material: str) -> SigningKey:
    """
    Load the signer key from either:
      - a PEM block (PKCS8 or PKCS1, unencrypted), RSA or Ed25519
      - Base64 of a raw 32-byte Ed25519 seed
    """
    material = _unescape_env(material)
    if material.startswith("-----BEGIN"):
        key = serialization.load_pem_private_key(material.encode("utf-8"), password=None)
        if not isinstance(key, (RSAPrivateKey, Ed25519PrivateKey)):
            raise ValueError("signer private key must be an RSA or Ed25519 key")
        return key

    raw = base64.b64decode(material, validate=True)
    if len(raw) != 32:
        raise ValueError("Ed25519 raw private key must be 32 bytes (base64 of 32 bytes)")
    return Ed25519PrivateKey.from_private_bytes(raw)


def load_verifying_key(material: str) -> VerifyingKey:
    """PEM SubjectPublicKeyInfo (RSA or Ed25519) or Base64 of a raw Ed25519 key."""
    material = _unescape_env(material)
    if material.startswith("-----BEGIN"):
        key = serialization.load_pem_public_key(material.encode("utf-8"))
        if not isinstance(key, (RSAPublicKey, Ed25519PublicKey)):
            raise ValueError("signer public key must be an RSA or Ed25519 key")
        return key

    raw = base64.b64decode(material, validate=True)
    if len(raw) != 32:
        raise ValueError("Ed25519 raw public key must be 32 bytes (base64 of 32 bytes)")
    return Ed25519PublicKey.from_public_bytes(raw)


def algorithm_for(key: SigningKey) -> str:
    if isinstance(key, RSAPrivateKey):
        return "RS256"
    if isinstance(key, Ed25519PrivateKey):
        return "EdDSA"
    raise ValueError(f"unsupported signer key type: {type(key).__name__}")


def _spki(pk: VerifyingKey) -> bytes:
    return pk.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


# -----------------------------------------------------------------------------
# Issuer
# -----------------------------------------------------------------------------
class TokenIssuer:
    """
    Mints and validates bearer tokens for one realm (the messaging URL).

    The realm is the token audience; tokens minted for another cluster do not
    validate here.
    """

    def __init__(
        self,
        audience: str,
        private_key: SigningKey,
        public_key: Optional[VerifyingKey] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.algorithm = algorithm_for(private_key)

        derived = private_key.public_key()
        if public_key is not None and _spki(public_key) != _spki(derived):
            raise ValueError("signer public key does not match signer private key")

        self.audience = audience
        self._sk = private_key
        self._pk = public_key or derived
        self._clock = clock

    @classmethod
    def from_key_material(
        cls,
        audience: str,
        private_key: str,
        public_key: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ) -> "TokenIssuer":
        sk = load_signing_key(private_key)
        pk = load_verifying_key(public_key) if public_key else None
        return cls(audience, sk, pk, clock=clock)

    def mint(self, subject: str, ttl_seconds: float, scope: PermissionScope) -> str:
        now = int(self._clock())
        claims = {
            "aud": self.audience,
            "sub": subject,
            "iat": now,
            "exp": now + int(ttl_seconds),
            "jti": secrets.token_hex(16),
            "nats": {"permissions": scope_to_permissions(scope)},
        }
        try:
            return jwt.encode(claims, self._sk, algorithm=self.algorithm)
        except Exception as e:
            raise InfrastructureFailure(f"token signing failed: {e!s}") from e

    def decode(self, token: str) -> Dict[str, Any]:
        """
        Verify a token and return its claims.

        Raises InvalidToken on bad format, foreign algorithm, bad signature,
        wrong audience, missing claims or expiry.
        """
        try:
            claims = jwt.decode(
                str(token).strip(),
                self._pk,
                algorithms=[self.algorithm],
                audience=self.audience,
                options={
                    "require": REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidToken(str(e)) from e

        try:
            exp = int(claims["exp"])
        except (TypeError, ValueError) as e:
            raise InvalidToken("token has no valid exp") from e

        if self._clock() > exp:
            raise InvalidToken("token expired")

        return claims

    def validate(self, token: str) -> bool:
        try:
            self.decode(token)
        except InvalidToken:
            return False
        return True
