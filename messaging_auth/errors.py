"""
messaging_auth/errors.py

Error kinds raised by the auth core.

Domain rejections (VerificationError subclasses) are caller-recoverable and
each maps to its own HTTP status. InfrastructureFailure is a distinct branch
so the transport can answer it differently from a bad signature.
"""

from __future__ import annotations

from typing import Optional


class AuthError(Exception):
    code = "auth_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class VerificationError(AuthError):
    code = "verification_failed"


class ChallengeNotFound(VerificationError):
    code = "challenge_not_found"

    def __init__(self, identity: str):
        super().__init__(f"User hasn't requested a nonce yet: {identity}")
        self.identity = identity


class SignatureMismatch(VerificationError):
    code = "signature_mismatch"

    def __init__(self, expected: str, recovered: Optional[str] = None, reason: str = ""):
        if recovered is None:
            msg = f"Verification failed, could not recover signer for {expected}"
            if reason:
                msg += f": {reason}"
        else:
            msg = f"Verification failed, expected {expected}, got {recovered}"
        super().__init__(msg)
        self.expected = expected
        self.recovered = recovered


class ChallengeExpired(VerificationError):
    code = "challenge_expired"

    def __init__(self, identity: str, expires_at: float):
        super().__init__(f"Verification failed... nonce expired for address: {identity}")
        self.identity = identity
        self.expires_at = expires_at


class InfrastructureFailure(AuthError):
    code = "infrastructure_failure"


class InvalidToken(Exception):
    """Raised by TokenIssuer.decode for malformed, forged or stale tokens."""
