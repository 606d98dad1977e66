"""
messaging_auth/service.py

Challenge-response orchestration: hand out nonces, check signed nonces, vend
scoped messaging tokens.

Flow:
  request_challenge(addr)                 -> nonce (stored per address)
  client signs MESSAGE_PREFIX + nonce
  redeem_challenge(addr, sig[, admin])    -> bearer token

Locking lives entirely inside NonceRegistry. Nothing here holds a lock while
recovering a signature or minting a token.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from .audit import AuditLog, build_common
from .config import Settings
from .errors import ChallengeExpired, ChallengeNotFound, SignatureMismatch
from .nonces import NonceRegistry
from .permissions import Restricted, Unrestricted, scope_to_permissions
from .signatures import build_signing_message, verify_signer
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


class MessagingAuthService:
    def __init__(
        self,
        registry: NonceRegistry,
        issuer: TokenIssuer,
        admin_token: str,
        audit: Optional[AuditLog] = None,
        consume_on_success: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        self.registry = registry
        self.issuer = issuer
        self.audit = audit or AuditLog(None)
        self.consume_on_success = consume_on_success
        self._admin_token = admin_token
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings, clock: Callable[[], float] = time.time) -> "MessagingAuthService":
        logger.info("Created messaging auth service: %s", settings.redacted())
        registry = NonceRegistry(ttl_seconds=settings.NONCE_TTL_SECONDS, clock=clock)
        issuer = TokenIssuer.from_key_material(
            audience=settings.NATS_URL,
            private_key=settings.JWT_SIGNER_PRIVATE_KEY,
            public_key=settings.JWT_SIGNER_PUBLIC_KEY or None,
            clock=clock,
        )
        return cls(
            registry,
            issuer,
            settings.ADMIN_TOKEN,
            audit=AuditLog(settings.AUDIT_DIR or None),
            consume_on_success=settings.CONSUME_NONCE_ON_SUCCESS,
            clock=clock,
        )

    @property
    def ttl_seconds(self) -> float:
        return self.registry.ttl_seconds

    def request_challenge(self, identity: str, context: Optional[Dict[str, Any]] = None) -> str:
        if not identity:
            raise ValueError("identity must be a non-empty string")

        challenge = self.registry.issue(identity)
        logger.info(
            "Issued nonce identity=%s nonce=%s expires_at=%s",
            identity,
            challenge.value,
            int(challenge.expires_at),
        )
        self.audit.append_event(
            {
                **build_common(identity=identity, nonce=challenge.value, **(context or {})),
                "result": "issued",
                "reason": "nonce_issued",
                "expires_at": int(challenge.expires_at),
            }
        )
        return challenge.value

    def redeem_challenge(
        self,
        identity: str,
        signature: str,
        admin_token: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Verify a signed nonce and vend a token scoped to `identity`.

        A matching admin token skips verification and vends an unrestricted
        token. A wrong admin token is not an error: the request continues
        through the normal signature path.

        Raises ChallengeNotFound, SignatureMismatch or ChallengeExpired.
        """
        context = context or {}

        if admin_token is not None and admin_token == self._admin_token:
            logger.warning("Vending admin token to %s", identity)
            token = self.issuer.mint(identity, self.ttl_seconds, Unrestricted())
            self.audit.append_event(
                {
                    **build_common(identity=identity, **context),
                    "result": "approved",
                    "reason": "admin_token",
                    "scope": "unrestricted",
                }
            )
            return token

        try:
            challenge = self.registry.peek(identity)
            message = build_signing_message(challenge.value)
            verify_signer(identity, message, signature)
            if challenge.is_expired(self._clock()):
                raise ChallengeExpired(identity, challenge.expires_at)
            # consumed before minting: only one redemption can claim it
            if self.consume_on_success and not self.registry.discard(identity, challenge):
                raise ChallengeNotFound(identity)
        except (ChallengeNotFound, SignatureMismatch, ChallengeExpired) as e:
            logger.info("Rejected vend request identity=%s reason=%s: %s", identity, e.code, e.message)
            self.audit.append_event(
                {
                    **build_common(identity=identity, signature=signature, **context),
                    "result": "denied",
                    "reason": e.code,
                }
            )
            raise

        scope = Restricted(identity)
        token = self.issuer.mint(identity, self.ttl_seconds, scope)

        logger.info(
            "Vended token identity=%s permissions=%s",
            identity,
            scope_to_permissions(scope),
        )
        self.audit.append_event(
            {
                **build_common(identity=identity, nonce=challenge.value, signature=signature, **context),
                "result": "approved",
                "reason": "signature_valid",
                "scope": "restricted",
            }
        )
        return token

    def validate_token(self, token: str) -> bool:
        return self.issuer.validate(token)
