# messaging_auth/nonces.py
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .errors import ChallengeNotFound, InfrastructureFailure

NONCE_BYTES = 32
DEFAULT_NONCE_TTL_SECONDS = 24 * 60 * 60  # 1 day


def random_nonce(nbytes: int = NONCE_BYTES) -> str:
    # 0x-prefixed hex, same shape clients get from ethers' hexlify(randomBytes(32))
    return "0x" + secrets.token_hex(nbytes)


@dataclass(frozen=True)
class Challenge:
    identity: str
    value: str
    issued_at: float
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at


class NonceRegistry:
    """
    In-memory identity -> Challenge map.

    At most one challenge per identity: issue() replaces whatever was there,
    which makes the previous nonce permanently unredeemable.

    Redemption does not consume a challenge. A signed nonce stays valid until
    it expires or is replaced, unless the caller explicitly discard()s it.

    All map access goes through a single lock. The lock is only held for the
    dict operation itself; callers must never hold it across signature
    recovery or token minting.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_NONCE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("nonce ttl must be positive")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._challenges: Dict[str, Challenge] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._challenges

    def issue(self, identity: str) -> Challenge:
        try:
            value = random_nonce()
        except Exception as e:
            # no secure randomness means nothing here can be trusted
            raise InfrastructureFailure(f"secure randomness unavailable: {e!s}") from e

        now = self._clock()
        challenge = Challenge(
            identity=identity,
            value=value,
            issued_at=now,
            expires_at=now + self.ttl_seconds,
        )
        with self._lock:
            self._challenges[identity] = challenge
        return challenge

    def peek(self, identity: str) -> Challenge:
        with self._lock:
            challenge = self._challenges.get(identity)
        if challenge is None:
            raise ChallengeNotFound(identity)
        return challenge

    def discard(self, identity: str, challenge: Optional[Challenge] = None) -> bool:
        """
        Remove the challenge for identity.

        When `challenge` is given, only remove it if it is still the stored
        one, so a concurrent re-issue is never thrown away.
        """
        with self._lock:
            current = self._challenges.get(identity)
            if current is None:
                return False
            if challenge is not None and current is not challenge:
                return False
            del self._challenges[identity]
            return True
