"""
messaging_auth/audit.py

Tamper-evident audit log of token vending decisions.

We append one JSON object per line (JSONL). Each event is hash-chained:

  H_0 = "0"*64
  H_n = SHA3-256( bytes.fromhex(H_{n-1}) || canonical_json(event_without_hash_fields) )

Each line stores:
  - prev_hash: hex string (64 chars)
  - hash:      hex string (64 chars)

Properties:
- Any modification, deletion, or reordering of log lines breaks the chain.
- Chain state is persisted in <dir>/vend_audit.state
- Uses file locking (flock) to keep chain consistent under concurrency
  (threads of one worker and separate worker processes alike).

Signatures and nonces are public values, but we still store only the hash and
length of signatures so the log stays small.
"""

from __future__ import annotations

import fcntl
import hashlib
import json
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

GENESIS_HASH = "0" * 64  # 32 bytes hex

LOG_NAME = "vend_audit.jsonl"
STATE_NAME = "vend_audit.state"
LOCK_NAME = "vend_audit.lock"


# -----------------------------------------------------------------------------
# Canonical JSON
# -----------------------------------------------------------------------------
def _canonical_json_bytes(obj: Dict[str, Any]) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _sha3_256_hex(data: bytes) -> str:
    return hashlib.sha3_256(data).hexdigest()


def build_common(
    *,
    identity: str,
    nonce: Optional[str] = None,
    signature: Optional[str] = None,
    request_ip: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    """Build common audit fields. Keep this "boring" and stable."""
    out: Dict[str, Any] = {
        "ts": int(time.time()),
        "identity": identity,
    }

    if nonce:
        out["nonce"] = nonce
    if request_ip:
        out["request_ip"] = request_ip
    if user_agent:
        out["user_agent"] = user_agent[:200]

    if signature is not None:
        sig_bytes = str(signature).encode("utf-8")
        out["signature_len"] = len(sig_bytes)
        out["signature_sha3_256"] = _sha3_256_hex(sig_bytes)

    return out


class AuditLog:
    """
    Hash-chained JSONL log rooted at `directory`.

    AuditLog(None) is a disabled log: appends are dropped and the chain is
    trivially valid.
    """

    def __init__(self, directory: Optional[Union[str, Path]]):
        self.directory = Path(directory) if directory else None

    @property
    def enabled(self) -> bool:
        return self.directory is not None

    @property
    def log_path(self) -> Optional[Path]:
        return self.directory / LOG_NAME if self.directory else None

    @property
    def state_path(self) -> Optional[Path]:
        return self.directory / STATE_NAME if self.directory else None

    def _read_last_hash_unlocked(self) -> str:
        """
        Read last hash from the state file. Caller must hold lock.
        Returns GENESIS_HASH if state missing/empty/corrupt.
        """
        path = self.state_path
        if not path.exists():
            return GENESIS_HASH
        s = path.read_text(encoding="utf-8").strip()
        if len(s) != 64:
            return GENESIS_HASH
        try:
            bytes.fromhex(s)
        except ValueError:
            return GENESIS_HASH
        return s.lower()

    def append_event(self, event: Dict[str, Any]) -> Optional[str]:
        """
        Append one event with hash chaining. Returns the new chain head.

        - locks the dedicated lock file
        - reads prev hash
        - computes next hash over canonical event (excluding hash fields)
        - writes JSONL line containing prev_hash + hash
        - updates state file
        """
        if not self.enabled:
            return None

        self.directory.mkdir(parents=True, exist_ok=True)

        # A dedicated lock file works even if log/state don't exist yet.
        with open(self.directory / LOCK_NAME, "a+", encoding="utf-8") as lockf:
            fcntl.flock(lockf.fileno(), fcntl.LOCK_EX)
            try:
                prev_hash = self._read_last_hash_unlocked()

                # Never allow callers to inject their own chain fields.
                e = dict(event)
                e.pop("prev_hash", None)
                e.pop("hash", None)

                next_hash = _sha3_256_hex(bytes.fromhex(prev_hash) + _canonical_json_bytes(e))

                stored = dict(e)
                stored["prev_hash"] = prev_hash
                stored["hash"] = next_hash

                with open(self.log_path, "ab") as f:
                    f.write(_canonical_json_bytes(stored) + b"\n")
                    f.flush()
                    os.fsync(f.fileno())

                self.state_path.write_text(next_hash + "\n", encoding="utf-8")
            finally:
                fcntl.flock(lockf.fileno(), fcntl.LOCK_UN)

        return next_hash

    def verify_chain(self) -> bool:
        """
        Verify the hash chain of the log file and that the state file points
        at its last line. Returns True if valid, False otherwise.
        """
        if not self.enabled or not self.log_path.exists():
            return True

        prev = GENESIS_HASH
        try:
            with open(self.log_path, "rb") as f:
                for raw_line in f:
                    raw_line = raw_line.strip()
                    if not raw_line:
                        continue
                    obj = json.loads(raw_line.decode("utf-8"))
                    if not isinstance(obj, dict):
                        return False

                    if obj.get("prev_hash") != prev:
                        return False

                    # recompute from event excluding hash fields
                    obj2 = dict(obj)
                    obj2.pop("prev_hash", None)
                    line_hash = obj2.pop("hash", None)

                    expect = _sha3_256_hex(bytes.fromhex(prev) + _canonical_json_bytes(obj2))
                    if expect != line_hash:
                        return False

                    prev = line_hash
        except (OSError, ValueError):
            return False

        if self.state_path.exists():
            return self.state_path.read_text(encoding="utf-8").strip() == prev
        return True
