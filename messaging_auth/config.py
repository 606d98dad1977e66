from functools import lru_cache
from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    # messaging cluster URL; doubles as the token audience (realm)
    NATS_URL: str

    # signer key material (RSA or Ed25519): inline value wins over *_PATH
    JWT_SIGNER_PRIVATE_KEY: str = ""
    JWT_SIGNER_PRIVATE_KEY_PATH: str = ""
    JWT_SIGNER_PUBLIC_KEY: str = ""
    JWT_SIGNER_PUBLIC_KEY_PATH: str = ""

    # shared secret that bypasses the challenge and vends an unrestricted token
    ADMIN_TOKEN: str

    HOST: str = "0.0.0.0"
    PORT: int = 5040

    # challenge lifetime; vended tokens get the same ttl
    NONCE_TTL_SECONDS: int = 24 * 60 * 60

    # hardening: forget a nonce once it has been redeemed (default keeps it
    # redeemable until expiry or re-issue)
    CONSUME_NONCE_ON_SUCCESS: bool = False

    # audit log directory; empty string disables the audit trail
    AUDIT_DIR: str = "audit"

    LOG_LEVEL: str = "DEBUG"

    class Config:
        env_prefix = "VECTOR_"
        env_file = ".env"
        extra = "ignore"

    @field_validator("NATS_URL")
    @classmethod
    def normalize_nats_url(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("VECTOR_NATS_URL is required")
        return v

    @field_validator("ADMIN_TOKEN")
    @classmethod
    def require_admin_token(cls, v: str) -> str:
        # compared verbatim, so no stripping
        if not v:
            raise ValueError("VECTOR_ADMIN_TOKEN is required")
        return v

    @field_validator("NONCE_TTL_SECONDS")
    @classmethod
    def positive_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("VECTOR_NONCE_TTL_SECONDS must be positive")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        v = (v or "").strip().upper() or "DEBUG"
        if v not in LOG_LEVELS:
            raise ValueError(f"unknown log level: {v}")
        return v

    @model_validator(mode="after")
    def resolve_key_material(self):
        """
        Fill inline key values from their *_PATH files when only a path is set.

        Env files usually escape PEM newlines as a literal "\\n"; the token layer
        unescapes those when it parses the key.
        """
        if not self.JWT_SIGNER_PRIVATE_KEY and self.JWT_SIGNER_PRIVATE_KEY_PATH:
            self.JWT_SIGNER_PRIVATE_KEY = _read_key_file(self.JWT_SIGNER_PRIVATE_KEY_PATH)
        if not self.JWT_SIGNER_PUBLIC_KEY and self.JWT_SIGNER_PUBLIC_KEY_PATH:
            self.JWT_SIGNER_PUBLIC_KEY = _read_key_file(self.JWT_SIGNER_PUBLIC_KEY_PATH)

        if not self.JWT_SIGNER_PRIVATE_KEY.strip():
            raise ValueError(
                "VECTOR_JWT_SIGNER_PRIVATE_KEY or VECTOR_JWT_SIGNER_PRIVATE_KEY_PATH is required"
            )
        return self

    def redacted(self) -> dict:
        """Settings safe to log: secrets masked."""
        out = self.model_dump()
        for k in ("JWT_SIGNER_PRIVATE_KEY", "ADMIN_TOKEN"):
            if out.get(k):
                out[k] = "*********"
        return out


def _read_key_file(path: str) -> str:
    p = Path(path).expanduser()
    if not p.is_file():
        raise ValueError(f"key file not found: {p}")
    return p.read_text(encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    # Fail fast: missing secrets should stop the process, not the first request.
    return Settings()
