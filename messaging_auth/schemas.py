from typing import Optional

from pydantic import BaseModel, Field

SIGNER_ADDRESS_EXAMPLE = "0xE540998865aFEB054021dc849Cc6191b8E09dC08"


class AuthRequest(BaseModel):
    signerAddress: str = Field(..., min_length=1, examples=[SIGNER_ADDRESS_EXAMPLE])
    sig: str = Field(..., description="Signature of nonce using signer private key")
    adminToken: Optional[str] = Field(None, description="Admin token to grant full permissions")


class ValidateRequest(BaseModel):
    token: str


class ValidateResponse(BaseModel):
    valid: bool
