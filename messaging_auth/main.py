# messaging_auth/main.py
#
# -----------------------------------------------------------------------------
# Architectural notes (high level)
# -----------------------------------------------------------------------------
# This file is intentionally "thin" HTTP glue:
#   - It wires routes to MessagingAuthService and maps error kinds to statuses.
#   - It MUST NOT implement crypto itself (signatures.py + tokens.py do that).
#   - It keeps no state of its own; the nonce registry lives in the service.
#
# Key modules / responsibilities:
#   - config.py      : environment-driven settings (VECTOR_*)
#   - nonces.py      : per-address challenge registry (locked, in-memory)
#   - signatures.py  : signing contract + secp256k1 signer recovery
#   - permissions.py : restricted / unrestricted publish-subscribe scopes
#   - tokens.py      : Ed25519 bearer token mint/validate
#   - service.py     : challenge-response orchestration
#   - audit.py       : append-only audit log (security telemetry, forensics)
#
# WARNING (DEPLOYMENT):
# - Nonces are held in process memory: they are NOT shared across Uvicorn
#   workers or nodes, and a restart forgets all outstanding challenges.
#   Run a single worker, or route each address to a sticky worker.
# -----------------------------------------------------------------------------

import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from .config import Settings, get_settings
from .errors import (
    AuthError,
    ChallengeExpired,
    ChallengeNotFound,
    InfrastructureFailure,
    SignatureMismatch,
)
from .schemas import AuthRequest, ValidateRequest, ValidateResponse
from .service import MessagingAuthService

logger = logging.getLogger(__name__)

# Each rejection kind gets its own status so clients can tell "ask for a new
# nonce" (404/410) apart from "your signature is wrong" (401).
ERROR_STATUS = {
    ChallengeNotFound: 404,
    SignatureMismatch: 401,
    ChallengeExpired: 410,
    InfrastructureFailure: 503,
}

router = APIRouter()


def _service(request: Request) -> MessagingAuthService:
    return request.app.state.auth_service


def _request_context(request: Request) -> dict:
    return {
        "request_ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _http_error(err: AuthError) -> HTTPException:
    status = 500
    for kind, code in ERROR_STATUS.items():
        if isinstance(err, kind):
            status = code
            break
    return HTTPException(status_code=status, detail={"error": err.code, "message": err.message})


# Used during startup to monitor whether this service is awake & responsive
@router.get("/ping", response_class=PlainTextResponse)
def ping():
    return "pong\n"


@router.get("/auth/{signer_address}", response_class=PlainTextResponse)
def get_nonce(signer_address: str, request: Request):
    try:
        return _service(request).request_challenge(signer_address, context=_request_context(request))
    except ValueError as e:
        raise HTTPException(400, detail={"error": "bad_request", "message": str(e)})
    except AuthError as e:
        logger.error("Error issuing nonce: %s", e.message)
        raise _http_error(e)


@router.post("/auth", response_class=PlainTextResponse)
def post_auth(body: AuthRequest, request: Request):
    try:
        return _service(request).redeem_challenge(
            body.signerAddress,
            body.sig,
            body.adminToken,
            context=_request_context(request),
        )
    except AuthError as e:
        logger.error("Error verifying and vending: %s", e.message)
        raise _http_error(e)


@router.post("/auth/validate", response_model=ValidateResponse)
def validate_token(body: ValidateRequest, request: Request):
    return {"valid": _service(request).validate_token(body.token)}


def create_app(
    settings: Optional[Settings] = None,
    service: Optional[MessagingAuthService] = None,
) -> FastAPI:
    """
    Build the ASGI app.

    `service` overrides the one built from settings (tests inject a service
    with a fake clock). Run with:

        uvicorn messaging_auth.main:create_app --factory
    """
    if service is None:
        service = MessagingAuthService.from_settings(settings or get_settings())

    app = FastAPI(
        title="Messaging Auth Server",
        version="0.1.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "PUT", "POST", "OPTIONS"],
        allow_headers=["*"],
    )
    app.state.auth_service = service
    app.include_router(router)
    return app
