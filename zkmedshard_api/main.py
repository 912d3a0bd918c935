"""
ZKMedShard API - wallet-signature login and claim registry.

Provides REST endpoints for:
- Issuing login nonces (POST /auth/nonce)
- Logging in with a signed nonce (POST /auth/login, alias /auth/verify)
- Submitting claims (POST /claim/prove-and-submit)
- Listing the caller's claims (GET /claim/list)
- Checking a claim hash exists (POST /claim/verify-hash)
- Health checks (GET /health)
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .auth import get_current_identity
from .challenge import ChallengeAuthenticator
from .claims import ClaimService
from .config import Settings, get_settings
from .errors import AuthenticationError, StoreError, ZKMedShardError
from .models import (
    ApiResponse,
    ClaimRecord,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    NonceRequest,
    NonceResponse,
    SubmitClaimRequest,
    VerifyHashRequest,
)
from .store import DocumentStore, connect_store

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
)

logger = structlog.get_logger()


# Global store (initialized at startup)
_store: DocumentStore | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    global _store

    settings = get_settings()

    if not settings.database_url:
        logger.critical("DATABASE_URL is not set; refusing to start")
        raise RuntimeError("DATABASE_URL must be set")

    _store = connect_store(settings.database_url)

    logger.info(
        "API started",
        version=__version__,
        host=settings.host,
        port=settings.port,
    )

    yield

    # Cleanup
    if _store:
        await _store.close()
        _store = None

    logger.info("API stopped")


# Create FastAPI app
app = FastAPI(
    title="ZKMedShard API",
    description="Wallet-signature login and claim registry",
    version=__version__,
    lifespan=lifespan,
)


# Add CORS middleware
_settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error Handling
# ============================================================================


def _envelope(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    body = ApiResponse[None](success=False, message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(), headers=headers)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Log store detail internally, return an opaque message to the caller."""
    error_id = str(uuid.uuid4())
    logger.error(
        "store_error",
        error_id=error_id,
        error=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return _envelope(exc.status_code, f"Internal error (reference {error_id})")


@app.exception_handler(ZKMedShardError)
async def api_error_handler(request: Request, exc: ZKMedShardError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return _envelope(exc.status_code, exc.message, headers)


@app.exception_handler(StarletteHTTPException)
async def not_found_logger(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        logger.error("route_not_found", path=request.url.path, method=request.method)
    return await http_exception_handler(request, exc)


# ============================================================================
# Dependencies
# ============================================================================


def get_store() -> DocumentStore:
    if _store is None:
        raise HTTPException(status_code=503, detail="Store not initialized")
    return _store


def get_authenticator(
    store: DocumentStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> ChallengeAuthenticator:
    return ChallengeAuthenticator.from_settings(store, settings)


def get_claim_service(store: DocumentStore = Depends(get_store)) -> ClaimService:
    return ClaimService(store)


# ============================================================================
# Health Check
# ============================================================================


@app.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "ZKMedShard backend\n"


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """
    Check API health and store connectivity.
    """
    store_ok = False
    if _store:
        store_ok = await _store.ping()

    return HealthResponse(
        status="ok" if store_ok else "degraded",
        version=__version__,
        store=store_ok,
    )


# ============================================================================
# Auth
# ============================================================================


@app.post("/auth/nonce", response_model=NonceResponse)
async def request_nonce(
    request: NonceRequest,
    authenticator: ChallengeAuthenticator = Depends(get_authenticator),
) -> NonceResponse:
    """
    Issue a login nonce for an address.

    The client signs "Sign this message to login to ZKMedShard: <nonce>"
    with personal_sign and posts the signature to /auth/login. Requesting
    again replaces the previous nonce.
    """
    nonce = await authenticator.request_challenge(request.address)
    return NonceResponse(nonce=nonce)


@app.post("/auth/login", response_model=LoginResponse)
@app.post("/auth/verify", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    authenticator: ChallengeAuthenticator = Depends(get_authenticator),
) -> LoginResponse:
    """
    Exchange a signed nonce for a session token.

    1) Nonce must exist and be younger than the challenge TTL
    2) Signature must recover to the claimed address
    3) Nonce is deleted and a session token is returned
    """
    token = await authenticator.login(request.address, request.signature)
    return LoginResponse(token=token)


# ============================================================================
# Claims
# ============================================================================


@app.post("/claim/prove-and-submit", response_model=ApiResponse[None])
async def prove_and_submit(
    request: SubmitClaimRequest,
    identity: str = Depends(get_current_identity),
    claims: ClaimService = Depends(get_claim_service),
) -> ApiResponse[None]:
    """
    Store a claim for the caller.

    The proof and public signals are accepted without verification.
    """
    await claims.submit(
        identity,
        request.claim_id,
        request.claim_hash,
        proof_payload={"proof": request.proof, "public_signals": request.public_signals},
    )
    return ApiResponse[None](success=True, message="Claim submitted successfully")


@app.get("/claim/list", response_model=ApiResponse[list[ClaimRecord]])
async def list_claims(
    identity: str = Depends(get_current_identity),
    claims: ClaimService = Depends(get_claim_service),
) -> ApiResponse[list[ClaimRecord]]:
    """List claims submitted by the caller."""
    items = await claims.list_for_caller(identity)
    return ApiResponse[list[ClaimRecord]](success=True, message="ok", data=items)


@app.post(
    "/claim/verify-hash",
    response_model=ApiResponse[bool],
    dependencies=[Depends(get_current_identity)],
)
async def verify_claim_by_hash(
    request: VerifyHashRequest,
    claims: ClaimService = Depends(get_claim_service),
) -> ApiResponse[bool]:
    """
    Check whether any caller has registered a claim hash.

    Requires a session but is not scoped to the caller.
    """
    if await claims.exists_by_hash(request.claim_hash):
        return ApiResponse[bool](success=True, message="Claim found and valid", data=True)
    return ApiResponse[bool](success=True, message="Claim hash not found", data=False)


# ============================================================================
# Entry Point
# ============================================================================


def run(host: str | None = None, port: int | None = None) -> None:
    """Run the API server."""
    settings = get_settings()
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if settings.debug else logging.INFO,
    )
    uvicorn.run(
        "zkmedshard_api.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
