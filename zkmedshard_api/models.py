"""
Pydantic models for API requests and responses, plus stored records.
"""

from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from .identity import is_valid_address
from .store import as_utc

T = TypeVar("T")


# ============================================================================
# Envelope
# ============================================================================

class ApiResponse(BaseModel, Generic[T]):
    """Envelope used by the claim endpoints and all error responses."""

    success: bool = Field(..., description="Whether the request succeeded")
    message: str = Field(..., description="Human-readable outcome")
    data: Optional[T] = Field(None, description="Endpoint-specific payload")


# ============================================================================
# Auth
# ============================================================================

class _AddressModel(BaseModel):
    address: str = Field(..., description="Wallet address (0x...)")

    @field_validator("address")
    @classmethod
    def _check_address(cls, v: str) -> str:
        if not is_valid_address(v):
            raise ValueError("address must be 40 hex characters, optionally 0x-prefixed")
        return v.strip()


class NonceRequest(_AddressModel):
    """Request a login challenge for an address."""

    model_config = {
        "json_schema_extra": {
            "examples": [{"address": "0x1234567890abcdef1234567890abcdef12345678"}]
        }
    }


class NonceResponse(BaseModel):
    nonce: str = Field(..., description="Value to embed in the signed login message")


class LoginRequest(_AddressModel):
    """Exchange a signed challenge for a session token."""

    signature: str = Field(..., description="personal_sign signature over the challenge message (0x...)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "address": "0x1234567890abcdef1234567890abcdef12345678",
                    "signature": "0x" + "ab" * 65,
                }
            ]
        }
    }


class LoginResponse(BaseModel):
    token: str = Field(..., description="Bearer session token")


# ============================================================================
# Claims
# ============================================================================

class ClaimRecord(BaseModel):
    """A stored claim."""

    id: Optional[str] = Field(None, description="Store-assigned id")
    claim_id: str = Field(..., description="Caller-supplied claim identifier")
    claim_hash: str = Field(..., description="Content fingerprint (hex)")
    submitter: str = Field(..., description="Address that submitted the claim")
    verified: bool = Field(..., description="Whether the claim was accepted as verified")
    submitted_at: datetime = Field(..., description="Submission time (UTC)")

    @field_validator("submitted_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    def to_document(self) -> dict[str, Any]:
        return self.model_dump(exclude={"id"})


class SubmitClaimRequest(BaseModel):
    """Submit a claim. The proof and public signals are stored unchecked."""

    claim_id: str = Field(..., min_length=1, description="Claim identifier (bytes32 hex)")
    claim_hash: str = Field(..., min_length=1, description="Claim hash (hex)")
    proof: Any = Field(None, description="Proof object (accepted as-is)")
    public_signals: Any = Field(None, description="Public signals (accepted as-is)")

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "claim_id": "0x01",
                    "claim_hash": "0xdeadbeef",
                    "proof": {"pi_a": [], "pi_b": [], "pi_c": []},
                    "public_signals": [],
                }
            ]
        }
    }


class VerifyHashRequest(BaseModel):
    claim_hash: str = Field(..., min_length=1, description="Claim hash to look up")


# ============================================================================
# Health Check
# ============================================================================

class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    store: bool = Field(..., description="Store connectivity")
