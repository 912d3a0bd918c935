"""
Challenge-response login.

Per address the flow moves through:
  no challenge -> challenge issued -> consumed (login) | expired

- request_challenge() upserts one nonce record per address; a newer
  request overwrites (cancels) the previous nonce.
- login() checks the nonce is present and fresh, recovers the signer of
  the challenge message, compares it to the claimed address, deletes the
  nonce and mints a session token.

Known race: fetch and delete are separate store operations, so two
concurrent logins carrying the same valid signature can both succeed
before either delete lands. Single use is best-effort, not atomic.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import structlog

from .config import Settings
from .errors import (
    ChallengeExpired,
    ChallengeNotFound,
    IdentityMismatch,
    InvalidSignatureFormat,
    StoreError,
)
from .identity import identities_equal, normalize_identity
from .signature import build_challenge_message, recover_identity
from .store import NONCES, DocumentStore, as_utc
from .tokens import mint_session_token

logger = structlog.get_logger()

NONCE_MIN = 100_000
NONCE_MAX = 999_999


def generate_nonce() -> str:
    """Random 6-digit decimal string."""
    return str(NONCE_MIN + secrets.randbelow(NONCE_MAX - NONCE_MIN + 1))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class NonceRecord:
    address: str
    nonce: str
    created_at: datetime

    def to_document(self) -> dict:
        return {"address": self.address, "nonce": self.nonce, "created_at": self.created_at}

    @staticmethod
    def from_document(doc: dict) -> "NonceRecord":
        return NonceRecord(
            address=str(doc["address"]),
            nonce=str(doc["nonce"]),
            created_at=as_utc(doc["created_at"]),
        )


class ChallengeAuthenticator:
    """Issues login nonces and exchanges signed nonces for session tokens."""

    def __init__(
        self,
        store: DocumentStore,
        *,
        jwt_secret: str,
        jwt_algorithm: str = "HS256",
        challenge_ttl: timedelta = timedelta(minutes=5),
        session_ttl: timedelta = timedelta(hours=12),
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.challenge_ttl = challenge_ttl
        self.session_ttl = session_ttl
        self.clock = clock

    @classmethod
    def from_settings(cls, store: DocumentStore, settings: Settings) -> "ChallengeAuthenticator":
        return cls(
            store,
            jwt_secret=settings.jwt_secret,
            jwt_algorithm=settings.jwt_algorithm,
            challenge_ttl=timedelta(seconds=settings.challenge_ttl_seconds),
            session_ttl=timedelta(hours=settings.session_ttl_hours),
        )

    async def request_challenge(self, address: str) -> str:
        """Issue a fresh nonce for `address`, replacing any outstanding one."""
        key = normalize_identity(address)
        record = NonceRecord(address=key, nonce=generate_nonce(), created_at=self.clock())
        await self.store.upsert(NONCES, {"address": key}, record.to_document())
        logger.info("challenge_issued", address=key)
        return record.nonce

    async def _discard(self, key: str, reason: str) -> None:
        try:
            await self.store.delete_one(NONCES, {"address": key})
        except StoreError as e:
            # The nonce still expires on its own; don't fail the request over it.
            logger.error("nonce_delete_failed", address=key, reason=reason, error=str(e))

    async def login(self, address: str, signature: str) -> str:
        """
        Verify a signed challenge and mint a session token.

        Raises:
            ChallengeNotFound: no outstanding nonce for the address
            ChallengeExpired: nonce older than the challenge TTL (it is deleted)
            InvalidSignatureFormat: signature malformed or unrecoverable
            IdentityMismatch: signature was made by a different key
        """
        key = normalize_identity(address)

        doc: Optional[dict] = await self.store.find_one(NONCES, {"address": key})
        if doc is None:
            logger.warning("login_failed", reason="nonce_not_found", address=key)
            raise ChallengeNotFound()
        record = NonceRecord.from_document(doc)

        now = self.clock()
        if now - record.created_at > self.challenge_ttl:
            await self._discard(key, reason="expired")
            logger.warning("login_failed", reason="nonce_expired", address=key)
            raise ChallengeExpired()

        message = build_challenge_message(record.nonce)
        try:
            recovered = recover_identity(message, signature)
        except InvalidSignatureFormat as e:
            logger.warning("login_failed", reason="invalid_signature", address=key, error=str(e))
            raise

        if not identities_equal(recovered, key):
            logger.error(
                "signature_mismatch",
                claimed=key,
                recovered=recovered,
            )
            raise IdentityMismatch()

        await self._discard(key, reason="consumed")

        token, claims = mint_session_token(
            identity=key,
            secret=self.jwt_secret,
            algorithm=self.jwt_algorithm,
            ttl=self.session_ttl,
            now=now,
        )
        logger.info("login_succeeded", address=key, expires_at=claims.expires_at.isoformat())
        return token
