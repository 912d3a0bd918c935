"""
Claim registry.

Claims are attributed to the address that submitted them, but the hash
lookup is global: any authenticated caller can ask whether a hash has
been registered by anyone, without learning who registered it.

The proof and public signals sent with a submission are accepted as-is
and not verified; every stored claim is marked verified. Resubmitting the
same claim creates another record.
"""

from typing import Any

import structlog

from .challenge import utc_now
from .identity import normalize_identity
from .models import ClaimRecord
from .store import CLAIMS, DocumentStore

logger = structlog.get_logger()


class ClaimService:
    """Stores and looks up claims for authenticated callers."""

    def __init__(self, store: DocumentStore, clock=utc_now):
        self.store = store
        self.clock = clock

    async def submit(
        self,
        identity: str,
        claim_id: str,
        claim_hash: str,
        proof_payload: Any = None,
    ) -> ClaimRecord:
        record = ClaimRecord(
            claim_id=claim_id,
            claim_hash=claim_hash,
            submitter=normalize_identity(identity),
            verified=True,
            submitted_at=self.clock(),
        )
        record.id = await self.store.insert(CLAIMS, record.to_document())
        logger.info(
            "claim_submitted",
            claim_id=claim_id,
            claim_hash=claim_hash,
            submitter=record.submitter,
            has_proof=proof_payload is not None,
        )
        return record

    async def list_for_caller(self, identity: str) -> list[ClaimRecord]:
        """All claims submitted by `identity`, in store order."""
        docs = await self.store.find(CLAIMS, {"submitter": normalize_identity(identity)})
        return [ClaimRecord.model_validate(doc) for doc in docs]

    async def exists_by_hash(self, claim_hash: str) -> bool:
        return await self.store.find_one(CLAIMS, {"claim_hash": claim_hash}) is not None
