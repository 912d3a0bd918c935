"""
Tests for the challenge-response login flow.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from eth_account.messages import encode_defunct

from zkmedshard_api.challenge import ChallengeAuthenticator, generate_nonce
from zkmedshard_api.errors import (
    ChallengeExpired,
    ChallengeNotFound,
    IdentityMismatch,
    InvalidSignatureFormat,
    StoreError,
)
from zkmedshard_api.identity import identities_equal
from zkmedshard_api.signature import build_challenge_message
from zkmedshard_api.store import NONCES, MemoryDocumentStore
from zkmedshard_api.tokens import verify_session_token

SECRET = "test-secret"


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime.now(timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def sign(account, nonce: str) -> str:
    signed = account.sign_message(encode_defunct(text=build_challenge_message(nonce)))
    return "0x" + bytes(signed.signature).hex()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def authenticator(store, clock):
    return ChallengeAuthenticator(store, jwt_secret=SECRET, clock=clock)


class TestNonce:
    def test_six_digits(self) -> None:
        for _ in range(200):
            nonce = generate_nonce()
            assert len(nonce) == 6
            assert nonce.isdigit()

    @pytest.mark.asyncio
    async def test_request_overwrites_previous(self, authenticator, store, alice) -> None:
        await authenticator.request_challenge(alice.address)
        second = await authenticator.request_challenge(alice.address)

        docs = await store.find(NONCES, {})
        assert len(docs) == 1
        assert docs[0]["nonce"] == second

    @pytest.mark.asyncio
    async def test_only_latest_nonce_is_valid(self, authenticator, alice) -> None:
        first = await authenticator.request_challenge(alice.address)
        second = await authenticator.request_challenge(alice.address)
        if first == second:
            pytest.skip("nonce collision")

        with pytest.raises(IdentityMismatch):
            await authenticator.login(alice.address, sign(alice, first))
        assert await authenticator.login(alice.address, sign(alice, second))

    @pytest.mark.asyncio
    async def test_keyed_by_normalized_address(self, authenticator, store, alice) -> None:
        await authenticator.request_challenge(alice.address)
        await authenticator.request_challenge(alice.address.lower()[2:])

        assert len(await store.find(NONCES, {})) == 1


class TestLogin:
    @pytest.mark.asyncio
    async def test_success_yields_token_for_address(self, authenticator, alice) -> None:
        nonce = await authenticator.request_challenge(alice.address)
        token = await authenticator.login(alice.address, sign(alice, nonce))

        claims = verify_session_token(token=token, secret=SECRET)
        assert identities_equal(claims.identity, alice.address)

    @pytest.mark.asyncio
    async def test_address_representation_does_not_matter(self, authenticator, alice) -> None:
        nonce = await authenticator.request_challenge(alice.address.upper().replace("0X", "0x"))
        token = await authenticator.login(alice.address.lower()[2:], sign(alice, nonce))
        assert verify_session_token(token=token, secret=SECRET).identity == alice.address.lower()

    @pytest.mark.asyncio
    async def test_no_challenge(self, authenticator, alice) -> None:
        with pytest.raises(ChallengeNotFound):
            await authenticator.login(alice.address, sign(alice, "123456"))

    @pytest.mark.asyncio
    async def test_other_key_is_identity_mismatch(self, authenticator, store, alice, bob) -> None:
        nonce = await authenticator.request_challenge(alice.address)

        with pytest.raises(IdentityMismatch):
            await authenticator.login(alice.address, sign(bob, nonce))
        # Nonce stays so the real owner can still log in.
        assert await store.find_one(NONCES, {"address": alice.address.lower()}) is not None

    @pytest.mark.asyncio
    async def test_malformed_signature(self, authenticator, alice) -> None:
        await authenticator.request_challenge(alice.address)
        with pytest.raises(InvalidSignatureFormat):
            await authenticator.login(alice.address, "0x1234")

    @pytest.mark.asyncio
    async def test_single_use(self, authenticator, alice) -> None:
        nonce = await authenticator.request_challenge(alice.address)
        signature = sign(alice, nonce)

        await authenticator.login(alice.address, signature)
        with pytest.raises(ChallengeNotFound):
            await authenticator.login(alice.address, signature)


class TestExpiry:
    @pytest.mark.asyncio
    async def test_one_second_before_window_succeeds(self, authenticator, clock, alice) -> None:
        nonce = await authenticator.request_challenge(alice.address)
        clock.advance(minutes=5, seconds=-1)
        assert await authenticator.login(alice.address, sign(alice, nonce))

    @pytest.mark.asyncio
    async def test_one_second_after_window_fails_and_removes(self, authenticator, store, clock, alice) -> None:
        nonce = await authenticator.request_challenge(alice.address)
        clock.advance(minutes=5, seconds=1)

        with pytest.raises(ChallengeExpired):
            await authenticator.login(alice.address, sign(alice, nonce))
        assert await store.find_one(NONCES, {"address": alice.address.lower()}) is None

        with pytest.raises(ChallengeNotFound):
            await authenticator.login(alice.address, sign(alice, nonce))


class FailingDeleteStore(MemoryDocumentStore):
    async def delete_one(self, collection, filter):
        raise StoreError("connection reset")


class SlowFindStore(MemoryDocumentStore):
    """Yields to the event loop after reading, like a network round trip."""

    async def find_one(self, collection, filter):
        doc = await super().find_one(collection, filter)
        await asyncio.sleep(0)
        return doc


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_delete_failure_after_login_is_not_fatal(self, clock, alice) -> None:
        authenticator = ChallengeAuthenticator(FailingDeleteStore(), jwt_secret=SECRET, clock=clock)
        nonce = await authenticator.request_challenge(alice.address)

        token = await authenticator.login(alice.address, sign(alice, nonce))
        assert verify_session_token(token=token, secret=SECRET).identity == alice.address.lower()

    @pytest.mark.asyncio
    async def test_delete_failure_on_expiry_still_reports_expired(self, clock, alice) -> None:
        authenticator = ChallengeAuthenticator(FailingDeleteStore(), jwt_secret=SECRET, clock=clock)
        nonce = await authenticator.request_challenge(alice.address)
        clock.advance(minutes=6)

        with pytest.raises(ChallengeExpired):
            await authenticator.login(alice.address, sign(alice, nonce))

    @pytest.mark.asyncio
    async def test_concurrent_replay_race_is_known(self, clock, alice) -> None:
        """
        Fetch and delete are not atomic: two logins that both read the nonce
        before either deletes it both get a token. Pinned here so a change
        to atomic consume-on-read is a deliberate decision.
        """
        authenticator = ChallengeAuthenticator(SlowFindStore(), jwt_secret=SECRET, clock=clock)
        nonce = await authenticator.request_challenge(alice.address)
        signature = sign(alice, nonce)

        results = await asyncio.gather(
            authenticator.login(alice.address, signature),
            authenticator.login(alice.address, signature),
            return_exceptions=True,
        )
        assert all(isinstance(r, str) for r in results)
