"""
Tests for personal_sign signature recovery.
"""

import pytest
from eth_account.messages import encode_defunct

from zkmedshard_api.errors import InvalidSignatureFormat
from zkmedshard_api.signature import (
    build_challenge_message,
    parse_signature,
    recover_identity,
    sign_challenge,
)


def _sign(account, message: str) -> str:
    signed = account.sign_message(encode_defunct(text=message))
    return "0x" + bytes(signed.signature).hex()


class TestChallengeMessage:
    def test_template_is_stable(self) -> None:
        """Wallets sign this exact text; changing it breaks every client."""
        assert build_challenge_message("123456") == "Sign this message to login to ZKMedShard: 123456"


class TestRecoverIdentity:
    def test_recovers_signer(self, alice) -> None:
        message = build_challenge_message("654321")
        recovered = recover_identity(message, _sign(alice, message))
        assert recovered == alice.address.lower()

    def test_accepts_unprefixed_hex(self, alice) -> None:
        message = build_challenge_message("111111")
        signature = _sign(alice, message)[2:]
        assert recover_identity(message, signature) == alice.address.lower()

    def test_different_message_recovers_different_identity(self, alice) -> None:
        """A valid signature over other text is not a format error, just a different signer."""
        signature = _sign(alice, build_challenge_message("111111"))
        recovered = recover_identity(build_challenge_message("222222"), signature)
        assert recovered != alice.address.lower()

    def test_wrong_length_rejected(self) -> None:
        with pytest.raises(InvalidSignatureFormat, match="65 bytes"):
            recover_identity("hello", "0x" + "ab" * 64)

    def test_non_hex_rejected(self) -> None:
        with pytest.raises(InvalidSignatureFormat, match="not hex"):
            recover_identity("hello", "0x" + "zz" * 65)

    def test_unrecoverable_signature_rejected(self) -> None:
        # r = s = 0 and an invalid recovery byte cannot yield a public key.
        with pytest.raises(InvalidSignatureFormat, match="recovery"):
            recover_identity("hello", "0x" + "00" * 64 + "05")

    def test_parse_signature_length(self) -> None:
        assert len(parse_signature("0x" + "01" * 65)) == 65


class TestSignChallenge:
    def test_roundtrip_with_recover(self, alice) -> None:
        address, signature = sign_challenge(alice.key.hex(), "999999")
        assert address == alice.address.lower()
        assert recover_identity(build_challenge_message("999999"), signature) == address
