"""
Wallet signature verification.

Clients sign the login challenge with `personal_sign` (EIP-191 version
0x45). The signed payload is therefore:
  "\\x19Ethereum Signed Message:\\n" + str(len(message)) + message
hashed with keccak256, which keeps a login signature from ever being
valid over raw transaction data.

Signature format (hex, optional 0x prefix):
  r(32) + s(32) + v(1)  (65 bytes, v is 27/28 or 0/1)
"""

from __future__ import annotations

from eth_account import Account
from eth_account.messages import encode_defunct

from .errors import InvalidSignatureFormat
from .identity import normalize_identity

SIGNATURE_LENGTH = 65

# IMPORTANT: this string must remain stable, because wallets sign it verbatim.
CHALLENGE_TEMPLATE = "Sign this message to login to ZKMedShard: {nonce}"


def build_challenge_message(nonce: str) -> str:
    return CHALLENGE_TEMPLATE.format(nonce=nonce)


def parse_signature(signature: str) -> bytes:
    """Decode a hex signature, rejecting anything that is not exactly 65 bytes."""
    sig_hex = signature.strip()
    if sig_hex[:2].lower() == "0x":
        sig_hex = sig_hex[2:]
    if len(sig_hex) != SIGNATURE_LENGTH * 2:
        raise InvalidSignatureFormat(
            f"Invalid signature format: expected {SIGNATURE_LENGTH} bytes of hex"
        )
    try:
        return bytes.fromhex(sig_hex)
    except ValueError as e:
        raise InvalidSignatureFormat("Invalid signature format: not hex") from e


def recover_identity(message: str, signature: str) -> str:
    """
    Recover the signing address for a personal_sign message.

    Returns:
        Normalized address (0x + lowercase hex) of the signer

    Raises:
        InvalidSignatureFormat: signature is malformed or does not
            recover to a valid public key
    """
    raw = parse_signature(signature)
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=raw)
    except Exception as e:
        raise InvalidSignatureFormat("Invalid signature: public key recovery failed") from e
    return normalize_identity(recovered)


def sign_challenge(private_key: str, nonce: str) -> tuple[str, str]:
    """
    Sign the challenge message for `nonce` the way a wallet would.

    Returns:
        (address, 0x-prefixed hex signature)
    """
    account = Account.from_key(private_key)
    signed = account.sign_message(encode_defunct(text=build_challenge_message(nonce)))
    return normalize_identity(account.address), "0x" + bytes(signed.signature).hex()
