"""
Wallet address (identity) helpers.

An identity is a 20-byte EVM address written as hex. The same identity
may arrive with or without the 0x prefix and in any letter case
(including EIP-55 checksum case), so comparison and storage keys always
go through normalize_identity().
"""

import re

IDENTITY_PREFIX = "0x"

_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


def strip_prefix(value: str) -> str:
    value = value.strip()
    if value[:2].lower() == IDENTITY_PREFIX:
        return value[2:]
    return value


def normalize_identity(value: str) -> str:
    """Return the canonical form: 0x prefix followed by lowercase hex."""
    return IDENTITY_PREFIX + strip_prefix(value).lower()


def identities_equal(a: str, b: str) -> bool:
    """Case-insensitive comparison that ignores an optional 0x prefix."""
    return strip_prefix(a).lower() == strip_prefix(b).lower()


def is_valid_address(value: str) -> bool:
    return bool(_ADDRESS_RE.match(value.strip()))
