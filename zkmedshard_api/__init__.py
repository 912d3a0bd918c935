"""
ZKMedShard API - wallet-signature login and claim registry.

Provides REST endpoints for:
- Issuing login challenges (nonces) for a wallet address
- Exchanging a signed challenge for a session token
- Submitting and listing claims
- Verifying that a claim hash has been registered
"""

__version__ = "0.1.0"
