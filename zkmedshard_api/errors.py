"""
Error taxonomy shared by the services and the HTTP layer.

Every failure a request can hit is one of three kinds:
- ValidationError: the caller sent something malformed (4xx)
- AuthenticationError: the caller could not prove who they are (401)
- StoreError: the backing store failed (500, detail never returned)
"""


class ZKMedShardError(Exception):
    """Base error carrying an HTTP status and a user-facing message."""

    status_code = 500
    message = "Internal error"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class ValidationError(ZKMedShardError):
    status_code = 400
    message = "Invalid request"


class InvalidSignatureFormat(ValidationError):
    message = "Invalid signature format"


class AuthenticationError(ZKMedShardError):
    status_code = 401
    message = "Authentication failed"


class ChallengeNotFound(AuthenticationError):
    message = "Nonce not found. Please request a new nonce."


class ChallengeExpired(AuthenticationError):
    message = "Nonce expired. Please request a new nonce."


class IdentityMismatch(AuthenticationError):
    message = "Signature does not match address"


class MissingOrMalformedAuth(AuthenticationError):
    message = "Missing or invalid Authorization header"


class InvalidOrExpiredToken(AuthenticationError):
    message = "Invalid or expired token"


class StoreError(ZKMedShardError):
    """Store failure. The message is internal detail and is only logged."""

    status_code = 500
