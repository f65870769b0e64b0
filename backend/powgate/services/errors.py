"""Error taxonomy for the challenge/credential lifecycle.

Client-correctable outcomes derive from ``GateError`` (a ``ValueError``) and carry
a machine-readable ``code`` plus the protocol ``outcome`` they represent.
Configuration faults are ``GateUnavailableError`` and surface as a 500.
"""

from enum import Enum


class GateOutcome(str, Enum):
    NO_CHALLENGE = "no_challenge"
    CHALLENGE_ISSUED = "challenge_issued"
    VERIFIED = "verified"
    EXPIRED = "expired"
    RATE_LIMITED = "rate_limited"
    REJECTED = "rejected"


class GateError(ValueError):
    code = "gate_error"
    outcome = GateOutcome.REJECTED
    default_message = "Request rejected"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.default_message)


class ChallengeNotFoundError(GateError):
    code = "not_found"
    outcome = GateOutcome.NO_CHALLENGE
    default_message = "No active challenge"


class ChallengeExpiredError(GateError):
    code = "expired"
    outcome = GateOutcome.EXPIRED
    default_message = "Challenge expired"


class RateLimitedError(GateError):
    code = "rate_limited"
    outcome = GateOutcome.RATE_LIMITED
    default_message = "Too many attempts"


class InvalidNonceError(GateError):
    code = "invalid_nonce"
    default_message = "Invalid nonce"


class NonceTooLongError(InvalidNonceError):
    code = "nonce_too_long"
    default_message = "Nonce too long"


class CredentialError(GateError):
    code = "unauthorized"
    default_message = "Unauthorized"


class CredentialExpiredError(CredentialError):
    code = "credential_expired"
    outcome = GateOutcome.EXPIRED
    default_message = "Credential expired"


class MalformedCredentialError(CredentialError):
    code = "credential_malformed"
    default_message = "Malformed credential"


class BadSignatureError(CredentialError):
    code = "credential_bad_signature"
    default_message = "Credential signature mismatch"


class GateUnavailableError(RuntimeError):
    """The gate state was never initialized for this application."""
