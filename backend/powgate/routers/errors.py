from fastapi import Request

from powgate.services.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    CredentialError,
    GateError,
    InvalidNonceError,
    NonceTooLongError,
    RateLimitedError,
)

# Most specific first
STATUS_CODES: list[tuple[type[GateError], int]] = [
    (NonceTooLongError, 400),
    (InvalidNonceError, 403),
    (ChallengeNotFoundError, 403),
    (ChallengeExpiredError, 403),
    (RateLimitedError, 429),
    (CredentialError, 401),
]


def status_for(error: GateError) -> int:
    for error_type, status_code in STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return 400


def extract_bearer_credential(request: Request, cookie_name: str) -> str | None:
    """Credential from the gate cookie, else from ``Authorization: Bearer``."""
    token = request.cookies.get(cookie_name)
    if token:
        return token
    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[7:] or None
    return None
