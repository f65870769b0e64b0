import hashlib

from powgate.services.errors import NonceTooLongError


def difficulty_prefix(difficulty: int) -> str:
    """Hex prefix a solution digest must start with."""
    return "0" * difficulty


def check_nonce_length(nonce: str, max_length: int) -> None:
    """Reject oversized nonces before any hashing happens."""
    if len(nonce) > max_length:
        raise NonceTooLongError(f"Nonce exceeds {max_length} characters")


def hash_solution(secret: str, nonce: str) -> str:
    """Lowercase hex SHA-256 of ``secret || nonce`` (no separator)."""
    return hashlib.sha256(f"{secret}{nonce}".encode()).hexdigest()


def verify_nonce(secret: str, nonce: str, required_prefix: str) -> bool:
    """
    Verify a proof-of-work solution.

    Runs exactly one hash. The search loop belongs to the client, which is
    expected to submit a nonce it has already found.
    """
    return hash_solution(secret, nonce).startswith(required_prefix)
