"""Proof-of-work gate: issue a challenge, verify a solution, check a credential."""

import structlog

from powgate.models.challenge import Challenge
from powgate.models.credential import Credential
from powgate.services.challenge_store import ChallengeStore
from powgate.services.credential_service import CredentialService
from powgate.services.errors import (
    ChallengeNotFoundError,
    GateError,
    GateOutcome,
    InvalidNonceError,
)
from powgate.services.pow_service import check_nonce_length, difficulty_prefix, verify_nonce
from powgate.services.render_service import ChallengeRenderer

logger = structlog.get_logger()


class GateService:
    """
    Orchestrates the challenge store, the hash check and the credential issuer.

    Each submission costs the server exactly one SHA-256 and is counted
    against the challenge's attempt budget. A wrong nonce leaves the challenge
    alive so the client can retry until the budget runs out.
    """

    def __init__(
        self,
        store: ChallengeStore,
        credentials: CredentialService,
        difficulty: int,
        max_nonce_length: int,
        subject: str = "verified_user",
        renderer: ChallengeRenderer | None = None,
    ) -> None:
        self.store = store
        self.credentials = credentials
        self.difficulty = difficulty
        self.required_prefix = difficulty_prefix(difficulty)
        self.max_nonce_length = max_nonce_length
        self.subject = subject
        self.renderer = renderer or ChallengeRenderer()

    def request_challenge(self) -> Challenge:
        """Always issues a fresh challenge; nothing is reused per client."""
        challenge = self.store.create()
        logger.info(
            "challenge_issued",
            outcome=GateOutcome.CHALLENGE_ISSUED.value,
            difficulty=self.difficulty,
        )
        return challenge

    def render_challenge(self, challenge: Challenge) -> bytes:
        return self.renderer.render(challenge.key, challenge.secret, self.required_prefix)

    def submit_solution(self, key: str, nonce: str) -> Credential:
        """
        Verify a nonce for the challenge under ``key``.

        Returns a credential on success and consumes the challenge. Raises a
        GateError subclass otherwise.
        """
        check_nonce_length(nonce, self.max_nonce_length)

        try:
            challenge = self.store.record_attempt(key)
        except GateError as e:
            logger.info("solution_refused", outcome=e.outcome.value, reason=e.code)
            raise

        if not verify_nonce(challenge.secret, nonce, self.required_prefix):
            logger.info(
                "solution_rejected",
                outcome=GateOutcome.REJECTED.value,
                attempts=challenge.attempts,
                max_attempts=self.store.max_attempts,
            )
            raise InvalidNonceError()

        # Only the submission that actually removes the challenge gets a credential.
        if not self.store.remove(key):
            logger.info("solution_refused", outcome=GateOutcome.NO_CHALLENGE.value, reason="consumed")
            raise ChallengeNotFoundError()

        credential = self.credentials.issue(self.subject)
        logger.info(
            "credential_issued",
            outcome=GateOutcome.VERIFIED.value,
            attempts=challenge.attempts,
            expires_at=credential.expires_at.isoformat(),
        )
        return credential

    def check_access(self, token: str) -> str:
        """Return the credential's subject. Read-only."""
        return self.credentials.validate(token)
