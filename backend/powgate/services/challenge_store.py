"""In-memory challenge storage with TTL expiry and attempt accounting."""

import secrets
import threading
from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta

from powgate.models.challenge import Challenge
from powgate.services.errors import (
    ChallengeExpiredError,
    ChallengeNotFoundError,
    RateLimitedError,
)


def utcnow() -> datetime:
    """Current UTC time as naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


class ChallengeStore:
    """
    Thread-safe mapping of challenge key -> Challenge.

    Every read and write goes through one lock and does constant work while
    holding it (``sweep`` does a single pass). Callers only ever receive
    copies of stored records.
    """

    def __init__(
        self,
        ttl_seconds: int,
        max_attempts: int,
        key_bytes: int = 24,
        secret_bytes: int = 32,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self._key_bytes = key_bytes
        self._secret_bytes = secret_bytes
        self._clock = clock
        self._challenges: dict[str, Challenge] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._challenges)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._challenges

    def create(self) -> Challenge:
        """Generate and store a fresh challenge."""
        challenge = Challenge(
            key=secrets.token_urlsafe(self._key_bytes),
            secret=secrets.token_hex(self._secret_bytes),
            created_at=self._clock(),
        )
        with self._lock:
            # A key collision at this entropy is not a practical concern; last write wins.
            self._challenges[challenge.key] = challenge
        return replace(challenge)

    def get_for_verification(self, key: str) -> Challenge:
        """
        Return a snapshot of a live challenge. Does not count an attempt.

        An expired challenge is removed and ChallengeExpiredError raised;
        an unknown key raises ChallengeNotFoundError.
        """
        now = self._clock()
        with self._lock:
            challenge = self._challenges.get(key)
            if challenge is None:
                raise ChallengeNotFoundError()
            if challenge.is_expired(now, self.ttl):
                del self._challenges[key]
                raise ChallengeExpiredError()
            return replace(challenge)

    def record_attempt(self, key: str) -> Challenge:
        """
        Count one verification attempt against a challenge.

        Expiry is checked before the attempt cap. An expired challenge is
        removed; a capped one is left in place and its counter is not touched.
        Returns a snapshot taken after the increment.
        """
        now = self._clock()
        with self._lock:
            challenge = self._challenges.get(key)
            if challenge is None:
                raise ChallengeNotFoundError()
            if challenge.is_expired(now, self.ttl):
                del self._challenges[key]
                raise ChallengeExpiredError()
            if challenge.attempts >= self.max_attempts:
                raise RateLimitedError()
            challenge.attempts += 1
            return replace(challenge)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._challenges.pop(key, None) is not None

    def sweep(self, now: datetime | None = None) -> int:
        """Delete expired challenges. Returns count of deleted records."""
        now = now or self._clock()
        with self._lock:
            expired = [
                key
                for key, challenge in self._challenges.items()
                if challenge.is_expired(now, self.ttl)
            ]
            for key in expired:
                del self._challenges[key]
        return len(expired)
