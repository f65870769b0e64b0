from dataclasses import dataclass
from datetime import datetime, timedelta


@dataclass
class Challenge:
    key: str
    secret: str
    created_at: datetime
    attempts: int = 0

    def expires_at(self, ttl: timedelta) -> datetime:
        return self.created_at + ttl

    def is_expired(self, now: datetime, ttl: timedelta) -> bool:
        """Live while ``now - created_at <= ttl``."""
        return now - self.created_at > ttl
