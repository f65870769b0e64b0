from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Credential:
    token: str
    subject: str
    issued_at: datetime
    expires_at: datetime
