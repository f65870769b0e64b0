from datetime import datetime
from typing import Annotated

from pydantic import BaseModel, Field, PlainSerializer


def format_utc(dt: datetime) -> str:
    """Serialize a naive UTC datetime as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return dt.replace(microsecond=0).strftime("%Y-%m-%dT%H:%M:%SZ")


UTCDateTime = Annotated[datetime, PlainSerializer(format_utc, return_type=str)]


class ChallengeResponse(BaseModel):
    key: str
    secret: str
    difficulty: int
    prefix: str
    expires_at: UTCDateTime
    algorithm: str = "sha256"


class SolutionSubmit(BaseModel):
    key: str = Field(..., min_length=1, description="Challenge key from GET /challenge")
    # Length is enforced by the gate against max_nonce_length
    nonce: str
