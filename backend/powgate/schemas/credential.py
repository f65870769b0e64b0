from pydantic import BaseModel

from powgate.schemas.challenge import UTCDateTime


class CredentialResponse(BaseModel):
    """Returned once per solved challenge."""

    credential: str
    subject: str
    expires_at: UTCDateTime
    token_type: str = "bearer"


class AccessResponse(BaseModel):
    authenticated: bool
    subject: str
