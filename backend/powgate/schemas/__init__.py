from powgate.schemas.challenge import ChallengeResponse, SolutionSubmit, UTCDateTime
from powgate.schemas.credential import AccessResponse, CredentialResponse

__all__ = [
    "AccessResponse",
    "ChallengeResponse",
    "CredentialResponse",
    "SolutionSubmit",
    "UTCDateTime",
]
