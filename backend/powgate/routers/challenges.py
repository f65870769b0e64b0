from fastapi import APIRouter, Depends, HTTPException, Request

from powgate.config import settings
from powgate.middleware.rate_limit import limiter
from powgate.routers.errors import status_for
from powgate.schemas.challenge import ChallengeResponse, SolutionSubmit
from powgate.schemas.credential import CredentialResponse
from powgate.services.errors import GateError
from powgate.services.gate_service import GateService
from powgate.state import get_gate

router = APIRouter()


@router.get("/challenge", response_model=ChallengeResponse)
@limiter.limit(settings.rate_limit_challenges)
async def create_challenge(
    request: Request,
    gate: GateService = Depends(get_gate),
):
    """
    Request a proof-of-work challenge.

    The client must find a nonce such that sha256(secret + nonce) starts
    with ``prefix`` and submit it before ``expires_at``.
    """
    challenge = gate.request_challenge()

    return ChallengeResponse(
        key=challenge.key,
        secret=challenge.secret,
        difficulty=gate.difficulty,
        prefix=gate.required_prefix,
        expires_at=challenge.expires_at(gate.store.ttl),
    )


@router.post("/solutions", response_model=CredentialResponse)
@limiter.limit(settings.rate_limit_solutions)
async def submit_solution(
    request: Request,
    submission: SolutionSubmit,
    gate: GateService = Depends(get_gate),
):
    """
    Submit a solved challenge in exchange for an access credential.

    Each submission counts against the challenge's attempt budget.
    """
    try:
        credential = gate.submit_solution(submission.key, submission.nonce)
    except GateError as e:
        raise HTTPException(
            status_code=status_for(e),
            detail={"code": e.code, "message": str(e)},
        )

    return CredentialResponse(
        credential=credential.token,
        subject=credential.subject,
        expires_at=credential.expires_at,
    )
