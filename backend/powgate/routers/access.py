import structlog
from fastapi import APIRouter, Depends, HTTPException, Request

from powgate.config import settings
from powgate.middleware.rate_limit import limiter
from powgate.routers.errors import extract_bearer_credential
from powgate.schemas.credential import AccessResponse
from powgate.services.errors import CredentialError
from powgate.services.gate_service import GateService
from powgate.state import get_gate

router = APIRouter()
logger = structlog.get_logger()


@router.get("/validate", response_model=AccessResponse)
@limiter.limit(settings.rate_limit_validations)
async def validate_credential(
    request: Request,
    gate: GateService = Depends(get_gate),
):
    """
    Validate the credential from the gate cookie or Authorization header.

    Does not change any server state.
    """
    token = extract_bearer_credential(request, settings.cookie_name)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Missing credential"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        subject = gate.check_access(token)
    except CredentialError as e:
        logger.info("access_denied", reason=e.code)
        raise HTTPException(
            status_code=401,
            detail={"code": e.code, "message": str(e)},
            headers={"WWW-Authenticate": "Bearer"},
        )

    return AccessResponse(authenticated=True, subject=subject)
