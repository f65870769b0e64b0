"""Browser flow: challenge page, form submission, cookie check."""

import structlog
from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from powgate.config import settings
from powgate.middleware.rate_limit import limiter
from powgate.routers.errors import extract_bearer_credential, status_for
from powgate.services.errors import CredentialError, GateError
from powgate.services.gate_service import GateService
from powgate.state import get_gate

router = APIRouter()
logger = structlog.get_logger()


@router.get("/get_challenge", response_class=HTMLResponse)
@limiter.limit(settings.rate_limit_challenges)
async def get_challenge_page(
    request: Request,
    gate: GateService = Depends(get_gate),
):
    """Serve a fresh challenge with the in-browser miner."""
    challenge = gate.request_challenge()
    return HTMLResponse(content=gate.render_challenge(challenge))


@router.post("/post_nonce", response_class=PlainTextResponse)
@limiter.limit(settings.rate_limit_solutions)
async def post_nonce(
    request: Request,
    token: str = Form(...),
    nonce: str = Form(""),
    gate: GateService = Depends(get_gate),
):
    """
    Submit a nonce for the challenge identified by ``token``.

    On success the credential is set as an HttpOnly cookie.
    """
    try:
        credential = gate.submit_solution(token, nonce)
    except GateError as e:
        return PlainTextResponse(str(e), status_code=status_for(e))

    response = PlainTextResponse("PoW verified, access granted! Redirecting...")
    response.set_cookie(
        key=settings.cookie_name,
        value=credential.token,
        max_age=settings.credential_ttl_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="strict",
    )
    response.headers["Refresh"] = f"2; url={settings.verified_redirect_url}"
    return response


@router.get("/validate", response_class=PlainTextResponse)
@limiter.limit(settings.rate_limit_validations)
async def validate(
    request: Request,
    gate: GateService = Depends(get_gate),
):
    """Check the gate cookie; unauthenticated clients are sent back to the challenge."""
    token = extract_bearer_credential(request, settings.cookie_name)
    if token is None:
        logger.info("access_denied", reason="missing")
    else:
        try:
            gate.check_access(token)
        except CredentialError as e:
            logger.info("access_denied", reason=e.code)
        else:
            return PlainTextResponse("Access Granted - You are authenticated!")

    return PlainTextResponse(
        "Unauthorized. Redirecting to challenge...",
        status_code=401,
        headers={"Refresh": f"0; url={settings.challenge_redirect_url}"},
    )
