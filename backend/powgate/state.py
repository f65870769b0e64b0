from fastapi import Request

from powgate.config import Settings, settings
from powgate.services.challenge_store import ChallengeStore
from powgate.services.credential_service import CredentialService, generate_secret
from powgate.services.errors import GateUnavailableError
from powgate.services.gate_service import GateService
from powgate.services.render_service import ChallengeRenderer


def build_gate(config: Settings = settings) -> GateService:
    """Construct the store, credential service and gate for one process."""
    store = ChallengeStore(
        ttl_seconds=config.challenge_ttl_seconds,
        max_attempts=config.max_attempts,
        key_bytes=config.challenge_key_bytes,
        secret_bytes=config.challenge_secret_bytes,
    )
    credentials = CredentialService(
        secret_key=generate_secret(),
        ttl_seconds=config.credential_ttl_seconds,
        algorithm=config.jwt_algorithm,
    )
    return GateService(
        store=store,
        credentials=credentials,
        difficulty=config.pow_difficulty,
        max_nonce_length=config.max_nonce_length,
        subject=config.credential_subject,
        renderer=ChallengeRenderer(verified_url=config.verified_redirect_url),
    )


def get_gate(request: Request) -> GateService:
    """Dependency for FastAPI endpoints to get the process gate."""
    gate = getattr(request.app.state, "gate", None)
    if gate is None:
        raise GateUnavailableError("Gate state is not initialized")
    return gate
