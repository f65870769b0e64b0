from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from powgate.config import settings
from powgate.logging_config import setup_logging
from powgate.middleware.logging import LoggingMiddleware
from powgate.middleware.rate_limit import limiter
from powgate.routers import access, challenges, gate
from powgate.scheduler import shutdown_scheduler, start_scheduler
from powgate.services.errors import GateUnavailableError
from powgate.state import build_gate

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the gate for this process and run the challenge sweeper."""
    setup_logging()
    app.state.gate = build_gate(settings)
    scheduler = start_scheduler(app.state.gate.store) if settings.sweep_enabled else None
    yield
    if scheduler is not None:
        shutdown_scheduler(scheduler)
    app.state.gate = None


app = FastAPI(
    title="powgate",
    description="Proof-of-work admission gate",
    version="0.1.0",
    lifespan=lifespan,
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(LoggingMiddleware)


@app.exception_handler(GateUnavailableError)
async def gate_unavailable_handler(request: Request, exc: GateUnavailableError):
    logger.error("gate_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Routers
app.include_router(gate.router, tags=["gate"])
app.include_router(challenges.router, prefix="/api/v1", tags=["challenges"])
app.include_router(access.router, prefix="/api/v1", tags=["access"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
