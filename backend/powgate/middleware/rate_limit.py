from slowapi import Limiter
from starlette.requests import Request


def get_real_client_ip(request: Request) -> str:
    """Client IP for rate limiting.

    Behind a reverse proxy the first X-Forwarded-For hop is the client.
    Direct connections fall back to the socket peer.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


# Limits per client IP on top of the per-challenge attempt budget
limiter = Limiter(key_func=get_real_client_ip)
