"""Rate limiting middleware using SlowAPI."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from config import get_settings

settings = get_settings()

# Client IP is the key; login and registration are the limited routes
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Same ``{message}`` body as every other error."""
    return JSONResponse(
        status_code=429,
        content={
            "message": "Too many requests. Please try again later.",
            "retry_after": exc.detail,
        }
    )
