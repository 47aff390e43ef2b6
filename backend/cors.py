"""
Origin allow-list enforcement.

Starlette's CORSMiddleware only decides which CORS headers go on a response;
a disallowed origin still reaches the route. This guard rejects such requests
outright. Requests without an Origin header (curl, server-to-server, mobile
apps) are let through.
"""

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

CORS_REJECTION = (
    "The CORS policy for this site does not allow access from the specified Origin."
)


def origin_guard_middleware(allowed_origins: list[str]):
    allowed = frozenset(allowed_origins)

    async def middleware(request: Request, call_next):
        origin = request.headers.get("origin")
        if origin and origin not in allowed:
            logger.warning("Rejected request from origin %s", origin)
            return JSONResponse(status_code=403, content={"error": CORS_REJECTION})
        return await call_next(request)

    return middleware
