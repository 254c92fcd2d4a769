"""
Shared-secret authentication middleware for the cloner API.

All /api/* and /projects/* endpoints require a valid X-Cloner-Secret header
matching the CLONER_SHARED_SECRET environment variable. The web front end
attaches this header when forwarding requests.
"""

import secrets
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from . import config

SECRET_HEADER = "X-Cloner-Secret"


class ClonerAuthMiddleware(BaseHTTPMiddleware):
    """Reject unauthenticated requests to protected endpoints."""

    # Paths that are always public (health checks, etc.)
    PUBLIC_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
    PROTECTED_PREFIXES = ("/api", "/projects")

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if path in self.PUBLIC_PATHS or not path.startswith(self.PROTECTED_PREFIXES):
            return await call_next(request)

        # Read at dispatch time so tests and reloads can change it
        secret = config.SHARED_SECRET
        if not secret:
            # In development without the secret set, allow all traffic
            if config.ENVIRONMENT == "development":
                return await call_next(request)
            return JSONResponse(status_code=500, content={"detail": "CLONER_SHARED_SECRET not configured"})

        # Constant-time compare avoids timing attacks
        provided = request.headers.get(SECRET_HEADER, "")
        if not secrets.compare_digest(provided, secret):
            return JSONResponse(status_code=401, content={"detail": "Invalid or missing cloner secret"})

        return await call_next(request)
