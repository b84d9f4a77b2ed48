"""
API Token authentication middleware.
"""

import hmac

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from api.config.settings import settings

API_TOKEN_HEADER = "X-API-Token"


class APITokenMiddleware(BaseHTTPMiddleware):
    """Validates the API token on every request except health, metrics and docs."""

    EXCLUDED_PATHS = {"/health", "/docs", "/redoc", "/openapi.json", "/metrics"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        if not settings.api_token:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "error": "ServiceUnavailable",
                    "message": "API token is not configured",
                },
            )

        token = request.headers.get(API_TOKEN_HEADER, "")
        if not token or not hmac.compare_digest(token, settings.api_token):
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={
                    "error": "Unauthorized",
                    "message": f"Invalid or missing {API_TOKEN_HEADER} header",
                },
            )

        return await call_next(request)
