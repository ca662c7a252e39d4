"""API Authentication - API key check for command endpoints.

- API key validation via X-API-Key header
- Skips auth in development mode when no key is configured
- Always skips auth for health and metrics endpoints
"""

import secrets
from typing import Final

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import APIKeyHeader

from puppet_expressions.config.settings import Settings, get_settings
from puppet_expressions.observability.logging import get_logger

logger = get_logger(__name__)

# Paths that bypass authentication (health checks and Prometheus scraping)
PUBLIC_PATHS: Final[frozenset[str]] = frozenset({
    "/health",
    "/healthz",
    "/readyz",
    "/metrics",
})

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def _constant_time_compare(a: str, b: str) -> bool:
    """Compare two strings in constant time."""
    return secrets.compare_digest(a.encode(), b.encode())


def _auth_required(settings: Settings) -> bool:
    if not settings.auth_enabled:
        return False
    # Development without a configured key runs open
    if settings.environment == "development" and not settings.api_key:
        return False
    return True


def check_api_key(api_key: str | None, settings: Settings | None = None) -> bool:
    """Whether a presented key is acceptable under current settings."""
    settings = settings or get_settings()
    if not _auth_required(settings):
        return True
    if not api_key:
        return False
    return _constant_time_compare(api_key, settings.api_key or "")


async def verify_api_key(
    request: Request,
    api_key: str | None = Depends(api_key_header),
) -> None:
    """Verify API key from request header.

    Raises:
        HTTPException: 401 if authentication fails
    """
    settings = get_settings()

    if request.url.path in PUBLIC_PATHS:
        return

    if not _auth_required(settings):
        logger.debug(
            "auth_skipped",
            reason="auth_disabled" if not settings.auth_enabled else "development_no_key",
            path=request.url.path,
        )
        return

    if not api_key:
        logger.warning(
            "auth_failed",
            reason="missing_api_key",
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not _constant_time_compare(api_key, settings.api_key or ""):
        logger.warning(
            "auth_failed",
            reason="invalid_api_key",
            path=request.url.path,
            client_ip=request.client.host if request.client else "unknown",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )


async def authorize_websocket(websocket: WebSocket) -> bool:
    """Check a WebSocket's key (header or ``api_key`` query parameter).

    Closes the socket with policy-violation code 1008 when rejected.
    """
    api_key = websocket.headers.get("x-api-key") or websocket.query_params.get("api_key")
    if check_api_key(api_key):
        return True

    logger.warning(
        "auth_failed",
        reason="invalid_api_key" if api_key else "missing_api_key",
        path=websocket.url.path,
    )
    await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
    return False


def generate_api_key() -> str:
    """Generate a secure random API key (64 hex characters)."""
    return secrets.token_hex(32)
