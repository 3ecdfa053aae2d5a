"""Authentication dependencies for the InfoCapture API.

When INFOCAPTURE_API_TOKEN is set, every request must carry it as a Bearer
token. When it is not set, authentication is disabled (development mode)
and the bearer value, if any, only identifies the caller for usage
tracking and session ownership.
"""

from __future__ import annotations

import os
import secrets

from fastapi import Depends, Header, HTTPException

from infocapture.session.service import ANONYMOUS_PRINCIPAL


def _get_api_token() -> str:
    """Read the API token at call time (supports test overrides)."""
    return os.getenv("INFOCAPTURE_API_TOKEN", "")


def _get_bearer_token(authorization: str = Header(default="")) -> str:
    """Extract bearer token from Authorization header."""
    if authorization.startswith("Bearer "):
        return authorization[7:]
    return ""


async def require_api_auth(token: str = Depends(_get_bearer_token)) -> str:
    """Dependency that enforces API token authentication.

    Returns the caller principal.
    """
    api_token = _get_api_token()
    if not api_token:
        return token or ANONYMOUS_PRINCIPAL
    if not secrets.compare_digest(token, api_token):
        raise HTTPException(status_code=401, detail="Invalid or missing API token")
    return token


def websocket_principal(token: str) -> str | None:
    """Principal for a websocket query token, or None if it is rejected."""
    api_token = _get_api_token()
    if not api_token:
        return token or ANONYMOUS_PRINCIPAL
    if not secrets.compare_digest(token, api_token):
        return None
    return token
