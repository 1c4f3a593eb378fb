# API Security - Session token for the local API
#
# A random token is created when the server starts and printed to the
# console. Every vault endpoint requires it in the X-Session-Token header, so
# other local processes cannot drive the vault API without it.
#
# Auth failures use the same error body as vault errors:
#   {"detail": {"message": ..., "kind": "unauthorized" | "unavailable"}}

import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

_SESSION_TOKEN: Optional[str] = None


def initialize_session_token() -> str:
    """Create (or rotate) the token for this server instance."""
    global _SESSION_TOKEN
    _SESSION_TOKEN = secrets.token_urlsafe(32)
    return _SESSION_TOKEN


def get_session_token() -> str:
    """
    Get the current session token.

    Raises:
        RuntimeError: If the token hasn't been initialized
    """
    if _SESSION_TOKEN is None:
        raise RuntimeError("Session token not initialized. Call initialize_session_token() first.")
    return _SESSION_TOKEN


def _auth_error(status_code: int, message: str, kind: str) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"message": message, "kind": kind})


async def verify_session_token(
    x_session_token: Optional[str] = Header(None, alias="X-Session-Token"),
) -> str:
    """
    FastAPI dependency checking the X-Session-Token header.

    Raises:
        HTTPException: 503 before startup, 401 if the token is missing or wrong
    """
    if _SESSION_TOKEN is None:
        raise _auth_error(
            status.HTTP_503_SERVICE_UNAVAILABLE, "Session token not initialized", "unavailable"
        )
    if not x_session_token:
        raise _auth_error(
            status.HTTP_401_UNAUTHORIZED, "Missing X-Session-Token header", "unauthorized"
        )
    # Constant-time comparison
    if not secrets.compare_digest(x_session_token.encode(), _SESSION_TOKEN.encode()):
        raise _auth_error(
            status.HTTP_401_UNAUTHORIZED, "Invalid session token", "unauthorized"
        )
    return x_session_token
