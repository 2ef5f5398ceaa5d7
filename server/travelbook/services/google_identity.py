"""Verification of Google Sign-In ID tokens."""

from typing import Any

from google.auth.transport import requests as google_requests
from google.oauth2 import id_token
from starlette.concurrency import run_in_threadpool


async def verify_google_id_token(token: str, audience: str) -> dict[str, Any]:
    """
    Verify a Google ID token and return its claims.

    The check fetches Google's signing certificates over HTTP, so it runs
    in the threadpool.

    Raises:
        ValueError: If the token is malformed, expired, or issued for another audience
        google.auth.exceptions.GoogleAuthError: If the certificates cannot be fetched
    """
    return await run_in_threadpool(
        id_token.verify_oauth2_token,
        token,
        google_requests.Request(),
        audience,
    )
