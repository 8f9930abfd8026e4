"""Shared-key authentication for the SafeTrade messaging routes.

The marketplace front end and sibling services (the send pathway when it
screens remotely) present the deployment key in x-api-key. The health check
stays open; every /api/messaging route depends on verify_api_key.
"""

import logging
import secrets
from typing import Optional

from fastapi import Request, Security, HTTPException, status
from fastapi.security import APIKeyHeader

from safetrade.config import Config

logger = logging.getLogger(__name__)

API_KEY_NAME = "x-api-key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

MISSING_KEY_DETAIL = "Missing API key. SafeTrade messaging routes require the 'x-api-key' header."
INVALID_KEY_DETAIL = "Invalid API key for SafeTrade messaging."


def key_matches(candidate: str, expected: str) -> bool:
    # Byte comparison so non-ASCII keys are rejected rather than raising
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


async def verify_api_key(
    request: Request,
    api_key: Optional[str] = Security(api_key_header),
) -> str:
    if not api_key:
        logger.warning(f"AUTH rejected {request.method} {request.url.path}: no {API_KEY_NAME} header")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=MISSING_KEY_DETAIL)

    if not key_matches(api_key, Config.API_KEY):
        logger.warning(f"AUTH rejected {request.method} {request.url.path}: key mismatch")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=INVALID_KEY_DETAIL)

    return api_key
