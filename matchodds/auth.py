"""
API key authentication for the Match Odds API
Keys are read from the environment on each check, so tests and restarts
pick up changes without re-importing this module.
"""

from fastapi import Security, HTTPException, status
from fastapi.security import APIKeyHeader
import logging
import os
from typing import Dict
from dotenv import load_dotenv

# Load .env file
load_dotenv()

logger = logging.getLogger(__name__)

# API Key header
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

DEV_API_KEY = "dev-key-insecure"


def get_valid_api_keys() -> Dict[str, str]:
    """Load valid API keys from environment variables"""
    keys = {}

    # Support up to 5 users
    for i in range(1, 6):
        key = os.getenv(f"API_KEY_USER{i}")
        if key:
            keys[key] = f"user{i}"

    if not keys and os.getenv("ENVIRONMENT") == "development":
        # Development fallback (never use in production)
        keys[DEV_API_KEY] = "dev_user"

    return keys


def warn_if_unconfigured() -> None:
    if not get_valid_api_keys():
        logger.warning("No API keys configured; every /api request will be rejected. Set API_KEY_USER1.")


async def verify_api_key(api_key: str = Security(API_KEY_HEADER)) -> str:
    """
    Verify API key and return user identifier

    Usage in FastAPI routes:
        @app.get("/protected")
        async def protected_route(user: str = Depends(verify_api_key)):
            return {"user": user}
    """
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required. Include 'X-API-Key' header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    valid_keys = get_valid_api_keys()
    if api_key not in valid_keys:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return valid_keys[api_key]
