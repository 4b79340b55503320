import os
import hmac
import logging

from fastapi import Header, HTTPException, status, Request
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def get_api_keys():
    keys = os.getenv("SYNC_API_KEYS", "")
    return [k.strip() for k in keys.split(",") if k.strip()]


def _debug_enabled() -> bool:
    return os.getenv("API_KEY_DEBUG", "").lower() in ("1", "true", "yes")


async def api_key_protection(
    request: Request = None,  # keep Request type so FastAPI injects it; default None for direct calls/tests
    x_api_key: str = Header(default=None, alias="X-API-KEY"),
):
    path = request.url.path if request is not None else "<no-request>"
    valid_keys = get_api_keys()
    candidate = (x_api_key or "").strip()

    ok = bool(candidate) and any(hmac.compare_digest(candidate, k) for k in valid_keys)
    if _debug_enabled():
        logger.info("API key check: path=%s ok=%s configured_keys=%d", path, ok, len(valid_keys))

    if not ok:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key",
        )


async def cron_protection(authorization: str = Header(default=None)):
    """Timer triggers carry `Authorization: Bearer $CRON_SECRET` when a secret is configured."""
    secret = os.getenv("CRON_SECRET", "").strip()
    if not secret:
        return
    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization.strip(), expected):
        logger.warning("Rejected cron trigger with missing or invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing cron secret",
        )
