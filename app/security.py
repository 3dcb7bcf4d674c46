"""API-key gate for the ingestion endpoint."""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from settings import Settings, get_settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def get_app_settings() -> Settings:
    return get_settings()


def require_api_key(
    api_key: Optional[str] = Header(default=None, alias=API_KEY_HEADER),
    settings: Settings = Depends(get_app_settings),
) -> None:
    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Missing {API_KEY_HEADER} header",
        )
    expected = settings.api_key
    if expected is None or not hmac.compare_digest(api_key, expected):
        logger.warning("Rejected request with invalid API key", extra={"status": 403})
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )
