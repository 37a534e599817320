"""API key checks for HTTP routes and the websocket stream."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ..settings import APISettings, get_settings

ANONYMOUS = "anonymous"


def key_is_valid(settings: APISettings, key: Optional[str]) -> bool:
    if not settings.api_keys:
        return True
    return bool(key) and key in settings.api_keys


def get_api_key(
    x_api_key: Optional[str] = Header(default=None),
    settings: APISettings = Depends(get_settings),
) -> str:
    if not key_is_valid(settings, x_api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_api_key or ANONYMOUS
