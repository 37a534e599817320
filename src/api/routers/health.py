"""Liveness endpoint."""

from __future__ import annotations

import time

from fastapi import APIRouter, Depends

from src.stream_core.registry import SessionRegistry

from ..deps.pipeline import get_registry
from ..schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(registry: SessionRegistry = Depends(get_registry)) -> HealthResponse:
    return HealthResponse(
        ok=True,
        time=int(time.time() * 1000),
        active_sessions=len(registry),
    )
