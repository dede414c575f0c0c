"""
POST /api/refresh: trigger the scraping workflow and reconcile once.

Returns 429 while another refresh is running and 500 with a single error
message when the workflow trigger or a mandatory source fails.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from shared.errors import RefreshBusy

from api.dependencies import get_refresh
from reconciler.refresh import RefreshService

router = APIRouter(prefix="/api", tags=["refresh"])


@router.post("/refresh", response_model=None)
async def refresh(
    service: RefreshService = Depends(get_refresh),
) -> dict[str, Any] | JSONResponse:
    try:
        return await service.refresh()
    except RefreshBusy:
        raise
    except Exception as exc:
        return JSONResponse(status_code=500, content={"error": str(exc) or "refresh failed"})
