"""
Log sink endpoints.

GET  /api/log-config: Current size limit.
POST /api/log-config: Change the size limit (must exceed the minimum).
GET  /api/logs      : Raw log file content as text.
"""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from shared.config import Settings
from shared.utils.log_sink import LogConfigStore, read_log_text
from shared.utils.logging import get_logger

from api.dependencies import get_api_settings, get_log_config

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["logs"])


class LogConfigRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    max_bytes: Any = Field(default=None, alias="maxBytes")


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number or number in (float("inf"), float("-inf")):
        return None
    return int(number)


@router.get("/log-config")
async def get_log_config_route(
    log_config: LogConfigStore = Depends(get_log_config),
) -> dict[str, Any]:
    return log_config.reload().model_dump(by_alias=True)


@router.post("/log-config", response_model=None)
async def set_log_config(
    body: LogConfigRequest,
    log_config: LogConfigStore = Depends(get_log_config),
) -> dict[str, Any] | JSONResponse:
    max_bytes = _as_int(body.max_bytes)
    if max_bytes is None or max_bytes <= log_config.min_bytes:
        return JSONResponse(
            status_code=400,
            content={"error": f"maxBytes must be > {log_config.min_bytes}"},
        )
    config = log_config.update(max_bytes)
    logger.info("log_config_updated", max_bytes=config.max_bytes)
    return config.model_dump(by_alias=True)


@router.get("/logs", response_model=None)
async def read_logs(
    settings: Settings = Depends(get_api_settings),
) -> PlainTextResponse | JSONResponse:
    try:
        content = read_log_text(settings.log_path)
    except OSError as exc:
        logger.error("read_logs_failed", error=str(exc))
        return JSONResponse(status_code=500, content={"error": "read logs failed"})
    return PlainTextResponse(content)
