"""
Status record endpoints.

GET  /api/status         : All status records.
POST /api/dispatch       : Create or re-dispatch a record with a fresh code.
POST /api/mark-received  : Manually confirm receipt.
POST /api/resolve-warning: Ignore a code-mismatch warning, or confirm receipt.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from shared.errors import InvalidCallsign
from shared.models.domain import normalize_callsign
from shared.models.enums import ResolveAction

from api.dependencies import get_ledger
from reconciler.ledger import StatusLedger

router = APIRouter(prefix="/api", tags=["statuses"])


class DispatchRequest(BaseModel):
    callsign: Optional[str] = None
    name: Optional[str] = None


class MarkReceivedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    callsign: Optional[str] = None
    received_at: Optional[datetime] = Field(default=None, alias="receivedAt")


class ResolveWarningRequest(BaseModel):
    callsign: Optional[str] = None
    action: Optional[str] = None


@router.get("/status")
async def list_statuses(
    ledger: StatusLedger = Depends(get_ledger),
) -> list[dict[str, Any]]:
    return [record.to_wire() for record in await ledger.list_statuses()]


@router.post("/dispatch")
async def dispatch(
    body: DispatchRequest,
    ledger: StatusLedger = Depends(get_ledger),
) -> dict[str, Any]:
    record = await ledger.dispatch(body.callsign, body.name)
    return record.to_wire()


@router.post("/mark-received")
async def mark_received(
    body: MarkReceivedRequest,
    ledger: StatusLedger = Depends(get_ledger),
) -> dict[str, Any]:
    record = await ledger.mark_received(body.callsign, body.received_at)
    return record.to_wire()


@router.post("/resolve-warning", response_model=None)
async def resolve_warning(
    body: ResolveWarningRequest,
    ledger: StatusLedger = Depends(get_ledger),
) -> dict[str, Any] | JSONResponse:
    """
    ``ignore`` clears the warning only; ``confirm`` also marks the record
    received now.
    """
    try:
        action = ResolveAction(body.action)
    except ValueError:
        # blank call-sign takes precedence over a bad action
        if not normalize_callsign(body.callsign):
            raise InvalidCallsign()
        return JSONResponse(
            status_code=400, content={"error": "action must be ignore or confirm"}
        )
    record = await ledger.resolve_warning(body.callsign, action)
    return record.to_wire()
