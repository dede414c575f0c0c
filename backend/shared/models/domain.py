"""
Pydantic v2 domain models shared across the QSL tracker services.
Field aliases match the camelCase layout of the persisted state document.
"""
from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    ValidatorFunctionWrapHandler,
    field_validator,
    model_validator,
)

from shared.models.enums import DispatchStatus, SourceKind, WarningKind

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_callsign(value: Any) -> str:
    """Call-signs are case-insensitive: trim and upper-case."""
    if value is None:
        return ""
    return str(value).strip().upper()


def generate_dispatch_code() -> str:
    """Fresh 6-digit zero-padded confirmation code."""
    return f"{secrets.randbelow(1_000_000):06d}"


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """JSON-ready dict using the persisted camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ── Status records ──────────────────────────────────────────────────────
class RecordWarning(DomainModel):
    """A submitted confirmation that did not match the dispatch code."""
    kind: WarningKind = Field(validation_alias=AliasChoices("kind", "type"))
    code: str
    at: datetime

    @field_validator("code", mode="before")
    @classmethod
    def _code_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("at", mode="after")
    @classmethod
    def _at_utc(cls, value: datetime) -> datetime:
        return _as_utc(value)

    def same_as(self, other: Optional["RecordWarning"]) -> bool:
        return other is not None and other.kind == self.kind and other.code == self.code


class StatusRecord(DomainModel):
    """Dispatch/receipt record for one normalized call-sign."""
    callsign: str
    name: Optional[str] = None
    dispatch_code: Optional[str] = Field(default=None, alias="dispatchCode")
    sent_at: Optional[datetime] = Field(default=None, alias="sentAt")
    status: DispatchStatus = DispatchStatus.SENT
    received_at: Optional[datetime] = Field(default=None, alias="receivedAt")
    form_name: Optional[str] = Field(default=None, alias="formName")
    warning: Optional[RecordWarning] = None

    @field_validator("callsign", mode="before")
    @classmethod
    def _normalize(cls, value: Any) -> str:
        return normalize_callsign(value)

    @field_validator("dispatch_code", mode="before")
    @classmethod
    def _code_text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("sent_at", "received_at", mode="after")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @property
    def is_received(self) -> bool:
        return self.status == DispatchStatus.RECEIVED


class StatusState(DomainModel):
    """The whole persisted document: records plus the reconciliation cursor."""
    statuses: list[StatusRecord] = Field(default_factory=list)
    form_cursor: Optional[datetime] = Field(default=None, alias="formCursor")

    @field_validator("statuses", mode="before")
    @classmethod
    def _statuses_list(cls, value: Any) -> Any:
        return value if value is not None else []

    @field_validator("form_cursor", mode="after")
    @classmethod
    def _cursor_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _unique_callsigns(self) -> "StatusState":
        # Later duplicates win but keep the position of the first occurrence.
        by_callsign: dict[str, StatusRecord] = {}
        for record in self.statuses:
            by_callsign[record.callsign] = record
        if len(by_callsign) != len(self.statuses):
            self.statuses = list(by_callsign.values())
        return self

    @property
    def cursor(self) -> datetime:
        return self.form_cursor or EPOCH

    def find(self, callsign: str) -> Optional[StatusRecord]:
        normalized = normalize_callsign(callsign)
        for record in self.statuses:
            if record.callsign == normalized:
                return record
        return None

    def upsert(self, record: StatusRecord) -> StatusRecord:
        for index, existing in enumerate(self.statuses):
            if existing.callsign == record.callsign:
                self.statuses[index] = record
                return record
        self.statuses.append(record)
        return record


# ── Form entries (transient) ────────────────────────────────────────────
class FormEntry(DomainModel):
    """One externally submitted confirmation, as delivered by a source."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, extra="ignore")

    callsign: str = ""
    password: Optional[str] = None
    name: Optional[str] = None
    submitted_at: Optional[datetime] = Field(default=None, alias="submittedAt")

    @field_validator("callsign", mode="before")
    @classmethod
    def _callsign_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("password", "name", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Optional[str]:
        return _optional_text(value)

    @field_validator("submitted_at", mode="wrap")
    @classmethod
    def _lenient_timestamp(
        cls, value: Any, handler: ValidatorFunctionWrapHandler
    ) -> Optional[datetime]:
        # Unparseable timestamps count as missing; the engine synthesizes one.
        if value in (None, ""):
            return None
        try:
            return _as_utc(handler(value))
        except ValidationError:
            return None

    @property
    def normalized_callsign(self) -> str:
        return normalize_callsign(self.callsign)


class AcquisitionResult(DomainModel):
    """Entries produced by the acquisition chain and the source that produced them."""
    source: SourceKind
    entries: list[FormEntry] = Field(default_factory=list)


class ReconcileResult(DomainModel):
    """Outcome of one reconciliation run."""
    updated: bool
    processed_at: datetime = Field(alias="processedAt")
    source: Optional[SourceKind] = None
    entries_seen: int = Field(default=0, alias="entriesSeen")
    entries_applied: int = Field(default=0, alias="entriesApplied")
