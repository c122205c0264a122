"""
Pydantic schemas for Investment API request / response serialisation.

Wire field names are the snake_case attribute names of
:class:`invtracker.models.investment.Investment`.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from invtracker.core.dates import as_utc, midnight_utc

# Fields of an InvestmentPatch that may be sent as explicit null (cleared).
CLEARABLE_FIELDS = frozenset({"start_date", "end_date"})


def _strip_label(v: Optional[str], field_name: str) -> Optional[str]:
    if v is None:
        return v
    if not v.strip():
        raise ValueError(f"{field_name} must not be blank")
    return v.strip()


def _check_date_order(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is not None and end is not None and as_utc(end) < as_utc(start):
        raise ValueError("end_date must not be before start_date")


class InvestmentDates(BaseModel):
    """
    Start / end dates with date-only semantics.

    Accepts ``YYYY-MM-DD`` or any ISO-8601 date-time; the value is stored as
    midnight UTC of the (UTC) calendar day.
    """

    start_date: Optional[datetime] = Field(
        default=None,
        description="Start of the term (midnight UTC)",
        examples=["2024-01-01T00:00:00Z"],
    )
    end_date: Optional[datetime] = Field(
        default=None,
        description="Maturity date (midnight UTC)",
        examples=["2025-01-01T00:00:00Z"],
    )

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def accept_plain_dates(cls, v: Any) -> Any:
        """Let callers send a bare ``YYYY-MM-DD`` string."""
        if isinstance(v, str) and len(v.strip()) == 10:
            return midnight_utc(date.fromisoformat(v.strip()))
        return v

    @field_validator("start_date", "end_date")
    @classmethod
    def truncate_to_midnight_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return midnight_utc(v) if v is not None else None


class InvestmentBase(InvestmentDates):
    """Fields common to investment creation payloads and responses."""

    investment_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Label of the instrument",
        examples=["Car Fund"],
    )
    holder_name: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Beneficiary / holder of the investment",
        examples=["Alice"],
    )
    investment_kind: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="Investment kind, e.g. FD (fixed deposit) or RD (recurring deposit)",
        examples=["FD"],
    )
    return_kind: str = Field(
        ...,
        min_length=1,
        max_length=32,
        description="Return kind, e.g. Ordinary or Cumulative",
        examples=["Ordinary"],
    )
    investment_amount: int = Field(..., ge=0, description="Principal", examples=[1000])
    return_amount: int = Field(..., ge=0, description="Maturity value", examples=[1100])
    return_rate: int = Field(..., ge=0, description="Rate in percentage points", examples=[10])

    @field_validator("investment_name", "holder_name")
    @classmethod
    def validate_label_not_blank(cls, v: str, info: ValidationInfo) -> str:
        """Reject whitespace-only labels."""
        return _strip_label(v, info.field_name)  # type: ignore[return-value]


class InvestmentCreate(InvestmentBase):
    """
    Schema for ``POST /inv``.

    ``id`` may be sent as ``null`` (the client's unsaved record) but never
    with a value: identifiers are assigned by the store.  ``created_at`` and
    ``updated_at`` are ignored if present.
    """

    id: Optional[str] = Field(
        default=None,
        description="Must be absent or null; assigned by the store",
    )

    @field_validator("id")
    @classmethod
    def reject_client_assigned_id(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            raise ValueError("id is assigned by the store and must not be supplied")
        return v

    @model_validator(mode="after")
    def validate_date_order(self) -> "InvestmentCreate":
        _check_date_order(self.start_date, self.end_date)
        return self


class InvestmentPatch(InvestmentDates):
    """
    Schema for ``PATCH /inv``.

    Only ``id`` is required.  Omitted fields are left unchanged; an explicit
    ``null`` clears ``start_date`` / ``end_date`` and is rejected for every
    other field.
    """

    id: str = Field(..., min_length=1, description="Identifier of the record to update")
    investment_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    holder_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    investment_kind: Optional[str] = Field(default=None, min_length=1, max_length=32)
    return_kind: Optional[str] = Field(default=None, min_length=1, max_length=32)
    investment_amount: Optional[int] = Field(default=None, ge=0)
    return_amount: Optional[int] = Field(default=None, ge=0)
    return_rate: Optional[int] = Field(default=None, ge=0)

    @field_validator("investment_name", "holder_name")
    @classmethod
    def validate_label_not_blank(cls, v: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _strip_label(v, info.field_name)

    @model_validator(mode="after")
    def reject_clearing_required_fields(self) -> "InvestmentPatch":
        cleared = sorted(
            name
            for name in self.model_fields_set - CLEARABLE_FIELDS - {"id"}
            if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"these fields cannot be cleared: {', '.join(cleared)}")
        return self

    def changes(self) -> Dict[str, Any]:
        """The fields explicitly sent by the caller, excluding ``id``."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class InvestmentResponse(InvestmentBase):
    """Schema returned by every endpoint that yields an investment."""

    id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """SQLite hands back naive timestamps; they are UTC."""
        return as_utc(v)

    model_config = ConfigDict(from_attributes=True)


class AffectedRows(BaseModel):
    """Result of ``DELETE /inv/{id}``."""

    affected_rows: int = Field(..., ge=0, description="Number of records removed (0 or 1)")
